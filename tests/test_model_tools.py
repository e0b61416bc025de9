"""Tests for model_tools: definitions, dispatch and the sync/async bridge."""

import asyncio
import json

import pytest

import model_tools
from model_tools import (
    _run_async,
    get_all_tool_names,
    get_available_toolsets,
    get_tool_definitions,
    get_toolset_for_tool,
    handle_function_call,
)

ENABLED = {"tools": {"delve": {"enabled": True}}}
DISABLED = {"tools": {"delve": {"enabled": False}}}


class TestToolDefinitions:
    """Definitions offered to the model."""

    def test_delve_offered_by_default(self):
        names = [tool["function"]["name"] for tool in get_tool_definitions(ENABLED)]
        assert names == ["delve"]

    def test_disabled_offers_nothing(self):
        assert get_tool_definitions(DISABLED) == []
        assert get_all_tool_names(DISABLED) == []

    def test_each_registry_reflects_its_own_config(self):
        enabled = model_tools.build_registry(ENABLED)
        disabled = model_tools.build_registry(DISABLED)
        assert enabled is not disabled
        assert enabled.get("delve") is not None
        assert disabled.get("delve") is None

    def test_enabled_tools_filter(self):
        assert get_tool_definitions(ENABLED, enabled_tools=["something_else"]) == []
        assert len(get_tool_definitions(ENABLED, enabled_tools=["delve"])) == 1

    def test_disabled_tools_filter(self):
        assert get_tool_definitions(ENABLED, disabled_tools=["delve"]) == []

    def test_loads_config_file_when_not_given(self, isolated_delve_home):
        isolated_delve_home.mkdir(parents=True)
        (isolated_delve_home / "config.yaml").write_text("tools:\n  delve:\n    enabled: false\n")
        assert get_tool_definitions() == []

    def test_toolset_for_tool(self):
        assert get_toolset_for_tool("delve") == "knowledge"
        assert get_toolset_for_tool("terminal") == "unknown"


class TestHandleFunctionCall:
    """Dispatching model function calls."""

    def test_unknown_function(self):
        result = json.loads(handle_function_call("nope", {}, ENABLED))
        assert result["error"] == "Unknown function: nope"

    def test_disabled_delve_is_unknown(self):
        result = json.loads(handle_function_call("delve", {"action": "delve", "body": {}}, DISABLED))
        assert "Unknown function" in result["error"]

    def test_delve_validation_error(self):
        result = json.loads(handle_function_call("delve", {"action": "delve", "body": []}, ENABLED))
        assert result == {"ok": False, "error": "missing_body", "message": "Request body must be a JSON object."}

    def test_delve_missing_token(self):
        result = json.loads(handle_function_call("delve", {"action": "delve", "body": {}}, ENABLED, env={}.get))
        assert result["error"] == "missing_token"

    def test_unexpected_exception_becomes_error(self, monkeypatch):
        def broken(*args, **kwargs):
            raise RuntimeError("registry exploded")
        monkeypatch.setattr(model_tools, "build_registry", broken)
        result = json.loads(handle_function_call("delve", {}, ENABLED))
        assert "registry exploded" in result["error"]


class TestAvailableToolsets:
    """Toolset status reporting."""

    def test_knowledge_toolset(self, monkeypatch):
        monkeypatch.setenv("DELVE_TOKEN", "tok")
        info = get_available_toolsets(ENABLED)["knowledge"]
        assert info["available"] is True
        assert info["configured"] is True
        assert info["tools"] == ["delve"]

    def test_unconfigured(self):
        info = get_available_toolsets(DISABLED)["knowledge"]
        assert info["available"] is False
        assert info["configured"] is False

    def test_token_from_config_counts_as_configured(self):
        config = {"tools": {"delve": {"token": "cfg-token"}}}
        info = get_available_toolsets(config)["knowledge"]
        assert info["configured"] is True


class TestRunAsync:
    """Running coroutines from sync code."""

    def test_without_running_loop(self):
        async def answer():
            return 42
        assert _run_async(answer()) == 42

    @pytest.mark.asyncio
    async def test_inside_running_loop(self):
        async def answer():
            await asyncio.sleep(0)
            return "ok"
        assert _run_async(answer()) == "ok"
