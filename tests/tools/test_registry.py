"""Tests for the tool registry and delve tool registration."""

import json

from tools import DELVE_SCHEMA, DelveTool, ToolRegistry, register_delve_tool


def _echo_handler(args, **kw):
    return json.dumps({"echo": args})


def _schema(name):
    return {"name": name, "description": f"{name} tool", "parameters": {"type": "object", "properties": {}}}


class TestToolRegistry:
    """Registration, availability and dispatch."""

    def test_register_and_get(self):
        registry = ToolRegistry()
        entry = registry.register(name="echo", toolset="test", schema=_schema("echo"), handler=_echo_handler)
        assert registry.get("echo") is entry
        assert registry.names() == ["echo"]
        assert registry.toolsets() == {"test": ["echo"]}

    def test_definitions_use_openai_format(self):
        registry = ToolRegistry()
        registry.register(name="echo", toolset="test", schema=_schema("echo"), handler=_echo_handler)
        assert registry.get_definitions() == [{"type": "function", "function": _schema("echo")}]

    def test_definitions_filtered_by_name(self):
        registry = ToolRegistry()
        registry.register(name="a", toolset="test", schema=_schema("a"), handler=_echo_handler)
        registry.register(name="b", toolset="test", schema=_schema("b"), handler=_echo_handler)
        names = [d["function"]["name"] for d in registry.get_definitions(["b", "missing"])]
        assert names == ["b"]

    def test_unavailable_tools_hidden(self):
        registry = ToolRegistry()
        registry.register(name="off", toolset="test", schema=_schema("off"), handler=_echo_handler, check_fn=lambda: False)
        assert registry.get_definitions() == []
        assert registry.names() == []
        assert registry.names(available_only=False) == ["off"]

    def test_failing_check_counts_as_unavailable(self):
        def broken():
            raise RuntimeError("no")
        registry = ToolRegistry()
        registry.register(name="x", toolset="test", schema=_schema("x"), handler=_echo_handler, check_fn=broken)
        assert registry.get("x").is_available() is False

    def test_dispatch(self):
        registry = ToolRegistry()
        registry.register(name="echo", toolset="test", schema=_schema("echo"), handler=_echo_handler)
        assert json.loads(registry.dispatch("echo", {"a": 1})) == {"echo": {"a": 1}}

    def test_dispatch_unknown_tool(self):
        result = json.loads(ToolRegistry().dispatch("nope", {}))
        assert "Unknown tool" in result["error"]

    def test_dispatch_handler_exception(self):
        def explode(args, **kw):
            raise ValueError("kaboom")
        registry = ToolRegistry()
        registry.register(name="bad", toolset="test", schema=_schema("bad"), handler=explode)
        result = json.loads(registry.dispatch("bad", {}))
        assert "kaboom" in result["error"]

    def test_unregister(self):
        registry = ToolRegistry()
        registry.register(name="echo", toolset="test", schema=_schema("echo"), handler=_echo_handler)
        assert registry.unregister("echo") is True
        assert registry.unregister("echo") is False


class TestRegisterDelveTool:
    """The delve tool in a registry."""

    def test_registered_under_knowledge_toolset(self):
        registry = ToolRegistry()
        tool = register_delve_tool(registry, {})
        assert isinstance(tool, DelveTool)
        entry = registry.get("delve")
        assert entry.toolset == "knowledge"
        assert entry.schema is DELVE_SCHEMA

    def test_disabled_not_registered(self):
        registry = ToolRegistry()
        register_delve_tool(registry, {})
        assert register_delve_tool(registry, {"tools": {"delve": {"enabled": False}}}) is None
        assert registry.get("delve") is None

    def test_dispatch_reaches_tool(self):
        registry = ToolRegistry()
        register_delve_tool(registry, {}, env={}.get)
        result = json.loads(registry.dispatch("delve", {"action": "bogus", "body": {}}))
        assert result["error"] == "invalid_action"
