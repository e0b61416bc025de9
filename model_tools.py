#!/usr/bin/env python3
"""
Model Tools Module

This module constructs tool schemas and handlers for AI model API calls.
It builds a tool registry from the runtime configuration and provides a
unified interface for defining tools and executing function calls.

Currently supports:
- Delve tools (knowledge-graph query, agent stack add, vector search) from delve_tool.py

Usage:
    from model_tools import get_tool_definitions, handle_function_call

    # Get all available tool definitions for model API
    tools = get_tool_definitions()

    # Only specific tools
    tools = get_tool_definitions(enabled_tools=["delve"])

    # Handle function calls from model
    result = handle_function_call("delve", {"action": "delve", "body": {"query": "Python"}})
"""

import asyncio
import concurrent.futures
import json
import logging
from typing import Any, Dict, List, Optional

from tools import ToolRegistry, check_delve_requirements, register_delve_tool
from tools.delve_tool import EnvSource

logger = logging.getLogger(__name__)


def _run_async(coro):
    """
    Run a coroutine to completion from synchronous code.

    Uses asyncio.run() when no loop is running in this thread; otherwise runs
    it on a fresh loop in a worker thread so the caller's loop is untouched.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(asyncio.run, coro).result()


def _load_runtime_config(config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if config is not None:
        return config
    from delve_cli.config import load_config
    return load_config()


def build_registry(
    config: Optional[Dict[str, Any]] = None,
    env: Optional[EnvSource] = None,
) -> ToolRegistry:
    """
    Build a registry holding every tool the config enables.

    Args:
        config (Dict): Runtime config; loaded from ~/.delve/config.yaml when omitted
        env (EnvSource): Environment lookup passed through to the tools

    Returns:
        ToolRegistry: Registry with the enabled tools
    """
    config = _load_runtime_config(config)
    registry = ToolRegistry()
    register_delve_tool(registry, config, env)
    return registry


def get_all_tool_names(config: Optional[Dict[str, Any]] = None) -> List[str]:
    """
    Get the names of all available tools across all toolsets.

    Returns:
        List[str]: List of all tool names
    """
    return build_registry(config).names()


def get_toolset_for_tool(tool_name: str) -> str:
    """
    Get the toolset that a tool belongs to.

    Args:
        tool_name (str): Name of the tool

    Returns:
        str: Name of the toolset, or "unknown" if not found
    """
    toolset_mapping = {
        "delve": "knowledge",
    }

    return toolset_mapping.get(tool_name, "unknown")


def get_tool_definitions(
    config: Optional[Dict[str, Any]] = None,
    enabled_tools: List[str] = None,
    disabled_tools: List[str] = None,
) -> List[Dict[str, Any]]:
    """
    Get tool definitions for model API calls with optional filtering.

    Filter Priority:
    1. enabled_tools (only these tools, disabled_tools is ignored)
    2. disabled_tools (exclude these tools)

    Args:
        config (Dict): Runtime config; loaded from ~/.delve/config.yaml when omitted
        enabled_tools (List[str]): Only include these specific tools
        disabled_tools (List[str]): Exclude these specific tools

    Returns:
        List[Dict]: Filtered list of tool definitions
    """
    registry = build_registry(config)

    if enabled_tools:
        if disabled_tools:
            logger.warning("enabled_tools overrides disabled_tools")
        definitions = registry.get_definitions(enabled_tools)
        found = {tool["function"]["name"] for tool in definitions}
        missing = set(enabled_tools) - found
        if missing:
            logger.warning("Requested tools not available: %s", sorted(missing))
        return definitions

    definitions = registry.get_definitions()
    if disabled_tools:
        excluded = set(disabled_tools)
        definitions = [tool for tool in definitions if tool["function"]["name"] not in excluded]
    return definitions


def handle_function_call(
    function_name: str,
    function_args: Dict[str, Any],
    config: Optional[Dict[str, Any]] = None,
    env: Optional[EnvSource] = None,
) -> str:
    """
    Main function call dispatcher.

    Args:
        function_name (str): Name of the function to call
        function_args (Dict): Arguments for the function
        config (Dict): Runtime config; loaded from ~/.delve/config.yaml when omitted
        env (EnvSource): Environment lookup passed through to the tools

    Returns:
        str: Function result as JSON string

    Raises:
        None: Returns error as JSON string instead of raising exceptions
    """
    try:
        registry = build_registry(config, env)
        if registry.get(function_name) is None:
            error_msg = f"Unknown function: {function_name}"
            logger.error(error_msg)
            return json.dumps({"error": error_msg})
        return registry.dispatch(function_name, function_args)

    except Exception as e:
        error_msg = f"Error executing {function_name}: {str(e)}"
        logger.error(error_msg)
        return json.dumps({"error": error_msg})


def get_available_toolsets(config: Optional[Dict[str, Any]] = None) -> Dict[str, Dict[str, Any]]:
    """
    Get information about all available toolsets and their status.

    Returns:
        Dict: Information about each toolset including availability and tools
    """
    config = _load_runtime_config(config)
    registry = build_registry(config)
    toolsets = {
        "knowledge": {
            "available": registry.get("delve") is not None,
            "configured": check_delve_requirements(config),
            "tools": ["delve"],
            "description": "Delve knowledge graph: graph queries, agent stack messages and vector search",
            "requirements": ["DELVE_TOKEN environment variable or tools.delve.token"]
        }
    }

    return toolsets


if __name__ == "__main__":
    print("🛠️  Model Tools Module")
    print("=" * 40)

    toolsets = get_available_toolsets()
    print("📦 Toolsets:")
    for name, info in toolsets.items():
        status = "✅" if info["available"] else "❌"
        print(f"  {status} {name}: {info['description']}")
        if not info["configured"]:
            print(f"    Requirements: {', '.join(info['requirements'])}")

    tools = get_tool_definitions()
    print(f"\n📝 Tool Definitions ({len(tools)} loaded):")
    for tool in tools:
        func_name = tool["function"]["name"]
        desc = tool["function"]["description"]
        print(f"  🔹 {func_name} (from {get_toolset_for_tool(func_name)}): {desc[:60]}{'...' if len(desc) > 60 else ''}")
