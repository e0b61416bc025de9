#!/usr/bin/env python3
"""
Tools Package

Tool implementations for the Delve agent runtime:

- delve_tool: Delve knowledge-graph queries, agent stack messages and vector search
- registry: ToolRegistry, the name -> schema/handler table the runtime dispatches through

The tools are wired up in model_tools.py, which provides a unified interface
for the AI agent to access them.
"""

from typing import Any, Dict, Optional

from .delve_tool import (
    DELVE_SCHEMA,
    DelveResult,
    DelveTool,
    DelveToolConfig,
    EnvSource,
    check_delve_requirements,
    create_delve_tool,
)
from .registry import ToolRegistry


def register_delve_tool(
    target: ToolRegistry,
    config: Optional[Dict[str, Any]] = None,
    env: Optional[EnvSource] = None,
) -> Optional[DelveTool]:
    """Register the delve tool with a registry unless the config disables it."""
    tool = create_delve_tool(config, env)
    if tool is None:
        target.unregister(DelveTool.name)
        return None
    target.register(
        name=tool.name,
        toolset=tool.toolset,
        schema=tool.schema,
        handler=tool,
    )
    return tool


__all__ = [
    # Delve tool
    'DELVE_SCHEMA',
    'DelveResult',
    'DelveTool',
    'DelveToolConfig',
    'EnvSource',
    'check_delve_requirements',
    'create_delve_tool',
    'register_delve_tool',
    # Registry
    'ToolRegistry',
]
