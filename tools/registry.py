"""Tool registry -- schemas and handlers for every tool the agent can call.

Tools register themselves with a name, a toolset, an OpenAI-style function
schema and a handler. The handler receives the call arguments as a dict and
returns a JSON string. An optional check_fn decides at lookup time whether the
tool is currently available (API keys present, services reachable, ...).
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class ToolEntry:
    name: str
    toolset: str
    schema: Dict[str, Any]
    handler: Callable[..., str]
    check_fn: Optional[Callable[[], bool]] = None

    def is_available(self) -> bool:
        if self.check_fn is None:
            return True
        try:
            return bool(self.check_fn())
        except Exception as e:
            logger.debug("Availability check for %s failed: %s", self.name, e)
            return False


class ToolRegistry:
    """Name -> ToolEntry mapping with toolset-aware lookups."""

    def __init__(self):
        self._tools: Dict[str, ToolEntry] = {}

    def register(
        self,
        name: str,
        toolset: str,
        schema: Dict[str, Any],
        handler: Callable[..., str],
        check_fn: Optional[Callable[[], bool]] = None,
    ) -> ToolEntry:
        if name in self._tools:
            logger.debug("Replacing registered tool %s", name)
        entry = ToolEntry(name=name, toolset=toolset, schema=schema, handler=handler, check_fn=check_fn)
        self._tools[name] = entry
        return entry

    def unregister(self, name: str) -> bool:
        return self._tools.pop(name, None) is not None

    def get(self, name: str) -> Optional[ToolEntry]:
        return self._tools.get(name)

    def names(self, available_only: bool = True) -> List[str]:
        return [
            name for name, entry in self._tools.items()
            if not available_only or entry.is_available()
        ]

    def toolsets(self) -> Dict[str, List[str]]:
        """Group registered tool names by toolset."""
        grouped: Dict[str, List[str]] = {}
        for entry in self._tools.values():
            grouped.setdefault(entry.toolset, []).append(entry.name)
        return grouped

    def get_definitions(self, names: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        """
        Tool definitions in OpenAI's function-calling format.

        Args:
            names: Only include these tools. Unknown or unavailable names are skipped.

        Returns:
            List of {"type": "function", "function": schema} dicts
        """
        wanted = set(names) if names is not None else None
        definitions = []
        for entry in self._tools.values():
            if wanted is not None and entry.name not in wanted:
                continue
            if not entry.is_available():
                continue
            definitions.append({"type": "function", "function": entry.schema})
        return definitions

    def dispatch(self, name: str, args: Dict[str, Any], **kw) -> str:
        """Run a tool handler. Always returns a JSON string."""
        entry = self._tools.get(name)
        if entry is None:
            return json.dumps({"error": f"Unknown tool: {name}"})
        try:
            return entry.handler(args or {}, **kw)
        except Exception as e:
            logger.error("Tool %s raised: %s", name, e)
            return json.dumps({"error": f"Error executing {name}: {e}"})
