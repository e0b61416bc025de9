"""Delve Tool -- knowledge-graph queries, agent stacks and vector search.

Talks to a Delve API server over HTTP. One tool call is one POST request:

- delve:          POST /delve                        (query the knowledge graph)
- stack_add:      POST /agents/{agent_id}/stack/add  (append to an agent's stack)
- vector_search:  POST /vector_store/search          (vector store search)

Configuration (highest priority first):
- per-call arguments: baseUrl, token, timeoutMs
- config.yaml:        tools.delve.{enabled, baseUrl, token, timeoutMs}
- environment:        DELVE_BASE_URL, DELVE_TOKEN
- defaults:           http://localhost:8000, 30000 ms, enabled

Every outcome, including bad input and transport failures, comes back as a
DelveResult; nothing is raised to the caller.

Usage:
    from tools.delve_tool import create_delve_tool

    tool = create_delve_tool(load_config())
    if tool:
        result = await tool.execute({"action": "delve", "body": {"query": "hello"}})
"""

import asyncio
import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple, Union
from urllib.parse import quote, urljoin, urlsplit, urlunsplit

import aiohttp

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

DELVE_ACTIONS = ("delve", "stack_add", "vector_search")
DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_TIMEOUT_MS = 30_000

BASE_URL_ENV = "DELVE_BASE_URL"
TOKEN_ENV = "DELVE_TOKEN"

# Error codes
MISSING_TOKEN = "missing_token"
INVALID_BASE_URL = "invalid_base_url"
INVALID_ACTION = "invalid_action"
MISSING_BODY = "missing_body"
MISSING_AGENT_ID = "missing_agent_id"
REQUEST_FAILED = "request_failed"
NETWORK_ERROR = "network_error"

# Kept unescaped in agent ids: RFC 3986 unreserved characters plus !*'()
_PATH_SAFE = "!*'()"

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")

EnvSource = Callable[[str], Optional[str]]


DELVE_SCHEMA = {
    "name": "delve",
    "description": (
        "Query Delve knowledge graph, add stack messages, or run vector search "
        "(requires Delve API token)."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "action": {
                "type": "string",
                "enum": list(DELVE_ACTIONS),
                "description": "'delve' queries the knowledge graph, 'stack_add' appends a message to an agent's stack, 'vector_search' searches the vector store."
            },
            "baseUrl": {
                "type": "string",
                "description": "Override Delve base URL."
            },
            "token": {
                "type": "string",
                "description": "Override Delve API token."
            },
            "timeoutMs": {
                "type": "number",
                "minimum": 1,
                "description": "Request timeout in milliseconds (default: 30000)."
            },
            "agent_id": {
                "type": "string",
                "description": "Agent id for stack_add."
            },
            "body": {
                "type": "object",
                "additionalProperties": True,
                "description": "Request payload for the selected action, e.g. {\"bonfire_id\": \"...\", \"query\": \"...\"}."
            }
        },
        "required": ["action"]
    }
}


# =============================================================================
# Data types
# =============================================================================

@dataclass(frozen=True)
class DelveToolConfig:
    """The tools.delve section of the runtime config."""
    enabled: bool = True
    base_url: Optional[str] = None
    token: Optional[str] = None
    timeout_ms: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "DelveToolConfig":
        if not isinstance(data, dict):
            return cls()
        enabled = data.get("enabled")
        base_url = _first_present(data, "baseUrl", "base_url")
        token = data.get("token")
        timeout_ms = _first_present(data, "timeoutMs", "timeout_ms")
        return cls(
            enabled=enabled if isinstance(enabled, bool) else True,
            base_url=base_url if isinstance(base_url, str) else None,
            token=token if isinstance(token, str) else None,
            timeout_ms=timeout_ms if _is_number(timeout_ms) else None,
        )


@dataclass
class DelveRequest:
    """A validated tool call, ready to be routed."""
    action: str
    body: Dict[str, Any]
    agent_id: Optional[str] = None


@dataclass
class DelveResult:
    """Outcome of one tool call."""
    ok: bool
    status: Optional[int] = None
    data: Any = None
    error: Optional[str] = None
    message: Optional[str] = None
    body: Any = None

    @classmethod
    def failure(cls, error: str, message: Optional[str] = None, **kwargs) -> "DelveResult":
        return cls(ok=False, error=error, message=message, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"ok": self.ok}
        for key in ("status", "data", "error", "message", "body"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        return result

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


# =============================================================================
# Helpers
# =============================================================================

def _first_present(data: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _read_string(args: Dict[str, Any], key: str) -> Optional[str]:
    """Read a trimmed string argument; blank or non-string values count as missing."""
    value = args.get(key)
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return None


def _read_number(args: Dict[str, Any], key: str) -> Optional[float]:
    """Read a numeric argument. Models often send numbers as strings."""
    value = args.get(key)
    if _is_number(value):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def default_env_source(key: str) -> Optional[str]:
    """Look up a key in the process environment, then ~/.delve/.env."""
    from delve_cli.config import get_env_value
    return get_env_value(key)


# =============================================================================
# Configuration resolution
# =============================================================================

def normalize_base_url(raw: str) -> Optional[str]:
    """
    Normalize an absolute base URL.

    Drops the query string, the fragment and trailing slashes. Returns None
    when the value is blank or not an absolute URL.
    """
    trimmed = raw.strip() if isinstance(raw, str) else ""
    if not trimmed:
        return None
    try:
        parts = urlsplit(trimmed)
        # Touching .port validates it (raises ValueError when out of range)
        parts.port
    except ValueError:
        return None
    if not _SCHEME_RE.match(parts.scheme or "") or not parts.netloc or not parts.hostname:
        return None
    normalized = urlunsplit((parts.scheme.lower(), parts.netloc, parts.path, "", ""))
    return normalized.rstrip("/")


def resolve_base_url(
    override: Optional[str],
    config: DelveToolConfig,
    env: EnvSource,
) -> Tuple[Optional[str], Optional[str]]:
    """
    Pick the effective base URL.

    Returns (base_url, error). The first non-blank candidate wins; if it does
    not parse, the result is INVALID_BASE_URL rather than the next tier.
    """
    candidates = (
        ("override", override),
        ("config", config.base_url),
        ("environment", env(BASE_URL_ENV)),
    )
    for source, candidate in candidates:
        if not isinstance(candidate, str) or not candidate.strip():
            continue
        normalized = normalize_base_url(candidate)
        if normalized is None:
            logger.debug("Rejected Delve base URL from %s: %r", source, candidate)
            return None, INVALID_BASE_URL
        return normalized, None
    return DEFAULT_BASE_URL, None


def resolve_token(override: Optional[str], config: DelveToolConfig, env: EnvSource) -> str:
    for candidate in (override, config.token, env(TOKEN_ENV)):
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return ""


def _finite(value: Any) -> Optional[float]:
    """Return value as a finite float, or None. Ints too large for a float count as infinite."""
    if not _is_number(value):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def resolve_timeout_ms(override: Optional[float], config: DelveToolConfig) -> int:
    override = _finite(override)
    if override is not None:
        return max(1, math.floor(override))
    configured = _finite(config.timeout_ms)
    if configured is not None and configured > 0:
        return max(1, math.floor(configured))
    return DEFAULT_TIMEOUT_MS


# =============================================================================
# Validation and routing
# =============================================================================

def normalize_action_params(args: Dict[str, Any]) -> Union[DelveRequest, DelveResult]:
    """Validate raw tool arguments. Returns a DelveRequest, or a failed DelveResult."""
    if not isinstance(args, dict):
        args = {}

    action = _read_string(args, "action")
    if action not in DELVE_ACTIONS:
        return DelveResult.failure(
            INVALID_ACTION,
            f"Action must be one of: {', '.join(DELVE_ACTIONS)}.",
        )

    body = args.get("body")
    if not isinstance(body, dict):
        return DelveResult.failure(MISSING_BODY, "Request body must be a JSON object.")

    if action == "stack_add":
        agent_id = _read_string(args, "agent_id")
        if not agent_id:
            return DelveResult.failure(MISSING_AGENT_ID, "agent_id is required for stack_add.")
        return DelveRequest(action=action, body=body, agent_id=agent_id)

    return DelveRequest(action=action, body=body)


def resolve_endpoint(action: str, agent_id: Optional[str] = None) -> str:
    if action == "delve":
        return "/delve"
    if action == "vector_search":
        return "/vector_store/search"
    return f"/agents/{quote(agent_id or '', safe=_PATH_SAFE)}/stack/add"


def build_request_url(base_url: str, path: str) -> str:
    """Resolve path against base_url. Paths are absolute, so a base path prefix is replaced."""
    return urljoin(base_url + "/", path)


# =============================================================================
# HTTP
# =============================================================================

async def _read_payload(response: aiohttp.ClientResponse) -> Any:
    """Parse the response as JSON, falling back to non-empty text."""
    text = await response.text(errors="replace")
    try:
        return json.loads(text)
    except ValueError:
        return text or None


async def request_delve(
    base_url: str,
    token: str,
    path: str,
    body: Dict[str, Any],
    timeout_ms: int,
) -> DelveResult:
    """POST one request to the Delve API and normalize the outcome."""
    url = build_request_url(base_url, path)
    try:
        payload = json.dumps(body)
    except (TypeError, ValueError) as e:
        return DelveResult.failure(MISSING_BODY, f"Request body must be a JSON object: {e}")
    headers = {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
    }
    timeout = aiohttp.ClientTimeout(total=timeout_ms / 1000)
    logger.debug("POST %s (timeout %sms)", url, timeout_ms)

    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(url, headers=headers, data=payload) as response:
                parsed = await _read_payload(response)
                if 200 <= response.status < 300:
                    logger.info("Delve %s -> %s", path, response.status)
                    return DelveResult(ok=True, status=response.status, data=parsed)
                logger.warning("Delve %s failed with HTTP %s", path, response.status)
                return DelveResult.failure(REQUEST_FAILED, status=response.status, body=parsed)
    except asyncio.TimeoutError as e:
        message = str(e) or f"Request timed out after {timeout_ms}ms"
        logger.warning("Delve request to %s timed out: %s", url, message)
        return DelveResult.failure(NETWORK_ERROR, message)
    except (aiohttp.ClientError, ValueError, OSError) as e:
        message = str(e) or "Network error"
        logger.warning("Delve request to %s failed: %s", url, message)
        return DelveResult.failure(NETWORK_ERROR, message)


# =============================================================================
# Tool
# =============================================================================

class DelveTool:
    """
    The delve agent tool.

    Holds the tools.delve config for its whole lifetime; every call resolves
    its own base URL, token and timeout from the call arguments, that config
    and the env source.
    """

    name = "delve"
    label = "Delve"
    toolset = "knowledge"
    schema = DELVE_SCHEMA

    def __init__(self, config: Optional[DelveToolConfig] = None, env: Optional[EnvSource] = None):
        self.config = config or DelveToolConfig()
        self.env = env or default_env_source

    async def execute(self, args: Dict[str, Any]) -> DelveResult:
        normalized = normalize_action_params(args)
        if isinstance(normalized, DelveResult):
            return normalized

        timeout_ms = resolve_timeout_ms(_read_number(args, "timeoutMs"), self.config)

        base_url, error = resolve_base_url(_read_string(args, "baseUrl"), self.config, self.env)
        if error:
            return DelveResult.failure(
                INVALID_BASE_URL,
                "Invalid Delve base URL. Provide a valid http(s) URL.",
            )

        token = resolve_token(_read_string(args, "token"), self.config, self.env)
        if not token:
            return DelveResult.failure(
                MISSING_TOKEN,
                "Delve token is required. Set tools.delve.token or DELVE_TOKEN.",
            )

        path = resolve_endpoint(normalized.action, normalized.agent_id)
        return await request_delve(
            base_url=base_url or DEFAULT_BASE_URL,
            token=token,
            path=path,
            body=normalized.body,
            timeout_ms=timeout_ms,
        )

    def __call__(self, args: Dict[str, Any], **kw) -> str:
        """Registry handler: run execute() to completion and return JSON."""
        from model_tools import _run_async
        return _run_async(self.execute(args)).to_json()


def resolve_delve_config(config: Optional[Dict[str, Any]]) -> DelveToolConfig:
    """Extract tools.delve from a full runtime config dict."""
    tools_section = config.get("tools") if isinstance(config, dict) else None
    delve_section = tools_section.get("delve") if isinstance(tools_section, dict) else None
    return DelveToolConfig.from_dict(delve_section)


def create_delve_tool(
    config: Optional[Dict[str, Any]] = None,
    env: Optional[EnvSource] = None,
) -> Optional[DelveTool]:
    """
    Build the delve tool from a runtime config.

    Returns None when tools.delve.enabled is explicitly false; the runtime
    should then simply not offer the tool.
    """
    delve_config = resolve_delve_config(config)
    if not delve_config.enabled:
        logger.debug("Delve tool disabled by config")
        return None
    return DelveTool(delve_config, env)


def check_delve_requirements(
    config: Optional[Dict[str, Any]] = None,
    env: Optional[EnvSource] = None,
) -> bool:
    """True when a Delve token is available from tools.delve.token or the environment."""
    return bool(resolve_token(None, resolve_delve_config(config), env or default_env_source))
