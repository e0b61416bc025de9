"""
Configuration management for Delve Agent Tools.

Config files are stored in ~/.delve/ for easy access:
- ~/.delve/config.yaml  - All settings (tools.delve.baseUrl, timeoutMs, ...)
- ~/.delve/.env         - API tokens and secrets

This module provides:
- delve config          - Show current configuration
- delve config set      - Set a specific value
- delve config path     - Print the config file path
"""

import copy
import os
import sys
from pathlib import Path
from typing import Dict, Any, Optional

import yaml
from dotenv import dotenv_values

# ANSI colors
class Colors:
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"

def color(text: str, *codes) -> str:
    if not sys.stdout.isatty():
        return text
    return "".join(codes) + text + Colors.RESET


# =============================================================================
# Config paths
# =============================================================================

def get_delve_home() -> Path:
    """Get the Delve home directory (~/.delve)."""
    return Path(os.getenv("DELVE_HOME", Path.home() / ".delve"))

def get_config_path() -> Path:
    """Get the main config file path."""
    return get_delve_home() / "config.yaml"

def get_env_path() -> Path:
    """Get the .env file path (for API tokens)."""
    return get_delve_home() / ".env"

def get_project_root() -> Path:
    """Get the project installation directory."""
    return Path(__file__).parent.parent.resolve()

def ensure_delve_home():
    """Ensure ~/.delve exists."""
    get_delve_home().mkdir(parents=True, exist_ok=True)


# =============================================================================
# Config loading/saving
# =============================================================================

DEFAULT_CONFIG = {
    "tools": {
        "delve": {
            "enabled": True,
            "baseUrl": "http://localhost:8000",
            "timeoutMs": 30000,
        },
    },
}

# Keys that belong in .env rather than config.yaml
SECRET_KEYS = ["DELVE_TOKEN", "DELVE_BASE_URL"]


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def load_config() -> Dict[str, Any]:
    """Load configuration from ~/.delve/config.yaml merged over the defaults."""
    config_path = get_config_path()

    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_path.exists():
        try:
            with open(config_path) as f:
                user_config = yaml.safe_load(f) or {}
            if isinstance(user_config, dict):
                _deep_merge(config, user_config)
            else:
                print(f"Warning: Ignoring {config_path}: top level must be a mapping")
        except (OSError, yaml.YAMLError) as e:
            print(f"Warning: Failed to load config: {e}")

    return config


def save_config(config: Dict[str, Any]):
    """Save configuration to ~/.delve/config.yaml."""
    ensure_delve_home()
    config_path = get_config_path()

    with open(config_path, 'w') as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)


def load_env() -> Dict[str, str]:
    """Load variables from ~/.delve/.env."""
    env_path = get_env_path()
    if not env_path.exists():
        return {}
    return {key: value for key, value in dotenv_values(env_path).items() if value is not None}


def save_env_value(key: str, value: str):
    """Save or update a value in ~/.delve/.env."""
    ensure_delve_home()
    env_path = get_env_path()

    # Load existing
    lines = []
    if env_path.exists():
        with open(env_path) as f:
            lines = f.readlines()

    # Find and update or append
    found = False
    for i, line in enumerate(lines):
        if line.strip().startswith(f"{key}="):
            lines[i] = f"{key}={value}\n"
            found = True
            break

    if not found:
        if lines and not lines[-1].endswith("\n"):
            lines[-1] += "\n"
        lines.append(f"{key}={value}\n")

    with open(env_path, 'w') as f:
        f.writelines(lines)


def get_env_value(key: str) -> Optional[str]:
    """Get a value from the environment or ~/.delve/.env."""
    # Check environment first
    if key in os.environ:
        return os.environ[key]

    # Then check .env file
    return load_env().get(key)


# =============================================================================
# Config display
# =============================================================================

def redact_key(key: Optional[str]) -> str:
    """Redact an API token for display."""
    if not key:
        return color("(not set)", Colors.DIM)
    if len(key) < 12:
        return "***"
    return key[:4] + "..." + key[-4:]


def show_config():
    """Display current configuration."""
    config = load_config()
    delve = config.get("tools", {}).get("delve", {}) or {}

    print()
    print(color("┌─────────────────────────────────────────────────────────┐", Colors.CYAN))
    print(color("│              🔎 Delve Configuration                     │", Colors.CYAN))
    print(color("└─────────────────────────────────────────────────────────┘", Colors.CYAN))

    # Paths
    print()
    print(color("◆ Paths", Colors.CYAN, Colors.BOLD))
    print(f"  Config:       {get_config_path()}")
    print(f"  Secrets:      {get_env_path()}")
    print(f"  Install:      {get_project_root()}")

    # Tool settings
    print()
    print(color("◆ Delve Tool", Colors.CYAN, Colors.BOLD))
    enabled = delve.get("enabled", True) is not False
    print(f"  Enabled:      {'yes' if enabled else 'no'}")
    print(f"  Base URL:     {delve.get('baseUrl') or get_env_value('DELVE_BASE_URL') or 'http://localhost:8000'}")
    print(f"  Timeout:      {delve.get('timeoutMs', 30000)}ms")
    print(f"  Token:        {redact_key(delve.get('token') or get_env_value('DELVE_TOKEN'))}")

    print()
    print(color("─" * 60, Colors.DIM))
    print(color("  delve config set tools.delve.baseUrl URL", Colors.DIM))
    print(color("  delve config set DELVE_TOKEN TOKEN", Colors.DIM))
    print(color("  delve doctor           # Check setup", Colors.DIM))
    print()


def _coerce_value(value: str) -> Any:
    if value.lower() in ('true', 'yes', 'on'):
        return True
    if value.lower() in ('false', 'no', 'off'):
        return False
    if value.isdigit():
        return int(value)
    if value.replace('.', '', 1).isdigit():
        return float(value)
    return value


def set_config_value(key: str, value: str):
    """Set a configuration value."""
    # Secrets go to .env
    if key.upper() in SECRET_KEYS:
        save_env_value(key.upper(), value)
        print(f"✓ Set {key.upper()} in {get_env_path()}")
        return

    # Otherwise it goes to config.yaml
    config = load_config()

    # Handle nested keys (e.g., "tools.delve.baseUrl")
    parts = key.split('.')
    current = config

    for part in parts[:-1]:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]

    coerced = _coerce_value(value)
    current[parts[-1]] = coerced
    save_config(config)
    print(f"✓ Set {key} = {coerced} in {get_config_path()}")


# =============================================================================
# Command handler
# =============================================================================

def config_command(args):
    """Handle config subcommands."""
    subcmd = getattr(args, 'config_command', None)

    if subcmd is None or subcmd == "show":
        show_config()

    elif subcmd == "set":
        key = getattr(args, 'key', None)
        value = getattr(args, 'value', None)
        if not key or value is None:
            print("Usage: delve config set KEY VALUE")
            print()
            print("Examples:")
            print("  delve config set tools.delve.baseUrl https://delve.example.com")
            print("  delve config set tools.delve.timeoutMs 10000")
            print("  delve config set DELVE_TOKEN tok-...")
            sys.exit(1)
        set_config_value(key, value)

    elif subcmd == "path":
        print(get_config_path())

    elif subcmd == "env-path":
        print(get_env_path())

    else:
        print(f"Unknown config command: {subcmd}")
        sys.exit(1)
