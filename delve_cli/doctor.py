"""
Doctor command for delve CLI.

Diagnoses issues with the Delve tool setup.
"""

import sys

from delve_cli.config import (
    Colors,
    color,
    get_config_path,
    get_delve_home,
    get_env_path,
    get_env_value,
    load_config,
)


def check_ok(text: str, detail: str = ""):
    print(f"  {color('✓', Colors.GREEN)} {text}" + (f" {color(detail, Colors.DIM)}" if detail else ""))

def check_warn(text: str, detail: str = ""):
    print(f"  {color('⚠', Colors.YELLOW)} {text}" + (f" {color(detail, Colors.DIM)}" if detail else ""))

def check_fail(text: str, detail: str = ""):
    print(f"  {color('✗', Colors.RED)} {text}" + (f" {color(detail, Colors.DIM)}" if detail else ""))

def check_info(text: str):
    print(f"    {color('→', Colors.CYAN)} {text}")


def run_doctor(args):
    """Run diagnostic checks. Returns the list of issues found."""
    skip_network = getattr(args, 'no_network', False)

    issues = []

    print()
    print(color("┌─────────────────────────────────────────────────────────┐", Colors.CYAN))
    print(color("│                 🩺 Delve Doctor                         │", Colors.CYAN))
    print(color("└─────────────────────────────────────────────────────────┘", Colors.CYAN))

    # =========================================================================
    # Check: Python version
    # =========================================================================
    print()
    print(color("◆ Python Environment", Colors.CYAN, Colors.BOLD))

    py_version = sys.version_info
    if py_version >= (3, 10):
        check_ok(f"Python {py_version.major}.{py_version.minor}.{py_version.micro}")
    else:
        check_fail(f"Python {py_version.major}.{py_version.minor}.{py_version.micro}", "(3.10+ required)")
        issues.append("Upgrade Python to 3.10+")

    # =========================================================================
    # Check: Required packages
    # =========================================================================
    print()
    print(color("◆ Required Packages", Colors.CYAN, Colors.BOLD))

    required_packages = [
        ("aiohttp", "aiohttp"),
        ("dotenv", "python-dotenv"),
        ("yaml", "PyYAML"),
        ("httpx", "HTTPX"),
    ]

    for module, name in required_packages:
        try:
            __import__(module)
            check_ok(name)
        except ImportError:
            check_fail(name, "(missing)")
            issues.append(f"Install {name}: pip install {name}")

    # =========================================================================
    # Check: Configuration files
    # =========================================================================
    print()
    print(color("◆ Configuration Files", Colors.CYAN, Colors.BOLD))

    if get_delve_home().exists():
        check_ok(f"{get_delve_home()} exists")
    else:
        check_warn(f"{get_delve_home()} not found", "(will be created on first 'delve config set')")

    if get_config_path().exists():
        check_ok("config.yaml exists")
    else:
        check_warn("config.yaml not found", "(using defaults)")

    if get_env_path().exists():
        check_ok(".env file exists")
    else:
        check_warn(".env file not found")

    # =========================================================================
    # Check: Delve tool
    # =========================================================================
    print()
    print(color("◆ Delve Tool", Colors.CYAN, Colors.BOLD))

    from tools.delve_tool import resolve_base_url, resolve_delve_config, resolve_token

    config = load_config()
    delve_config = resolve_delve_config(config)
    base_url = None

    if not delve_config.enabled:
        check_warn("Delve tool disabled", "(tools.delve.enabled: false)")
    else:
        check_ok("Delve tool enabled")

        base_url, error = resolve_base_url(None, delve_config, get_env_value)
        if error:
            check_fail("Base URL is not a valid absolute URL")
            check_info("delve config set tools.delve.baseUrl https://delve.example.com")
            issues.append("Fix tools.delve.baseUrl or DELVE_BASE_URL")
        else:
            check_ok("Base URL", f"({base_url})")

        token = resolve_token(None, delve_config, get_env_value)
        if token:
            check_ok("API token configured")
        else:
            check_fail("API token not configured")
            check_info("delve config set DELVE_TOKEN <token>")
            issues.append("Set tools.delve.token or DELVE_TOKEN")

    # =========================================================================
    # Check: API connectivity
    # =========================================================================
    if base_url and not skip_network:
        print()
        print(color("◆ API Connectivity", Colors.CYAN, Colors.BOLD))
        try:
            import httpx
            response = httpx.get(base_url, timeout=10)
            check_ok("Delve API reachable", f"(HTTP {response.status_code})")
        except Exception as e:
            check_fail("Delve API unreachable", f"({e})")
            issues.append(f"Check that the Delve server is running at {base_url}")

    # =========================================================================
    # Summary
    # =========================================================================
    print()
    if issues:
        print(color("─" * 60, Colors.YELLOW))
        print(color(f"  Found {len(issues)} issue(s) to address:", Colors.YELLOW, Colors.BOLD))
        print()
        for i, issue in enumerate(issues, 1):
            print(f"  {i}. {issue}")
    else:
        print(color("─" * 60, Colors.GREEN))
        print(color("  All checks passed! 🎉", Colors.GREEN, Colors.BOLD))

    print()
    return issues
