#!/usr/bin/env python3
"""
Delve CLI - Main entry point.

Usage:
    delve config                       # Show configuration
    delve config set KEY VALUE         # Set a config value
    delve call delve --body '{...}'    # Query the knowledge graph
    delve call stack_add --agent-id ID --body '{...}'
    delve call vector_search --body '{...}'
    delve doctor                       # Check configuration and dependencies
    delve version                      # Show version
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from delve_cli import __version__
from delve_cli.config import Colors, color, get_env_path

PROJECT_ROOT = Path(__file__).parent.parent.resolve()


def _setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def cmd_call(args):
    """Run the delve tool once and print the result."""
    from delve_cli.config import load_config
    from model_tools import _run_async
    from tools.delve_tool import create_delve_tool

    tool_args = {"action": args.action}
    if args.body is not None:
        try:
            tool_args["body"] = json.loads(args.body)
        except ValueError as e:
            print(color(f"✗ --body is not valid JSON: {e}", Colors.RED))
            sys.exit(1)
    if args.agent_id:
        tool_args["agent_id"] = args.agent_id
    if args.base_url:
        tool_args["baseUrl"] = args.base_url
    if args.token:
        tool_args["token"] = args.token
    if args.timeout_ms is not None:
        tool_args["timeoutMs"] = args.timeout_ms

    tool = create_delve_tool(load_config())
    if tool is None:
        print(color("✗ Delve tool is disabled (tools.delve.enabled: false)", Colors.RED))
        sys.exit(1)

    result = _run_async(tool.execute(tool_args))
    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    if not result.ok:
        sys.exit(1)


def cmd_doctor(args):
    """Check configuration and dependencies."""
    from delve_cli.doctor import run_doctor
    issues = run_doctor(args)
    if issues:
        sys.exit(1)


def cmd_config(args):
    """Configuration management."""
    from delve_cli.config import config_command
    config_command(args)


def cmd_version(args):
    """Show version."""
    print(f"Delve Agent Tools v{__version__}")
    print(f"Project: {PROJECT_ROOT}")
    print(f"Python: {sys.version.split()[0]}")

    try:
        import aiohttp
        print(f"aiohttp: {aiohttp.__version__}")
    except ImportError:
        print("aiohttp: Not installed")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="delve",
        description="Delve Agent Tools - knowledge graph tool for AI agents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    delve config                              View configuration
    delve config set tools.delve.baseUrl URL  Set a config value
    delve config set DELVE_TOKEN tok-...      Store the API token in ~/.delve/.env
    delve call delve --body '{"bonfire_id": "b1", "query": "hello"}'
    delve doctor                              Check your setup

For more help on a command:
    delve <command> --help
"""
    )

    parser.add_argument(
        "--version", "-V",
        action="store_true",
        help="Show version and exit"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose (debug) logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # =========================================================================
    # call command
    # =========================================================================
    call_parser = subparsers.add_parser(
        "call",
        help="Run the delve tool once",
        description="Send one request to the Delve API and print the result"
    )
    call_parser.add_argument(
        "action",
        help="delve, stack_add or vector_search"
    )
    call_parser.add_argument(
        "-b", "--body",
        help="Request payload as a JSON object"
    )
    call_parser.add_argument(
        "--agent-id",
        help="Agent id (required for stack_add)"
    )
    call_parser.add_argument(
        "--base-url",
        help="Override the Delve base URL"
    )
    call_parser.add_argument(
        "--token",
        help="Override the Delve API token"
    )
    call_parser.add_argument(
        "--timeout-ms",
        type=float,
        help="Request timeout in milliseconds"
    )
    call_parser.set_defaults(func=cmd_call)

    # =========================================================================
    # doctor command
    # =========================================================================
    doctor_parser = subparsers.add_parser(
        "doctor",
        help="Check configuration and dependencies",
        description="Diagnose issues with the Delve tool setup"
    )
    doctor_parser.add_argument(
        "--no-network",
        action="store_true",
        help="Skip the API connectivity check"
    )
    doctor_parser.set_defaults(func=cmd_doctor)

    # =========================================================================
    # config command
    # =========================================================================
    config_parser = subparsers.add_parser(
        "config",
        help="View and edit configuration",
        description="Manage Delve tool configuration"
    )
    config_subparsers = config_parser.add_subparsers(dest="config_command")

    config_subparsers.add_parser("show", help="Show current configuration")

    config_set = config_subparsers.add_parser("set", help="Set a configuration value")
    config_set.add_argument("key", nargs="?", help="Configuration key (e.g., tools.delve.baseUrl, DELVE_TOKEN)")
    config_set.add_argument("value", nargs="?", help="Value to set")

    config_subparsers.add_parser("path", help="Print config file path")
    config_subparsers.add_parser("env-path", help="Print .env file path")

    config_parser.set_defaults(func=cmd_config)

    # =========================================================================
    # version command
    # =========================================================================
    version_parser = subparsers.add_parser(
        "version",
        help="Show version information"
    )
    version_parser.set_defaults(func=cmd_version)

    return parser


def main(argv=None):
    """Main entry point for delve CLI."""
    # Load ~/.delve/.env, then a project .env without overriding
    env_path = get_env_path()
    if env_path.exists():
        load_dotenv(dotenv_path=env_path)
    load_dotenv(PROJECT_ROOT / ".env", override=False)

    parser = build_parser()
    args = parser.parse_args(argv)

    _setup_logging(args.verbose)

    if args.version:
        cmd_version(args)
        return

    if hasattr(args, 'func'):
        args.func(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
