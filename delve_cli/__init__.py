"""
Delve CLI - Command-line interface for Delve Agent Tools.

Provides subcommands for:
- delve config         - Show or change configuration
- delve call           - Run the delve tool once
- delve doctor         - Check configuration and dependencies
- delve version        - Show version
"""

__version__ = "0.1.0"
