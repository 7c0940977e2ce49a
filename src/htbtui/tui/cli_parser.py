"""Argument parser construction for htbtui."""

from __future__ import annotations

import argparse
from pathlib import Path

from .. import __version__
from ..models import FilterCriteria, SortCriteria


def create_tui_parser() -> argparse.ArgumentParser:
    """Create argument parser for the TUI with clear grouping and examples."""
    parser = argparse.ArgumentParser(
        prog="htbtui",
        description="Browse, spawn and own Hack The Box machines from the terminal",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  # Uses HTB_API_KEY from the environment or .env\n"
            "  htbtui\n\n"
            "  # Start on machines without a root own, sorted by name\n"
            "  htbtui --filter root --sort name\n\n"
            "  # Re-fetch the catalog every five minutes\n"
            "  htbtui --refresh-interval 300\n"
        ),
    )

    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--config", type=Path, help="YAML config file (default: ./htbtui.yaml)"
    )

    g_api = parser.add_argument_group("API")
    g_api.add_argument("--api-url", help="API root URL")
    g_api.add_argument(
        "--timeout", type=float, help="Seconds allowed per request (default: 30)"
    )
    g_api.add_argument(
        "--per-page", type=int, help="Page size for catalog listings (default: 100)"
    )

    g_view = parser.add_argument_group("View")
    g_view.add_argument(
        "--filter",
        choices=[c.value for c in FilterCriteria],
        help="Initial filter (default: none)",
    )
    g_view.add_argument(
        "--sort",
        choices=[c.value for c in SortCriteria],
        help="Initial sort (default: difficulty)",
    )
    g_view.add_argument(
        "--refresh-interval",
        type=float,
        help="Seconds between automatic refreshes, 0 disables (default: 0)",
    )
    g_view.add_argument(
        "--no-mouse", action="store_true", help="Do not capture mouse wheel events"
    )
    g_view.add_argument(
        "--no-color", action="store_true", help="Disable colored output"
    )

    g_logs = parser.add_argument_group("Logging")
    g_logs.add_argument("--logs-dir", type=Path, help="Directory for session logs")
    g_logs.add_argument(
        "--debug", action="store_true", help="Write debug-level logs"
    )

    return parser


def args_to_config(args: argparse.Namespace) -> dict:
    """Map parsed flags onto the configuration layout (unset flags are None)."""
    return {
        "api": {
            "base_url": args.api_url,
            "timeout": args.timeout,
            "per_page": args.per_page,
        },
        "view": {"filter": args.filter, "sort": args.sort},
        "tui": {
            "refresh_interval": args.refresh_interval,
            "mouse": False if args.no_mouse else None,
        },
        "logging": {
            "logs_dir": args.logs_dir,
            "level": "DEBUG" if args.debug else None,
        },
    }


__all__ = ["args_to_config", "create_tui_parser"]
