"""
CLI interface for htbtui.

Resolves configuration, sets up session logging and runs the interactive
client until the user quits.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Dict

from rich.console import Console

from ..app.runner import HTBApp
from ..config import load_config, require_api_key
from ..exceptions import ConfigError
from ..gateway.client import HTBClient
from ..models import FilterCriteria, SortCriteria
from ..utils.log_rotation import cleanup_excess_sessions, cleanup_old_logs, new_session_id
from ..utils.structured_logging import setup_structured_logging
from .cli_parser import args_to_config, create_tui_parser
from .display import TUIDisplay
from .keyboard import KeyboardInput

logger = logging.getLogger(__name__)


class HTBTui:
    """Main htbtui application."""

    def __init__(self):
        self.console = Console()

    async def run(self, args: argparse.Namespace) -> int:
        if args.no_color:
            self.console = Console(no_color=True)

        try:
            config = load_config(args_to_config(args), args.config)
            api_key = require_api_key(config)
            filter_criteria = FilterCriteria.parse(config["view"]["filter"])
            sort_criteria = SortCriteria.parse(config["view"]["sort"])
        except (ConfigError, ValueError) as e:
            self.console.print(f"[red]Configuration error:[/red] {e}")
            return 2

        if not sys.stdin.isatty():
            self.console.print("[red]htbtui needs an interactive terminal on stdin.[/red]")
            return 2

        session_dir = self._setup_logging(config)
        api = config["api"]
        tui = config["tui"]
        try:
            async with HTBClient(
                api_key,
                api["base_url"],
                per_page=int(api["per_page"]),
                timeout=float(api["timeout"]),
                enrich_concurrency=int(api["enrich_concurrency"]),
            ) as client:
                display = TUIDisplay(console=self.console)
                app = HTBApp(
                    client,
                    display,
                    filter_criteria=filter_criteria,
                    sort_criteria=sort_criteria,
                    tick_interval=float(tui["tick_interval"]),
                    refresh_interval=float(tui["refresh_interval"] or 0),
                )
                with KeyboardInput(app.bus, mouse=bool(tui["mouse"])), display:
                    await app.run()
        except KeyboardInterrupt:
            self.console.print("\n[yellow]Interrupted by user[/yellow]")
            return 2
        except OSError as e:
            logger.error("Fatal terminal error", exc_info=True)
            self.console.print(f"[red]Error: {e}[/red]")
            self.console.print(f"Logs: {session_dir}")
            return 1
        return 0

    def _setup_logging(self, config: Dict[str, Any]) -> Path:
        log_config = config["logging"]
        logs_dir = Path(str(log_config["logs_dir"])).expanduser()
        session_dir = setup_structured_logging(
            logs_dir, new_session_id(), level=str(log_config["level"])
        )
        removed = cleanup_old_logs(logs_dir, int(log_config["retention_days"]))
        removed += cleanup_excess_sessions(logs_dir, int(log_config["max_sessions"]))
        if removed:
            logger.info("Removed %d old session log directories", removed)
        logger.info("Session logs: %s", session_dir)
        return session_dir


def main() -> None:
    parser = create_tui_parser()
    args = parser.parse_args()
    tui = HTBTui()
    exit_code = asyncio.run(tui.run(args))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
