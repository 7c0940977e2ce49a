"""Header rendering for the TUI."""

from __future__ import annotations

from rich.panel import Panel
from rich.text import Text


class HeaderMixin:
    """Title line with the active filter and sort."""

    def _update_header(self, state) -> None:
        line = Text()
        line.append("Hack The Box", style="bold green")
        line.append("  •  ", style="white")
        line.append("Filter: ", style="bold white")
        line.append(state.filter_criteria.label, style="bright_cyan")
        line.append("  •  ", style="white")
        line.append("Sort: ", style="bold white")
        line.append(state.sort_criteria.label, style="bright_cyan")
        line.append("  •  ", style="white")
        line.append(f"{len(state.projection())}/{len(state.machines)} shown", style="white")
        line.append("  •  ", style="white")
        if state.refresh_pending:
            line.append("Refreshing...", style="bright_yellow")
        else:
            line.append(
                f"Updated {self._format_age(state.last_refreshed_at)}", style="dim"
            )
        self._layout["header"].update(Panel(line, style="blue"))


__all__ = ["HeaderMixin"]
