"""Machine list rendering for the TUI."""

from __future__ import annotations

from typing import List, Optional, Tuple

from rich.align import Align
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ...models import Machine

# Rows eaten by the fixed zones, the table border and its header line.
_CHROME_ROWS = 3 + 3 + 3 + 4


class BodyMixin:
    """Render the machine table with a scroll window that follows the selection."""

    def _update_body(self, state) -> None:
        try:
            machines = state.projection()
            if not machines:
                if not state.loaded:
                    message = "Loading machines..."
                else:
                    message = "No machines match the current filter."
                self._layout["body"].update(
                    Panel(Align.center(Text(message, style="dim")), style="dim")
                )
                return

            height = self._visible_rows(state)
            start, end = self._window(len(machines), state.selected, height)
            table = self._build_table(machines[start:end], state.selected, start)
            title = f"Machines {start + 1}-{end} of {len(machines)}"
            self._layout["body"].update(Panel(table, title=title, border_style="white"))
        except (AttributeError, TypeError, KeyError, RuntimeError) as e:
            self._layout["body"].update(Panel(f"Machine list error: {e}", style="red"))

    def _build_table(
        self, rows: List[Machine], selected: Optional[int], offset: int
    ) -> Table:
        table = Table(expand=True, box=None, pad_edge=False, header_style="bold")
        table.add_column("", width=2, no_wrap=True)
        table.add_column("Name", ratio=3, no_wrap=True)
        table.add_column("OS", ratio=2, no_wrap=True)
        table.add_column("Diff", justify="right", width=5)
        table.add_column("Pts", justify="right", width=4)
        table.add_column("Rating", justify="right", width=6)
        table.add_column("Users", justify="right", width=7)
        table.add_column("Roots", justify="right", width=7)
        table.add_column("U", width=1)
        table.add_column("R", width=1)
        table.add_column("Released", width=10, no_wrap=True)
        table.add_column("Status", width=8)

        for index, machine in enumerate(rows, start=offset):
            is_selected = index == selected
            table.add_row(
                "> " if is_selected else "",
                machine.name,
                machine.os,
                str(machine.difficulty),
                str(machine.points),
                f"{machine.star:.1f}",
                f"{machine.user_owns_count:,}",
                f"{machine.root_owns_count:,}",
                self._own_mark(machine.auth_user_in_user_owns),
                self._own_mark(machine.auth_user_in_root_owns),
                self._format_release(machine.release),
                self._status_text(machine.is_active),
                style="bold yellow" if is_selected else None,
            )
        return table

    def _visible_rows(self, state) -> int:
        if state.terminal_size:
            total = state.terminal_size[1]
        else:
            total = self.console.size.height
        return max(1, total - _CHROME_ROWS)

    @staticmethod
    def _window(count: int, selected: Optional[int], height: int) -> Tuple[int, int]:
        """Slice bounds of ``height`` rows that keep ``selected`` in view."""
        if count <= height:
            return 0, count
        anchor = selected if selected is not None else 0
        start = min(max(0, anchor - height // 2), count - height)
        return start, start + height


__all__ = ["BodyMixin"]
