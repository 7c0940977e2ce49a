"""Info, flag input and key help rendering for the TUI."""

from __future__ import annotations

from rich.panel import Panel
from rich.text import Text

_NORMAL_HELP = (
    ("↑/↓", "move"),
    ("f", "filter"),
    ("s", "sort"),
    ("Enter", "spawn"),
    ("a", "flag"),
    ("r", "refresh"),
    ("q", "quit"),
)
_TEXT_HELP = (
    ("Enter", "submit flag"),
    ("Esc", "back"),
    ("Backspace", "delete"),
)


class FooterMixin:
    """Render status message, flag input box and key help."""

    def _update_info(self, state) -> None:
        line = Text(state.status_message or "", style="bright_cyan")
        if state.selected_machine_ip:
            if state.status_message:
                line.append("  •  ", style="white")
            line.append("IP: ", style="bold white")
            line.append(state.selected_machine_ip, style="bright_green")
        self._layout["info"].update(Panel(line, title="Info", border_style="cyan"))

    def _update_input(self, state) -> None:
        show = state.can_enter_text or state.input.is_text_entry
        self._layout["input"].visible = show
        if not show:
            return
        machine = state.selected_machine()
        name = machine.name if machine else "?"
        if state.input.is_text_entry:
            body = Text(state.flag_input, style="bright_white")
            body.append("█", style="blink")
            border = "yellow"
            title = f"Flag for {name}"
            if state.submit_pending:
                title += " (submitting...)"
        else:
            body = Text("Press 'a' to enter a flag", style="dim")
            border = "dim"
            title = f"Flag for {name}"
        self._layout["input"].update(Panel(body, title=title, border_style=border))

    def _update_footer(self, state) -> None:
        pairs = _TEXT_HELP if state.input.is_text_entry else _NORMAL_HELP
        line = Text()
        for i, (key, action) in enumerate(pairs):
            if i:
                line.append("  ")
            line.append(key, style="bold blue")
            line.append(f" {action}", style="white")
        self._layout["footer"].update(Panel(line, style="blue"))


__all__ = ["FooterMixin"]
