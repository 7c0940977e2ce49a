"""Layout creation for the TUI."""

from __future__ import annotations

from rich.layout import Layout
from rich.panel import Panel


class LayoutMixin:
    """Provides the header / machine list / info / flag input / footer zones."""

    def _create_layout(self) -> Layout:
        layout = Layout()
        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="body", ratio=1),
            Layout(name="info", size=3),
            Layout(name="input", size=3, visible=False),
            Layout(name="footer", size=3),
        )
        layout["header"].update(Panel("Initializing...", style="blue"))
        layout["body"].update(Panel("Loading machines...", style="dim"))
        layout["info"].update(Panel("", title="Info"))
        layout["footer"].update(Panel("Starting...", style="blue"))
        return layout


__all__ = ["LayoutMixin"]
