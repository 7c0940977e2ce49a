"""
Core TUI display wiring: composes mixins for layout and rendering. The
drawing itself lives in display_components; this module owns the Rich Live
session and the render entry point the control loop calls.
"""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.live import Live

from ..app.state import AppState
from .display_components import (
    BodyMixin,
    FooterMixin,
    FormattingMixin,
    HeaderMixin,
    LayoutMixin,
)


class TUIDisplay(
    BodyMixin,
    HeaderMixin,
    FooterMixin,
    FormattingMixin,
    LayoutMixin,
):
    """Main TUI display using Rich."""

    def __init__(self, console: Optional[Console] = None, alt_screen: bool = True):
        self._logger = logging.getLogger(__name__)
        self.console = console or Console()
        self._alt_screen = alt_screen
        self._live: Optional[Live] = None
        self._frames = 0
        self._layout = self._create_layout()

    @property
    def layout(self):
        return self._layout

    def __enter__(self) -> "TUIDisplay":
        self._live = Live(
            self._layout,
            console=self.console,
            auto_refresh=False,
            screen=self._alt_screen,
            transient=self._alt_screen,
            redirect_stdout=False,
            redirect_stderr=False,
            vertical_overflow="crop",
        )
        self._live.start()
        self._logger.info("TUI started")
        return self

    def __exit__(self, *args) -> None:
        if self._live:
            self._live.stop()
            self._live = None
        self._logger.info("TUI stopped after %d frames", self._frames)

    def render(self, state: AppState) -> None:
        """Redraw every zone from ``state``. Safe to call without a Live session."""
        self._update_header(state)
        self._update_body(state)
        self._update_info(state)
        self._update_input(state)
        self._update_footer(state)
        self._frames += 1
        if self._live:
            self._live.update(self._layout, refresh=True)


__all__ = ["TUIDisplay"]
