"""Formatting helpers for machine rows."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from rich.text import Text


class FormattingMixin:
    """Small text helpers shared by the display components."""

    @staticmethod
    def _own_mark(owned: bool) -> Text:
        return Text("✓", style="green") if owned else Text("·", style="dim")

    @staticmethod
    def _status_text(active: bool) -> Text:
        if active:
            return Text("Active", style="bold green")
        return Text("Inactive", style="red")

    @staticmethod
    def _format_release(release: str) -> str:
        # API releases look like 2017-03-14T19:00:00.000000Z
        return release[:10] if release else "-"

    @staticmethod
    def _format_age(moment: Optional[datetime], now: Optional[datetime] = None) -> str:
        if moment is None:
            return "never"
        seconds = int(((now or datetime.now()) - moment).total_seconds())
        if seconds < 60:
            return f"{max(0, seconds)}s ago"
        if seconds < 3600:
            return f"{seconds // 60}m ago"
        return f"{seconds // 3600}h ago"


__all__ = ["FormattingMixin"]
