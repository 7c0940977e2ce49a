"""Composable pieces of the TUI display."""

from .body import BodyMixin
from .footer import FooterMixin
from .formatting import FormattingMixin
from .header import HeaderMixin
from .layout import LayoutMixin

__all__ = [
    "BodyMixin",
    "FooterMixin",
    "FormattingMixin",
    "HeaderMixin",
    "LayoutMixin",
]
