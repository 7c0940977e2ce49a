"""Two-state machine deciding whether keys are commands or flag text."""

from __future__ import annotations

import logging
from typing import Optional

from .models import InputMode

__all__ = ["InputModeMachine"]

logger = logging.getLogger(__name__)


class InputModeMachine:
    """NORMAL <-> TEXT_ENTRY transitions plus the flag buffer."""

    def __init__(self) -> None:
        self.mode = InputMode.NORMAL
        self.buffer = ""

    @property
    def is_text_entry(self) -> bool:
        return self.mode is InputMode.TEXT_ENTRY

    def enter(self, eligible: bool) -> bool:
        """Switch to TEXT_ENTRY when the selected machine accepts a flag."""
        if self.is_text_entry or not eligible:
            return False
        self.mode = InputMode.TEXT_ENTRY
        logger.debug("input mode -> %s", self.mode.value)
        return True

    def cancel(self) -> None:
        # The buffer survives so a half-typed flag is still there next time.
        if self.is_text_entry:
            self.mode = InputMode.NORMAL
            logger.debug("input mode -> %s", self.mode.value)

    def append(self, text: str) -> None:
        if self.is_text_entry:
            self.buffer += text

    def backspace(self) -> None:
        if self.is_text_entry:
            self.buffer = self.buffer[:-1]

    def submission(self) -> Optional[str]:
        """Flag to submit, or None when there is nothing to send."""
        if not self.is_text_entry:
            return None
        flag = self.buffer.strip()
        return flag or None

    def complete(self, success: bool) -> None:
        """Apply the outcome of a submitted flag.

        Accepted flags clear the buffer and return to NORMAL; rejected ones
        stay in TEXT_ENTRY with the text kept for correction.
        """
        if success:
            self.buffer = ""
            self.mode = InputMode.NORMAL
            logger.debug("input mode -> %s", self.mode.value)
