"""Terminal front end: keyboard reader, Rich display and CLI."""

from .display import TUIDisplay
from .keyboard import KeyboardInput, decode_keys

__all__ = ["KeyboardInput", "TUIDisplay", "decode_keys"]
