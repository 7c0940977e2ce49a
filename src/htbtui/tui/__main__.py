"""
Main entry point for htbtui.

This module allows the client to be run as:
    python -m htbtui.tui
"""

from .cli import main

if __name__ == "__main__":
    main()
