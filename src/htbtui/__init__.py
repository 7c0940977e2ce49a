"""htbtui public API surface.

This package intentionally exposes only the stable entry points needed by
consumers; everything else should be considered internal and may change.
"""

from .app import HTBApp
from .gateway import HTBClient
from .models import FilterCriteria, Machine, SortCriteria
from .projection import project
from .version import __version__

__all__ = [
    "FilterCriteria",
    "HTBApp",
    "HTBClient",
    "Machine",
    "SortCriteria",
    "__version__",
    "project",
]
