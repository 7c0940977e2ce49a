"""Application core: state, event processing, background tasks, control loop."""

from .processor import EventProcessor
from .runner import HTBApp
from .state import AppState
from .tasks import TaskOrchestrator

__all__ = ["AppState", "EventProcessor", "HTBApp", "TaskOrchestrator"]
