"""The single consumer of the event bus and sole mutator of ``AppState``."""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Optional, Type

from ..events import (
    EVENT_TYPES,
    Event,
    EventBus,
    KeyPress,
    ListChanged,
    PointerEvent,
    RefreshResult,
    RequestRefresh,
    RequestStart,
    RequestSubmitToken,
    Resize,
    StartResult,
    StatusMessage,
    SubmitResult,
    Tick,
)
from .state import AppState
from .tasks import TaskOrchestrator

logger = logging.getLogger(__name__)


class EventProcessor:
    """Applies events to application state and issues background requests."""

    def __init__(
        self,
        state: AppState,
        bus: EventBus,
        orchestrator: TaskOrchestrator,
        refresh_interval: float = 0.0,
    ):
        """
        Initialize event processor.

        Args:
            state: Application state to update
            bus: Bus used for self-posted follow-up events
            orchestrator: Spawns network work for refresh/start/submit
            refresh_interval: Seconds between automatic refreshes (0 disables)
        """
        self.state = state
        self.bus = bus
        self.orchestrator = orchestrator
        self.refresh_interval = refresh_interval
        self.events_processed = 0

        self._refresh_again = False
        self._last_refresh_done: Optional[float] = None
        self._event_handlers = self._setup_handlers()
        self._normal_keys = self._setup_normal_keys()

        missing = [t.__name__ for t in EVENT_TYPES if t not in self._event_handlers]
        if missing:
            raise RuntimeError(f"No handler for event type(s): {', '.join(missing)}")

    def _setup_handlers(self) -> Dict[Type[Event], Callable]:
        """Setup event type to handler mapping."""
        return {
            # Input device and timer
            Tick: self._handle_tick,
            KeyPress: self._handle_key_press,
            PointerEvent: self._handle_pointer,
            Resize: self._handle_resize,
            # Refresh cycle
            RequestRefresh: self._handle_request_refresh,
            ListChanged: self._handle_request_refresh,
            RefreshResult: self._handle_refresh_result,
            # Actions
            RequestStart: self._handle_request_start,
            StartResult: self._handle_start_result,
            RequestSubmitToken: self._handle_request_submit,
            SubmitResult: self._handle_submit_result,
            StatusMessage: self._handle_status_message,
        }

    def _setup_normal_keys(self) -> Dict[str, Callable[[], None]]:
        return {
            "q": self.state.quit,
            "ctrl_c": self.state.quit,
            "f": self.state.cycle_filter,
            "s": self.state.cycle_sort,
            "down": self.state.select_next,
            "j": self.state.select_next,
            "up": self.state.select_previous,
            "k": self.state.select_previous,
            "a": self.enter_text_mode,
            "enter": self.request_start,
            "r": self.request_refresh,
        }

    def process_event(self, event: Event) -> None:
        """Process a single event."""
        handler = self._event_handlers.get(type(event))
        if handler is None:
            logger.warning("No handler for event type: %s", type(event).__name__)
            return

        self.events_processed += 1
        t0 = time.perf_counter()
        try:
            handler(event)
        except (AttributeError, TypeError, ValueError, KeyError) as e:
            logger.error("Error processing event %s: %s", type(event).__name__, e)
            self.state.set_status(f"Event processing error: {e}")
            return
        if not isinstance(event, Tick):
            logger.debug(
                "event_processed type=%s dur_ms=%.2f",
                type(event).__name__,
                (time.perf_counter() - t0) * 1000,
            )

    # ------------------------------------------------------------------ #
    # Commands
    # ------------------------------------------------------------------ #
    def request_refresh(self) -> None:
        self.bus.post(RequestRefresh())

    def enter_text_mode(self) -> None:
        self.state.input.enter(self.state.can_enter_text)

    def request_start(self) -> None:
        machine = self.state.selected_machine()
        if machine is None:
            self.state.set_status("No machine selected.")
            return
        if machine.is_active:
            self.state.set_status(f"Machine {machine.name} is already active.")
            return
        if self.state.start_pending:
            self.state.set_status("A spawn request is already in progress.")
            return
        # Set before posting: a second Enter may be processed before RequestStart.
        self.state.start_pending = True
        self.bus.post(RequestStart(machine_id=machine.id, name=machine.name))

    def submit_flag(self) -> None:
        if self.state.submit_pending:
            self.state.set_status("A flag submission is already in progress.")
            return
        flag = self.state.input.submission()
        if flag is None:
            self.state.set_status("Type a flag before submitting.")
            return
        machine = self.state.selected_machine()
        if machine is None or not machine.accepts_flag:
            self.state.set_status("The selected machine is not accepting flags.")
            return
        self.state.submit_pending = True
        self.bus.post(
            RequestSubmitToken(machine_id=machine.id, token=flag, name=machine.name)
        )

    # ------------------------------------------------------------------ #
    # Input handlers
    # ------------------------------------------------------------------ #
    def _handle_tick(self, event: Tick) -> None:
        if self.refresh_interval <= 0 or self._last_refresh_done is None:
            return
        if self.state.refresh_pending:
            return
        if time.monotonic() - self._last_refresh_done >= self.refresh_interval:
            logger.debug("Auto refresh after %.0fs", self.refresh_interval)
            self.request_refresh()

    def _handle_key_press(self, event: KeyPress) -> None:
        key = event.key
        if key == "ctrl_c":
            self.state.quit()
            return

        if not self.state.input.is_text_entry:
            action = self._normal_keys.get(key)
            if action:
                action()
            return

        if key == "esc":
            self.state.input.cancel()
        elif key == "enter":
            self.submit_flag()
        elif key == "backspace":
            self.state.input.backspace()
        elif len(key) == 1 and key.isprintable():
            self.state.input.append(key)

    def _handle_pointer(self, event: PointerEvent) -> None:
        if self.state.input.is_text_entry:
            return
        if event.kind == "scroll_down":
            self.state.select_next()
        elif event.kind == "scroll_up":
            self.state.select_previous()

    def _handle_resize(self, event: Resize) -> None:
        self.state.terminal_size = (event.columns, event.rows)

    # ------------------------------------------------------------------ #
    # Refresh cycle
    # ------------------------------------------------------------------ #
    def _handle_request_refresh(self, event: Event) -> None:
        if self.state.refresh_pending:
            # The running fetch may predate the change, so fetch once more.
            self._refresh_again = True
            return
        self.state.refresh_pending = True
        self.orchestrator.spawn_refresh()

    def _handle_refresh_result(self, event: RefreshResult) -> None:
        self.state.refresh_pending = False
        self._last_refresh_done = time.monotonic()
        if event.ok:
            self.state.replace_machines(event.machines or ())
            logger.info("Machine list refreshed (%d machines)", len(self.state.machines))
        else:
            self.state.set_status(event.error or "Refresh failed")
        if self._refresh_again:
            self._refresh_again = False
            self._handle_request_refresh(event)

    # ------------------------------------------------------------------ #
    # Actions
    # ------------------------------------------------------------------ #
    def _handle_request_start(self, event: RequestStart) -> None:
        self.state.start_pending = True
        self.state.set_status(f"Spawning {event.name or event.machine_id}...")
        self.orchestrator.spawn_start(event.machine_id, event.name)

    def _handle_start_result(self, event: StartResult) -> None:
        self.state.start_pending = False
        self.state.set_status(event.message if event.ok else event.error)
        if event.ok:
            self.bus.post(ListChanged())

    def _handle_request_submit(self, event: RequestSubmitToken) -> None:
        self.state.submit_pending = True
        self.state.set_status(f"Submitting flag for {event.name or event.machine_id}...")
        self.orchestrator.spawn_submit(event.machine_id, event.token, event.name)

    def _handle_submit_result(self, event: SubmitResult) -> None:
        self.state.submit_pending = False
        self.state.input.complete(event.ok)
        self.state.set_status(event.message if event.ok else event.error)
        if event.ok:
            self.bus.post(ListChanged())

    def _handle_status_message(self, event: StatusMessage) -> None:
        self.state.set_status(event.text)


__all__ = ["EventProcessor"]
