"""
Application state owned by the event processor.

Everything the renderer reads lives here. Only ``EventProcessor`` calls the
mutating methods, so the selection invariants can be kept locally: the
selected index always points into the current projection or is None.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from ..input_mode import InputModeMachine
from ..models import FilterCriteria, InputMode, Machine, SortCriteria
from ..projection import project


class AppState:
    """Mutable state of one client session."""

    def __init__(
        self,
        filter_criteria: FilterCriteria = FilterCriteria.NONE,
        sort_criteria: SortCriteria = SortCriteria.DIFFICULTY,
    ):
        self.running = True
        self.machines: Tuple[Machine, ...] = ()
        self.filter_criteria = filter_criteria
        self.sort_criteria = sort_criteria
        self.selected: Optional[int] = None
        self.input = InputModeMachine()
        self.status_message = ""

        self.selected_machine_id: Optional[int] = None
        self.selected_machine_ip: Optional[str] = None
        self.can_enter_text = False

        self.refresh_pending = False
        self.start_pending = False
        self.submit_pending = False
        self.loaded = False
        self.last_refreshed_at: Optional[datetime] = None
        self.terminal_size: Optional[Tuple[int, int]] = None

    # ------------------------------------------------------------------ #
    # Read accessors
    # ------------------------------------------------------------------ #
    @property
    def input_mode(self) -> InputMode:
        return self.input.mode

    @property
    def flag_input(self) -> str:
        return self.input.buffer

    def projection(self) -> List[Machine]:
        return project(self.machines, self.filter_criteria, self.sort_criteria)

    def selected_machine(self) -> Optional[Machine]:
        if self.selected is None:
            return None
        visible = self.projection()
        if self.selected < len(visible):
            return visible[self.selected]
        return None

    # ------------------------------------------------------------------ #
    # Mutations
    # ------------------------------------------------------------------ #
    def quit(self) -> None:
        self.running = False

    def select_next(self) -> None:
        count = len(self.projection())
        if count == 0:
            self.selected = None
        elif self.selected is None or self.selected >= count - 1:
            self.selected = 0
        else:
            self.selected += 1
        self.update_selection_fields()

    def select_previous(self) -> None:
        count = len(self.projection())
        if count == 0:
            self.selected = None
        elif self.selected is None:
            self.selected = 0
        elif self.selected == 0:
            self.selected = count - 1
        else:
            self.selected -= 1
        self.update_selection_fields()

    def cycle_filter(self) -> None:
        self.filter_criteria = self.filter_criteria.next()
        self.selected = None
        self.update_selection_fields()

    def cycle_sort(self) -> None:
        self.sort_criteria = self.sort_criteria.next()
        self.selected = None
        self.update_selection_fields()

    def replace_machines(self, machines: Iterable[Machine]) -> None:
        """Swap in a freshly fetched collection and clamp the selection."""
        self.machines = tuple(machines)
        self.loaded = True
        self.last_refreshed_at = datetime.now()
        if self.selected is not None:
            count = len(self.projection())
            if count == 0:
                self.selected = None
            elif self.selected >= count:
                self.selected = count - 1
        self.update_selection_fields()

    def set_status(self, message: str) -> None:
        self.status_message = message

    def update_selection_fields(self) -> None:
        machine = self.selected_machine()
        if machine is None:
            self.selected_machine_id = None
            self.selected_machine_ip = None
            self.can_enter_text = False
            return
        self.selected_machine_id = machine.id
        self.selected_machine_ip = machine.ip if machine.is_active else None
        self.can_enter_text = machine.accepts_flag


__all__ = ["AppState"]
