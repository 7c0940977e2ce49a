"""The cooperative control loop: consume the bus, apply events, render."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

from ..events import EventBus, RequestRefresh, Tick
from ..gateway.client import HTBClient
from ..models import FilterCriteria, SortCriteria
from .processor import EventProcessor
from .state import AppState
from .tasks import TaskOrchestrator

logger = logging.getLogger(__name__)


class Renderer(Protocol):
    def render(self, state: AppState) -> None: ...


class HTBApp:
    """Owns the bus, the state and the processor for one session."""

    def __init__(
        self,
        client: HTBClient,
        renderer: Optional[Renderer] = None,
        *,
        filter_criteria: FilterCriteria = FilterCriteria.NONE,
        sort_criteria: SortCriteria = SortCriteria.DIFFICULTY,
        tick_interval: float = 1.0,
        refresh_interval: float = 0.0,
    ):
        self.bus = EventBus()
        self.state = AppState(filter_criteria, sort_criteria)
        self.orchestrator = TaskOrchestrator(client, self.bus)
        self.processor = EventProcessor(
            self.state, self.bus, self.orchestrator, refresh_interval=refresh_interval
        )
        self.renderer = renderer
        self.tick_interval = tick_interval

    async def run(self) -> None:
        """Run until the user quits. Never blocks on the network."""
        loop = asyncio.get_running_loop()
        self.bus.bind(loop)
        self.bus.post(RequestRefresh())
        ticker = loop.create_task(self._ticker(), name="htbtui:ticker")
        logger.info("Control loop started")
        try:
            await self._consume()
        finally:
            ticker.cancel()
            await asyncio.gather(ticker, return_exceptions=True)
            await self.orchestrator.shutdown()
            logger.info(
                "Control loop stopped after %d events", self.processor.events_processed
            )

    async def _consume(self) -> None:
        self._render()
        while self.state.running:
            event = await self.bus.get()
            self.processor.process_event(event)
            # Apply everything already queued before paying for a redraw.
            for queued in self.bus.drain():
                if not self.state.running:
                    break
                self.processor.process_event(queued)
            if self.state.running:
                self._render()

    async def _ticker(self) -> None:
        while True:
            await asyncio.sleep(self.tick_interval)
            self.bus.post(Tick())

    def _render(self) -> None:
        if self.renderer is not None:
            self.renderer.render(self.state)


__all__ = ["HTBApp", "Renderer"]
