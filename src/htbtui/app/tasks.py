"""Background units of work that talk to the API and report back on the bus."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Set

import aiohttp

from ..events import (
    Event,
    EventBus,
    RefreshResult,
    StartResult,
    SubmitResult,
)
from ..exceptions import GatewayError
from ..gateway.client import HTBClient

logger = logging.getLogger(__name__)


class TaskOrchestrator:
    """Spawns one asyncio task per outstanding request.

    Each task performs exactly one gateway call and posts exactly one result
    event. Tasks never see ``AppState``; the processor applies their results
    when it consumes the event.
    """

    def __init__(self, client: HTBClient, bus: EventBus):
        self.client = client
        self.bus = bus
        self._tasks: Set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def spawn_refresh(self) -> asyncio.Task:
        async def work() -> Event:
            machines = await self.client.list_all()
            return RefreshResult(machines=tuple(machines))

        return self._spawn(
            "refresh", work, lambda err: RefreshResult(error=f"Refresh failed: {err}")
        )

    def spawn_start(self, machine_id: int, name: str = "") -> asyncio.Task:
        async def work() -> Event:
            return StartResult(message=await self.client.start_machine(machine_id, name))

        return self._spawn(f"start:{machine_id}", work, lambda err: StartResult(error=err))

    def spawn_submit(self, machine_id: int, token: str, name: str = "") -> asyncio.Task:
        async def work() -> Event:
            message = await self.client.submit_flag(machine_id, token, name)
            return SubmitResult(message=message)

        return self._spawn(f"submit:{machine_id}", work, lambda err: SubmitResult(error=err))

    async def shutdown(self) -> None:
        """Cancel whatever is still running when the app exits."""
        pending = list(self._tasks)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.info("Cancelled %d background task(s) on shutdown", len(pending))

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _spawn(
        self,
        label: str,
        work: Callable[[], Awaitable[Event]],
        on_error: Callable[[str], Event],
    ) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(
            self._run(label, work, on_error), name=f"htbtui:{label}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug("Spawned task %s (in flight: %d)", label, len(self._tasks))
        return task

    async def _run(
        self,
        label: str,
        work: Callable[[], Awaitable[Event]],
        on_error: Callable[[str], Event],
    ) -> None:
        try:
            event = await work()
        except GatewayError as e:
            logger.warning("Task %s failed: %s", label, e)
            event = on_error(str(e))
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            logger.warning("Task %s transport error: %s", label, e)
            event = on_error(f"{type(e).__name__}: {e}")
        except Exception as e:
            logger.error("Task %s crashed", label, exc_info=True)
            event = on_error(f"Unexpected error: {type(e).__name__}: {e}")
        self.bus.post(event)
        logger.debug("Task %s finished -> %s", label, type(event).__name__)


__all__ = ["TaskOrchestrator"]
