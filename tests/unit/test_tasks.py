import asyncio

import aiohttp
import pytest

from htbtui.app.tasks import TaskOrchestrator
from htbtui.events import EventBus, RefreshResult, StartResult, SubmitResult
from htbtui.exceptions import ActionError, FetchError


class FakeClient:
    def __init__(self, machines=(), error=None, delay=0.0):
        self.machines = list(machines)
        self.error = error
        self.delay = delay
        self.calls = []

    async def _maybe_fail(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error

    async def list_all(self):
        self.calls.append(("list_all",))
        await self._maybe_fail()
        return self.machines

    async def start_machine(self, machine_id, name=""):
        self.calls.append(("start", machine_id, name))
        await self._maybe_fail()
        return f"Spawned machine: {name}"

    async def submit_flag(self, machine_id, flag, name=""):
        self.calls.append(("submit", machine_id, flag, name))
        await self._maybe_fail()
        return f"Flag accepted for {name}"


async def _single_event(bus, task):
    await task
    events = bus.drain()
    assert len(events) == 1
    return events[0]


@pytest.mark.asyncio
async def test_refresh_posts_machines(machine) -> None:
    bus = EventBus()
    client = FakeClient([machine(1), machine(2)])
    orchestrator = TaskOrchestrator(client, bus)

    event = await _single_event(bus, orchestrator.spawn_refresh())

    assert isinstance(event, RefreshResult)
    assert event.ok
    assert [m.id for m in event.machines] == [1, 2]
    assert orchestrator.in_flight == 0


@pytest.mark.asyncio
async def test_refresh_failure_posts_error() -> None:
    bus = EventBus()
    orchestrator = TaskOrchestrator(FakeClient(error=FetchError("HTTP 500")), bus)

    event = await _single_event(bus, orchestrator.spawn_refresh())

    assert event == RefreshResult(error="Refresh failed: HTTP 500")


@pytest.mark.asyncio
async def test_start_success_and_rejection() -> None:
    bus = EventBus()
    orchestrator = TaskOrchestrator(FakeClient(), bus)
    event = await _single_event(bus, orchestrator.spawn_start(7, "Lame"))
    assert event == StartResult(message="Spawned machine: Lame")

    orchestrator = TaskOrchestrator(
        FakeClient(error=ActionError("Failed to spawn Lame: HTTP 403")), bus
    )
    event = await _single_event(bus, orchestrator.spawn_start(7, "Lame"))
    assert event == StartResult(error="Failed to spawn Lame: HTTP 403")


@pytest.mark.asyncio
async def test_submit_passes_token_through() -> None:
    bus = EventBus()
    client = FakeClient()
    orchestrator = TaskOrchestrator(client, bus)

    event = await _single_event(bus, orchestrator.spawn_submit(7, "HTB{x}", "Lame"))

    assert event == SubmitResult(message="Flag accepted for Lame")
    assert client.calls == [("submit", 7, "HTB{x}", "Lame")]


@pytest.mark.asyncio
async def test_transport_errors_are_reported() -> None:
    bus = EventBus()
    client = FakeClient(error=aiohttp.ClientConnectionError("reset"))
    orchestrator = TaskOrchestrator(client, bus)

    event = await _single_event(bus, orchestrator.spawn_submit(7, "x"))

    assert event == SubmitResult(error="ClientConnectionError: reset")


@pytest.mark.asyncio
async def test_unexpected_errors_still_post_one_event() -> None:
    bus = EventBus()
    orchestrator = TaskOrchestrator(FakeClient(error=KeyError("info")), bus)

    event = await _single_event(bus, orchestrator.spawn_start(7))

    assert not event.ok
    assert event.error.startswith("Unexpected error: KeyError")


@pytest.mark.asyncio
async def test_tasks_run_concurrently() -> None:
    bus = EventBus()
    orchestrator = TaskOrchestrator(FakeClient(delay=0.05), bus)

    tasks = [orchestrator.spawn_start(i) for i in range(5)]
    assert orchestrator.in_flight == 5
    await asyncio.wait_for(asyncio.gather(*tasks), timeout=1.0)

    assert len(bus.drain()) == 5
    assert orchestrator.in_flight == 0


@pytest.mark.asyncio
async def test_shutdown_cancels_in_flight_work() -> None:
    bus = EventBus()
    orchestrator = TaskOrchestrator(FakeClient(delay=10), bus)
    task = orchestrator.spawn_refresh()
    await asyncio.sleep(0)

    await orchestrator.shutdown()

    assert task.cancelled()
    assert bus.empty()
    assert orchestrator.in_flight == 0
