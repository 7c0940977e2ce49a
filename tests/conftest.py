from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

from htbtui.models import Machine

BASE_URL = "https://api.test/api/v4"


class FakeResponse:
    def __init__(
        self,
        status: int = 200,
        payload: Any = None,
        json_error: Optional[Exception] = None,
    ) -> None:
        self.status = status
        self._payload = payload if payload is not None else {}
        self._json_error = json_error

    async def json(self, content_type=None) -> Any:
        if self._json_error is not None:
            raise self._json_error
        return self._payload

    async def __aenter__(self) -> "FakeResponse":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


class FakeSession:
    """Stands in for aiohttp.ClientSession; routes are keyed by URL."""

    def __init__(self, routes: Optional[Dict[str, Any]] = None) -> None:
        self.routes: Dict[str, Any] = dict(routes or {})
        self.calls: List[tuple] = []
        self.closed = False

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append(("GET", url, kwargs))
        return self._respond(url)

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append(("POST", url, kwargs))
        return self._respond(url)

    def urls(self, method: str = "GET") -> List[str]:
        return [url for m, url, _ in self.calls if m == method]

    async def close(self) -> None:
        self.closed = True

    def _respond(self, url: str) -> FakeResponse:
        route = self.routes.get(url)
        if route is None:
            return FakeResponse(404, {"message": "not found"})
        if isinstance(route, BaseException):
            raise route
        return route


def machine_payload(
    machine_id: int,
    name: Optional[str] = None,
    *,
    active: Any = False,
    user: bool = False,
    root: bool = False,
    difficulty: int = 20,
    user_owns: int = 0,
    root_owns: int = 0,
) -> Dict[str, Any]:
    return {
        "id": machine_id,
        "name": name or f"Box{machine_id}",
        "os": "Linux",
        "points": 20,
        "star": "4.5",
        "release": "2021-06-05T19:00:00.000000Z",
        "difficulty": difficulty,
        "user_owns_count": user_owns,
        "authUserInUserOwns": user,
        "root_owns_count": root_owns,
        "authUserInRootOwns": root,
        "active": active,
    }


def listing_page(items: List[Dict[str, Any]], next_url: Optional[str] = None) -> FakeResponse:
    return FakeResponse(
        200,
        {
            "data": items,
            "links": {"first": "f", "last": "l", "prev": None, "next": next_url},
        },
    )


def make_machine(machine_id: int, name: Optional[str] = None, **fields: Any) -> Machine:
    return Machine(id=machine_id, name=name or f"Box{machine_id}", **fields)


class FakeOrchestrator:
    """Records spawn requests instead of touching the network."""

    def __init__(self) -> None:
        self.refreshes = 0
        self.starts: List[tuple] = []
        self.submits: List[tuple] = []

    def spawn_refresh(self) -> None:
        self.refreshes += 1

    def spawn_start(self, machine_id: int, name: str = "") -> None:
        self.starts.append((machine_id, name))

    def spawn_submit(self, machine_id: int, token: str, name: str = "") -> None:
        self.submits.append((machine_id, token, name))

    async def shutdown(self) -> None:
        return None


async def wait_for(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def http() -> SimpleNamespace:
    return SimpleNamespace(
        base_url=BASE_URL,
        Session=FakeSession,
        Response=FakeResponse,
        page=listing_page,
        machine=machine_payload,
    )


@pytest.fixture
def machine():
    return make_machine


@pytest.fixture
def fake_orchestrator() -> FakeOrchestrator:
    return FakeOrchestrator()


@pytest.fixture
def eventually():
    return wait_for
