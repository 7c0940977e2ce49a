import aiohttp
import pytest

from htbtui.exceptions import ActionError, FetchError, MalformedResponseError
from htbtui.gateway.client import OWN_TOKEN_FIELD, HTBClient


def _client(http, routes) -> tuple:
    session = http.Session(routes)
    client = HTBClient("secret-token", http.base_url, per_page=50, session=session)
    return client, session


def _listing_routes(http, retired_pages):
    base = http.base_url
    routes = {
        f"{base}/machine/paginated": http.page([http.machine(1, "Active1")]),
    }
    first = f"{base}/machine/list/retired/paginated"
    for index, items in enumerate(retired_pages):
        url = first if index == 0 else f"{first}?page={index + 1}"
        next_url = f"{first}?page={index + 2}" if index + 1 < len(retired_pages) else None
        routes[url] = http.page(items, next_url)
    return routes


@pytest.mark.asyncio
async def test_list_all_follows_retired_pages_in_order(http) -> None:
    routes = _listing_routes(
        http,
        [
            [http.machine(10), http.machine(11)],
            [http.machine(20)],
            [http.machine(30), http.machine(31)],
        ],
    )
    client, session = _client(http, routes)

    machines = await client.list_all()

    assert [m.id for m in machines] == [1, 10, 11, 20, 30, 31]
    assert len(session.urls("GET")) == 4
    # only the first page of each series gets the page size parameter
    first_calls = [kw for _, url, kw in session.calls if "page=" not in url]
    assert all(kw["params"] == {"per_page": 50} for kw in first_calls)
    assert all("params" not in kw for _, url, kw in session.calls if "page=" in url)


@pytest.mark.asyncio
async def test_every_request_carries_bearer_token(http) -> None:
    client, session = _client(http, _listing_routes(http, [[http.machine(10)]]))
    await client.list_all()
    assert all(
        kw["headers"]["Authorization"] == "Bearer secret-token"
        for _, _, kw in session.calls
    )


@pytest.mark.asyncio
async def test_failing_page_aborts_whole_listing(http) -> None:
    routes = _listing_routes(http, [[http.machine(10)], [http.machine(20)]])
    routes[f"{http.base_url}/machine/list/retired/paginated?page=2"] = http.Response(500)
    client, _ = _client(http, routes)

    with pytest.raises(FetchError) as info:
        await client.list_all()
    assert info.value.status == 500


@pytest.mark.asyncio
async def test_transport_error_becomes_fetch_error(http) -> None:
    routes = _listing_routes(http, [[http.machine(10)]])
    routes[f"{http.base_url}/machine/paginated"] = aiohttp.ClientConnectionError("refused")
    client, _ = _client(http, routes)

    with pytest.raises(FetchError):
        await client.list_all()


@pytest.mark.asyncio
async def test_bad_envelope_is_malformed(http) -> None:
    routes = _listing_routes(http, [[http.machine(10)]])
    routes[f"{http.base_url}/machine/paginated"] = http.Response(200, {"items": []})
    client, _ = _client(http, routes)

    with pytest.raises(MalformedResponseError):
        await client.list_all()


@pytest.mark.asyncio
async def test_undecodable_json_is_malformed(http) -> None:
    routes = _listing_routes(http, [[http.machine(10)]])
    routes[f"{http.base_url}/machine/paginated"] = http.Response(
        200, json_error=ValueError("Expecting value")
    )
    client, _ = _client(http, routes)

    with pytest.raises(MalformedResponseError):
        await client.list_all()


@pytest.mark.asyncio
async def test_pagination_loop_is_detected(http) -> None:
    first = f"{http.base_url}/machine/list/retired/paginated"
    routes = _listing_routes(http, [[http.machine(10)]])
    routes[first] = http.page([http.machine(10)], f"{first}?page=2")
    routes[f"{first}?page=2"] = http.page([http.machine(11)], f"{first}?page=2")
    client, _ = _client(http, routes)

    with pytest.raises(FetchError):
        await client.list_all()


@pytest.mark.asyncio
async def test_enrichment_adds_ip_only_for_active_machines(http) -> None:
    base = http.base_url
    routes = {
        f"{base}/machine/paginated": http.page(
            [http.machine(1, active=True), http.machine(2, active=1), http.machine(3)]
        ),
        f"{base}/machine/list/retired/paginated": http.page([]),
        f"{base}/machine/profile/1": http.Response(200, {"info": {"ip": "10.10.11.1"}}),
        f"{base}/machine/profile/2": http.Response(200, {"info": {"ip": "10.10.11.2"}}),
    }
    client, session = _client(http, routes)

    machines = await client.list_all()

    assert [(m.id, m.ip) for m in machines] == [
        (1, "10.10.11.1"),
        (2, "10.10.11.2"),
        (3, None),
    ]
    assert f"{base}/machine/profile/3" not in session.urls("GET")


@pytest.mark.asyncio
async def test_enrichment_failure_keeps_record_without_ip(http) -> None:
    base = http.base_url
    routes = {
        f"{base}/machine/paginated": http.page(
            [http.machine(1, active=True), http.machine(2, active=True)]
        ),
        f"{base}/machine/list/retired/paginated": http.page([http.machine(3)]),
        f"{base}/machine/profile/1": aiohttp.ClientConnectionError("reset"),
        f"{base}/machine/profile/2": http.Response(200, {"info": {"ip": "10.10.11.2"}}),
    }
    client, _ = _client(http, routes)

    machines = await client.list_all()

    assert [m.id for m in machines] == [1, 2, 3]
    assert machines[0].ip is None
    assert machines[0].is_active is True
    assert machines[1].ip == "10.10.11.2"


@pytest.mark.asyncio
async def test_enrichment_tolerates_error_status_and_missing_info(http) -> None:
    base = http.base_url
    client, _ = _client(
        http,
        {
            f"{base}/machine/profile/1": http.Response(503),
            f"{base}/machine/profile/2": http.Response(200, {"info": None}),
        },
    )
    from htbtui.models import Machine

    result = await client.enrich(
        [Machine(id=1, name="A", is_active=True), Machine(id=2, name="B", is_active=True)]
    )
    assert [m.ip for m in result] == [None, None]


@pytest.mark.asyncio
async def test_start_success_uses_status_only(http) -> None:
    url = f"{http.base_url}/vm/spawn/"
    client, session = _client(http, {url: http.Response(200)})

    message = await client.start_machine(42, "Lame")

    assert message == "Spawned machine: Lame"
    method, called, kwargs = session.calls[0]
    assert (method, called) == ("POST", url)
    assert kwargs["params"] == {"machine_id": 42}


@pytest.mark.asyncio
async def test_start_rejection_raises_action_error(http) -> None:
    client, _ = _client(http, {f"{http.base_url}/vm/spawn/": http.Response(403)})

    with pytest.raises(ActionError) as info:
        await client.start_machine(42, "Lame")
    assert "Failed to spawn Lame" in str(info.value)
    assert info.value.status == 403


@pytest.mark.asyncio
async def test_start_transport_error_raises_action_error(http) -> None:
    client, _ = _client(
        http, {f"{http.base_url}/vm/spawn/": aiohttp.ClientConnectionError("down")}
    )
    with pytest.raises(ActionError):
        await client.start_machine(42)


@pytest.mark.asyncio
async def test_submit_flag_sends_id_and_token(http) -> None:
    url = f"{http.base_url}/machine/own"
    client, session = _client(http, {url: http.Response(200, {"message": "ok"})})

    message = await client.submit_flag(42, "HTB{x}", "Lame")

    assert message == "Flag accepted for Lame"
    assert session.calls[0][2]["json"] == {"id": 42, "flag": "HTB{x}"}
    assert OWN_TOKEN_FIELD == "flag"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [400, 403, 500])
async def test_any_rejected_flag_reads_as_incorrect(http, status) -> None:
    client, _ = _client(http, {f"{http.base_url}/machine/own": http.Response(status)})

    with pytest.raises(ActionError) as info:
        await client.submit_flag(42, "nope", "Lame")
    assert str(info.value) == "Incorrect flag for Lame"


@pytest.mark.asyncio
async def test_injected_session_is_not_closed(http) -> None:
    client, session = _client(http, {})
    async with client:
        pass
    assert session.closed is False
