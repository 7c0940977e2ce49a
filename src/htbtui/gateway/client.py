"""
HTTP client for the Hack The Box labs API.

Provides the catalog listing (two cursor-paginated series), per-machine IP
enrichment, machine spawning and flag submission. The client holds no state
besides its configuration and the shared aiohttp session, so background
tasks can use one instance concurrently.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

import aiohttp

from ..exceptions import ActionError, FetchError, GatewayError, MalformedResponseError
from ..models import Machine

logger = logging.getLogger(__name__)

HTB_API_URL = "https://labs.hackthebox.com/api/v4"
ACTIVE_LIST_PATH = "/machine/paginated"
RETIRED_LIST_PATH = "/machine/list/retired/paginated"
PROFILE_PATH = "/machine/profile/{machine_id}"
SPAWN_PATH = "/vm/spawn/"
OWN_PATH = "/machine/own"
# The labs API reads the submitted token from this body field.
OWN_TOKEN_FIELD = "flag"


def _is_success(status: int) -> bool:
    return 200 <= status < 300


class HTBClient:
    """HTTP client for the labs API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = HTB_API_URL,
        *,
        per_page: int = 100,
        timeout: float = 30.0,
        enrich_concurrency: int = 5,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: Application token sent as a bearer credential
            base_url: API root, e.g. https://labs.hackthebox.com/api/v4
            per_page: Page size requested from the paginated listings
            timeout: Total seconds allowed per request
            enrich_concurrency: Max profile lookups in flight at once
            session: Existing session to use instead of creating one
        """
        self.base_url = base_url.rstrip("/")
        self.per_page = per_page
        self.timeout = timeout
        self.enrich_concurrency = max(1, enrich_concurrency)
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
        }
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure we have an active session."""
        if not self._session:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the session if this client created it."""
        if self._session and self._owns_session:
            await self._session.close()
            self._session = None

    # ------------------------------------------------------------------ #
    # Catalog listing
    # ------------------------------------------------------------------ #
    async def list_all(self, enrich: bool = True) -> List[Machine]:
        """
        Fetch active and retired machines as one collection.

        Any failing page aborts the whole listing with FetchError. Enrichment
        failures never do.
        """
        machines = await self.fetch_series(ACTIVE_LIST_PATH)
        machines.extend(await self.fetch_series(RETIRED_LIST_PATH))
        logger.info("Fetched %d machines", len(machines))
        if enrich:
            machines = await self.enrich(machines)
        return machines

    async def fetch_series(self, path: str) -> List[Machine]:
        """Follow ``links.next`` from the first page until it runs out."""
        url: Optional[str] = f"{self.base_url}{path}"
        params: Optional[Dict[str, Any]] = {"per_page": self.per_page}
        seen = set()
        machines: List[Machine] = []
        while url:
            if url in seen:
                raise FetchError(f"Pagination loop detected at {url}")
            seen.add(url)
            page, url = await self.fetch_page(url, params)
            machines.extend(page)
            # next links already carry their query string
            params = None
        return machines

    async def fetch_page(
        self, url: str, params: Optional[Dict[str, Any]] = None
    ) -> Tuple[List[Machine], Optional[str]]:
        """
        Fetch one page of a paginated listing.

        Returns:
            Tuple of (machines on the page, next page URL or None)
        """
        payload = await self._get_json(url, params, error_cls=FetchError)
        if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
            raise MalformedResponseError(f"Unexpected listing envelope from {url}")

        machines = [Machine.from_api(item) for item in payload["data"]]
        links = payload.get("links") or {}
        next_url = links.get("next") if isinstance(links, dict) else None
        logger.debug("Page %s: %d machines, next=%s", url, len(machines), next_url)
        return machines, next_url or None

    # ------------------------------------------------------------------ #
    # Enrichment
    # ------------------------------------------------------------------ #
    async def enrich(self, machines: Iterable[Machine]) -> List[Machine]:
        """Attach IP addresses to active machines, keeping input order."""
        semaphore = asyncio.Semaphore(self.enrich_concurrency)

        async def enrich_one(machine: Machine) -> Machine:
            if not machine.is_active:
                return machine
            async with semaphore:
                try:
                    ip = await self.fetch_machine_ip(machine.id)
                except (GatewayError, aiohttp.ClientError, asyncio.TimeoutError) as e:
                    logger.warning(
                        "Error fetching machine info for %s: %s", machine.id, e
                    )
                    return machine
            return machine.with_ip(ip) if ip else machine

        return list(await asyncio.gather(*(enrich_one(m) for m in machines)))

    async def fetch_machine_ip(self, machine_id: int) -> Optional[str]:
        url = f"{self.base_url}{PROFILE_PATH.format(machine_id=machine_id)}"
        payload = await self._get_json(url, None, error_cls=GatewayError)
        info = payload.get("info") if isinstance(payload, dict) else None
        ip = info.get("ip") if isinstance(info, dict) else None
        return ip if isinstance(ip, str) and ip else None

    # ------------------------------------------------------------------ #
    # Actions
    # ------------------------------------------------------------------ #
    async def start_machine(self, machine_id: int, name: str = "") -> str:
        """Spawn a machine; only the response status matters."""
        label = name or f"#{machine_id}"
        url = f"{self.base_url}{SPAWN_PATH}"
        status = await self._post_status(
            url, params={"machine_id": machine_id}, failure=f"Failed to spawn {label}"
        )
        if _is_success(status):
            return f"Spawned machine: {label}"
        raise ActionError(f"Failed to spawn {label}: HTTP {status}", status=status)

    async def submit_flag(self, machine_id: int, flag: str, name: str = "") -> str:
        """Submit a flag. Every rejection reads as an incorrect flag."""
        label = name or f"#{machine_id}"
        url = f"{self.base_url}{OWN_PATH}"
        status = await self._post_status(
            url,
            json={"id": machine_id, OWN_TOKEN_FIELD: flag},
            failure=f"Error submitting flag for {label}",
        )
        if _is_success(status):
            return f"Flag accepted for {label}"
        raise ActionError(f"Incorrect flag for {label}", status=status)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    async def _get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]],
        *,
        error_cls: type,
    ) -> Any:
        session = await self._ensure_session()
        kwargs: Dict[str, Any] = {"headers": self._headers}
        if params:
            kwargs["params"] = params
        try:
            async with session.get(url, **kwargs) as resp:
                if not _is_success(resp.status):
                    raise error_cls(f"GET {url} failed: HTTP {resp.status}", status=resp.status)
                return await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise error_cls(f"GET {url} failed: {str(e) or type(e).__name__}") from e
        except ValueError as e:
            raise MalformedResponseError(f"Invalid JSON from {url}: {e}") from e

    async def _post_status(self, url: str, *, failure: str, **kwargs: Any) -> int:
        session = await self._ensure_session()
        try:
            async with session.post(url, headers=self._headers, **kwargs) as resp:
                logger.info("POST %s -> %s", url, resp.status)
                return resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ActionError(f"{failure}: {str(e) or type(e).__name__}") from e
