from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from adsdash.config import Settings
from adsdash.errors import AuthFailure, PaginationLimitError, TransportError
from adsdash.models import AdAccount, DataLevel, DateRange, KpiData

logger = logging.getLogger(__name__)

PageFetcher = Callable[[Any], Awaitable[tuple[list[dict[str, Any]], Any]]]


async def paginate(fetch_page: PageFetcher, *, max_pages: int, platform: str) -> list[dict[str, Any]]:
    """Follow a cursor until a page comes back without one.

    ``fetch_page(cursor)`` returns ``(items, next_cursor)``; the first call gets
    ``None``. Sources that keep handing out cursors past ``max_pages`` raise
    ``PaginationLimitError``.
    """
    rows: list[dict[str, Any]] = []
    cursor: Any = None
    pages = 0
    while True:
        if pages >= max_pages:
            logger.error("%s pagination did not terminate after %d pages", platform, pages)
            raise PaginationLimitError(platform, f"Pagination exceeded {max_pages} pages")
        items, cursor = await fetch_page(cursor)
        pages += 1
        rows.extend(items)
        if not cursor:
            return rows


class AdPlatformAdapter:
    platform = ""
    # True when list_kpi_summary asks the platform instead of summing daily rows.
    native_summary = False

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.settings = settings
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.settings.http_timeout, transport=self._transport)

    async def _send(self, client: httpx.AsyncClient, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        try:
            resp = await client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s request failed: %s", self.platform, type(exc).__name__)
            raise TransportError(self.platform, f"Could not reach {self.platform}: {exc}") from exc

        try:
            payload = resp.json()
        except ValueError as exc:
            if resp.status_code == 401:
                logger.info("%s answered HTTP 401 without a JSON body", self.platform)
                raise AuthFailure(self.platform) from exc
            raise TransportError(
                self.platform, f"Invalid response from {self.platform} (HTTP {resp.status_code})"
            ) from exc
        if not isinstance(payload, dict):
            raise TransportError(self.platform, f"Unexpected response shape from {self.platform}")

        self._raise_for_error(resp.status_code, payload)
        return payload

    def _raise_for_error(self, status_code: int, payload: dict[str, Any]) -> None:
        raise NotImplementedError

    async def list_accounts(self, credential: str) -> list[AdAccount]:
        raise NotImplementedError

    async def list_kpis(
        self, credential: str, account_id: str, level: DataLevel, date_range: DateRange
    ) -> list[KpiData]:
        raise NotImplementedError

    async def list_kpi_summary(
        self, credential: str, account_id: str, level: DataLevel, date_range: DateRange
    ) -> list[KpiData]:
        raise NotImplementedError
