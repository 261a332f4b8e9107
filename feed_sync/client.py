"""
Async HTTP client for the remote content API.

Endpoints consumed:
- GET /api/content              paginated, filtered item list
- GET /api/content/{id}         single item (404 when missing)
- GET /api/content/by-ids       arbitrary identifier set, not paginated
- GET /api/source-stats         per-source counts, optionally scoped
- GET /api/tags                 tag catalog with post counts

Transport failures and 5xx responses are retried with linear backoff.
Cancellation (asyncio.CancelledError) is never retried or wrapped: it
propagates straight out so the caller can tell "aborted" from "failed".
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable

import httpx

from .config import ApiConfig, get_api_base_url
from .errors import NotFoundError, TransportError
from .filters import join_ids
from .logging_utils import get_logger, log_event
from .types import Item


class ContentApiClient:
    """Client for the content API.

    A fresh httpx.AsyncClient is opened per request attempt so a cancelled
    request tears down its own connection.

    Attributes:
        cfg: API configuration section
        base_url: Resolved API base URL without trailing slash
    """

    def __init__(
        self,
        cfg: ApiConfig,
        transport: httpx.AsyncBaseTransport | None = None,
        logger: logging.Logger | None = None,
    ):
        self.cfg = cfg
        self.base_url = get_api_base_url(cfg)
        self._transport = transport
        self._logger = logger or get_logger("client")

    async def list_content(self, params: dict[str, Any]) -> list[Item]:
        data = await self._get_json("/api/content", params=params)
        return self._parse_items(data, "/api/content")

    async def get_item(self, item_id: int) -> Item:
        """Fetch a single item.

        Raises:
            NotFoundError: If the server answers 404
            TransportError: On any other failure
        """
        path = f"/api/content/{item_id}"
        try:
            data = await self._get_json(path)
        except TransportError as exc:
            if exc.status_code == 404:
                raise NotFoundError(item_id) from exc
            raise
        if not isinstance(data, dict):
            raise TransportError(f"Unexpected response shape from {path}", url=path)
        try:
            return Item.from_api(data)
        except (TypeError, ValueError) as exc:
            raise TransportError(f"Malformed item from {path}: {exc}", url=path) from exc

    async def get_items_by_ids(self, ids: Iterable[int]) -> list[Item]:
        id_list = sorted(set(ids))
        if not id_list:
            return []
        data = await self._get_json("/api/content/by-ids", params={"ids": join_ids(id_list)})
        return self._parse_items(data, "/api/content/by-ids")

    async def source_stats(
        self,
        search: str | None = None,
        tags: str | None = None,
    ) -> dict[str, int]:
        params: dict[str, Any] = {}
        if search:
            params["search"] = search
        if tags is not None:
            params["tags"] = tags
        data = await self._get_json("/api/source-stats", params=params or None)
        return _parse_counts(data, key="source_type", count_key="count", path="/api/source-stats")

    async def tag_catalog(self) -> dict[str, int]:
        data = await self._get_json("/api/tags")
        return _parse_counts(data, key="tag", count_key="post_count", path="/api/tags")

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET a JSON document with retry logic.

        Raises:
            TransportError: After the final attempt fails, or immediately on 4xx
        """
        url = f"{self.base_url}{path}"
        headers = {"User-Agent": self.cfg.user_agent, "Accept": "application/json"}
        retries = max(self.cfg.retries, 0)

        for attempt in range(retries + 1):
            try:
                async with httpx.AsyncClient(
                    timeout=self.cfg.timeout_seconds,
                    headers=headers,
                    follow_redirects=True,
                    trust_env=self.cfg.trust_env,
                    transport=self._transport,
                ) as client:
                    resp = await client.get(url, params=params)
            except httpx.HTTPError as exc:
                last_error = TransportError(f"{type(exc).__name__}: {exc}", url=url)
            else:
                if resp.status_code < 300:
                    try:
                        return resp.json()
                    except ValueError as exc:
                        raise TransportError(
                            f"Invalid JSON from {path}: {exc}", status_code=resp.status_code, url=url
                        ) from exc
                last_error = TransportError(
                    f"HTTP error! Status: {resp.status_code}", status_code=resp.status_code, url=url
                )
                if resp.status_code < 500:
                    raise last_error

            if attempt >= retries:
                raise last_error
            log_event(
                self._logger,
                "Retrying request",
                level=logging.DEBUG,
                event="request_retry",
                url=url,
                attempt=attempt + 1,
                error=str(last_error),
            )
            # Linear backoff: 0.5s, 1.0s, 1.5s...
            await asyncio.sleep(0.5 * (attempt + 1))

    def _parse_items(self, data: Any, path: str) -> list[Item]:
        if not isinstance(data, list):
            raise TransportError(f"Expected a list from {path}", url=path)
        items: list[Item] = []
        for raw in data:
            if not isinstance(raw, dict):
                continue
            try:
                items.append(Item.from_api(raw))
            except (TypeError, ValueError) as exc:
                log_event(
                    self._logger,
                    "Dropping malformed item",
                    level=logging.WARNING,
                    event="item_malformed",
                    path=path,
                    error=str(exc),
                )
        return items


def _parse_counts(data: Any, key: str, count_key: str, path: str) -> dict[str, int]:
    if not isinstance(data, list):
        raise TransportError(f"Expected a list from {path}", url=path)
    counts: dict[str, int] = {}
    for row in data:
        if not isinstance(row, dict) or row.get(key) is None:
            continue
        try:
            counts[str(row[key])] = int(row.get(count_key) or 0)
        except (TypeError, ValueError):
            continue
    return counts
