"""
AccuLynx REST client.

Two primitives cover everything the sales cycle engine needs:
- detail_fetch(endpoint): one GET, JSON body back
- paginated_fetch(endpoint, params, max_items): walks pageStartIndex in
  steps of the AccuLynx max page size (25) and returns {items, count}

Non-2xx responses raise AccuLynxAPIError. Network failures propagate as
httpx.HTTPError. There is no retry here.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx

from salescycle.config import settings

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 25


class AccuLynxAPIError(RuntimeError):
    def __init__(self, status_code: int, body: str = "") -> None:
        self.status_code = status_code
        self.body = body[:500]
        super().__init__(f"API Error {status_code}: {body[:200]}")


class AccuLynxClient:
    """Thin async wrapper over one shared httpx.AsyncClient."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
            },
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "AccuLynxClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def detail_fetch(
        self,
        endpoint: str,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        """GET a single endpoint and return its decoded JSON body."""
        url = f"{self._base_url}{endpoint}"
        resp = await self._http.get(url, params=params)

        if resp.status_code < 200 or resp.status_code >= 300:
            logger.warning(json.dumps({
                "event": "acculynx_request_failed",
                "endpoint": endpoint,
                "status": resp.status_code,
                "body": resp.text[:500],
            }))
            raise AccuLynxAPIError(resp.status_code, resp.text)

        return resp.json()

    async def paginated_fetch(
        self,
        endpoint: str,
        params: Optional[dict[str, Any]] = None,
        max_items: int = 200,
    ) -> dict[str, Any]:
        """
        Fetch pages of MAX_PAGE_SIZE until max_items or the upstream count.

        Returns {"items": [...], "count": <upstream total>}. Stops early on a
        short page.
        """
        all_items: list[Any] = []
        page_start_index = 0
        total_count = 0

        while len(all_items) < max_items:
            page_params = dict(params or {})
            page_params["pageSize"] = str(MAX_PAGE_SIZE)
            page_params["pageStartIndex"] = str(page_start_index)

            result = await self.detail_fetch(endpoint, page_params)
            result = result if isinstance(result, dict) else {}

            items = result.get("items") or []
            total_count = result.get("count") or 0
            all_items.extend(items)

            if len(items) < MAX_PAGE_SIZE or len(all_items) >= total_count:
                break

            page_start_index += MAX_PAGE_SIZE

        logger.info(json.dumps({
            "event": "acculynx_paginated_fetch",
            "endpoint": endpoint,
            "params": params or {},
            "returned": min(len(all_items), max_items),
            "count": total_count,
        }))

        return {"items": all_items[:max_items], "count": total_count}


# ---------------------------------------------------------------------------
# Shared client (owned by the FastAPI app lifecycle)
# ---------------------------------------------------------------------------

_client: AccuLynxClient | None = None


def build_client() -> AccuLynxClient:
    if not settings.acculynx_api_key:
        raise RuntimeError("ACCULYNX_API_KEY is not set")
    return AccuLynxClient(
        base_url=settings.acculynx_base_url,
        api_key=settings.acculynx_api_key,
        timeout=settings.acculynx_timeout,
    )


async def init_client() -> AccuLynxClient:
    global _client
    if _client is None:
        _client = build_client()
    return _client


async def close_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


async def get_client() -> AccuLynxClient:
    if _client is None:
        return await init_client()
    return _client
