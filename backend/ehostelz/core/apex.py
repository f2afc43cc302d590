"""Client for the Oracle APEX (ORDS) REST backend that owns all business data."""

from __future__ import annotations

import functools
import time
from typing import Any, Optional
from urllib.parse import quote

import requests
from loguru import logger

from ehostelz.core.concurrency import run_in_thread_limited
from ehostelz.core.config import settings
from ehostelz.selection.errors import (
    FetchError,
    RemoteClientError,
    RemoteDataError,
    TransientFetchError,
)
from ehostelz.selection.models import LevelSpec

API_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


class ApexClient:
    """Blocking ``requests`` calls run in worker threads; errors use the fetch taxonomy.

    Timeouts, connection failures and 5xx responses raise
    ``TransientFetchError``; 4xx responses raise ``RemoteClientError``;
    bodies that are not JSON raise ``RemoteDataError``.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        max_pages: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or settings.APEX_API_BASE).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.APEX_TIMEOUT_SEC
        self.max_pages = max_pages or settings.APEX_MAX_PAGES
        self._session = session or requests.Session()
        self._session.headers.update(API_HEADERS)

    def build_url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def get_json(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        response = await self._send("GET", path, params=params)
        return self._decode(response, path)

    async def post_json(self, path: str, payload: dict[str, Any]) -> Any:
        response = await self._send("POST", path, payload=payload)
        return self._decode(response, path)

    async def fetch_options(self, level: LevelSpec, parent_key: Optional[str]) -> Any:
        """Raw option payload for a level, with every ORDS page merged into ``items``."""

        path = level.endpoint
        params: dict[str, Any] = {}
        if "{parent}" in path:
            if parent_key is None:
                raise ValueError(f"Level {level.key!r} needs a parent key")
            path = path.format(parent=quote(parent_key, safe=""))
        elif level.parent_param and parent_key is not None:
            params[level.parent_param] = parent_key
        return await self._get_all_pages(path, params)

    def close(self) -> None:
        self._session.close()

    async def _get_all_pages(self, path: str, params: dict[str, Any]) -> Any:
        payload = await self.get_json(path, params or None)
        if not isinstance(payload, dict) or not payload.get("hasMore"):
            return payload

        items = self._page_items(payload, path)
        pages = 1
        while payload.get("hasMore") and pages < self.max_pages:
            limit = payload.get("limit") or len(payload.get("items") or [])
            if not limit:
                break
            offset = (payload.get("offset") or 0) + limit
            payload = await self.get_json(path, {**params, "offset": offset, "limit": limit})
            if not isinstance(payload, dict):
                raise RemoteDataError(f"Page {pages + 1} of {path} is not a JSON object")
            items.extend(self._page_items(payload, path))
            pages += 1

        if payload.get("hasMore"):
            logger.bind(path=path, pages=pages).warning("apex_pagination_truncated")
        return {"items": items, "hasMore": bool(payload.get("hasMore")), "count": len(items)}

    @staticmethod
    def _page_items(payload: dict, path: str) -> list:
        items = payload.get("items") or []
        if not isinstance(items, list):
            raise RemoteDataError(f"'items' in {path} response is not an array")
        return list(items)

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        payload: Optional[dict[str, Any]] = None,
    ) -> requests.Response:
        url = self.build_url(path)
        call = functools.partial(
            self._session.request,
            method,
            url,
            params=params,
            json=payload,
            timeout=self.timeout,
        )
        start = time.perf_counter()
        try:
            response = await run_in_thread_limited(call)
        except requests.Timeout as exc:
            raise TransientFetchError(f"APEX request timed out after {self.timeout}s: {path}") from exc
        except requests.ConnectionError as exc:
            raise TransientFetchError(f"Could not reach APEX for {path}: {exc}") from exc
        except requests.RequestException as exc:
            raise FetchError(f"APEX request failed for {path}: {exc}") from exc

        duration_ms = (time.perf_counter() - start) * 1000
        logger.bind(
            method=method,
            path=path,
            status=response.status_code,
            duration_ms=round(duration_ms, 2),
        ).debug("apex_request_completed")

        if response.status_code >= 500:
            raise TransientFetchError(f"APEX returned {response.status_code} for {path}")
        if response.status_code >= 400:
            raise RemoteClientError(
                f"APEX returned {response.status_code} for {path}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _decode(response: requests.Response, path: str) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteDataError(f"APEX returned a body that is not JSON for {path}") from exc
