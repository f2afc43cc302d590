"""Cached, de-duplicated and retrying option fetches.

One ``CachedFetchCell`` is shared by every chain in the process. Results are
cached per ``(level key, parent key)`` pair for the level's staleness window,
and concurrent callers for the same pair await the same in-flight load.
"""

from __future__ import annotations

import asyncio
import functools
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

from loguru import logger
from pydantic import ValidationError

from ehostelz.selection.errors import (
    FetchError,
    RemoteClientError,
    RemoteDataError,
    TransientFetchError,
    UnknownLevel,
)
from ehostelz.selection.models import LevelSpec, Option

CacheKey = Tuple[str, Optional[str]]


class OptionSource(Protocol):
    """The remote endpoint that returns raw option payloads for a level."""

    async def fetch_options(self, level: LevelSpec, parent_key: Optional[str]) -> Any:
        ...


@dataclass(slots=True)
class _CacheEntry:
    options: Tuple[Option, ...]
    fetched_at: float


def _unwrap_rows(level: LevelSpec, payload: Any) -> list:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping):
        for name in level.envelope:
            if name in payload:
                rows = payload[name]
                if rows is None:
                    return []
                if not isinstance(rows, list):
                    raise RemoteDataError(f"'{name}' in {level.key} response is not an array")
                return rows
        raise RemoteDataError(
            f"{level.key} response has none of the expected keys {list(level.envelope)}"
        )
    raise RemoteDataError(f"{level.key} response is not a JSON array or object")


def decode_options(level: LevelSpec, payload: Any, parent_key: Optional[str] = None) -> List[Option]:
    """Validate a raw payload into options; any bad row rejects the whole payload."""

    options: List[Option] = []
    seen: set[str] = set()
    for index, row in enumerate(_unwrap_rows(level, payload)):
        if not isinstance(row, Mapping):
            raise RemoteDataError(f"Row {index} of {level.key} is not an object")
        label = row.get(level.label_field) or row.get("label")
        parent_id = row.get(level.parent_field) if level.parent_field else None
        try:
            option = Option(id=row.get("id"), label=label, parent_id=parent_id)
        except ValidationError as exc:
            first = exc.errors()[0]
            raise RemoteDataError(
                f"Row {index} of {level.key} is malformed: {first['loc']} {first['msg']}"
            ) from exc
        if level.filter_locally and parent_key is not None and str(option.parent_id) != parent_key:
            continue
        if option.key in seen:
            raise RemoteDataError(f"Duplicate id {option.key!r} in {level.key} response")
        seen.add(option.key)
        options.append(option)

    if not level.keep_remote_order:
        options.sort(key=lambda option: option.label.casefold())
    return options


class CachedFetchCell:
    """Fetch option lists per level, minimising redundant network calls."""

    def __init__(
        self,
        source: OptionSource,
        levels: Iterable[LevelSpec] = (),
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._source = source
        self._clock = clock
        self._sleep = sleep
        self._levels: Dict[str, LevelSpec] = {}
        self._cache: Dict[CacheKey, _CacheEntry] = {}
        self._inflight: Dict[CacheKey, asyncio.Future] = {}
        self._epochs: Dict[CacheKey, int] = {}
        for level in levels:
            self.register(level)

    def register(self, level: LevelSpec) -> None:
        existing = self._levels.get(level.key)
        if existing is not None and existing != level:
            raise ValueError(f"Level {level.key!r} is already registered with a different definition")
        self._levels[level.key] = level

    def level(self, level_key: str) -> LevelSpec:
        try:
            return self._levels[level_key]
        except KeyError:
            raise UnknownLevel(level_key) from None

    async def fetch(self, level_key: str, parent_key: Optional[str] = None) -> List[Option]:
        level = self.level(level_key)
        key = (level_key, parent_key)

        entry = self._cache.get(key)
        if entry is not None and self._clock() - entry.fetched_at < level.stale_seconds:
            logger.bind(level=level_key, parent_key=parent_key).debug("option_cache_hit")
            return list(entry.options)

        future = self._inflight.get(key)
        if future is None:
            future = asyncio.ensure_future(self._load(level, parent_key, self._epochs.get(key, 0)))
            self._inflight[key] = future
            future.add_done_callback(functools.partial(self._load_finished, key))
        else:
            logger.bind(level=level_key, parent_key=parent_key).debug("option_fetch_joined")
        # Shielded so one cancelled caller does not cancel the load for the others.
        return list(await asyncio.shield(future))

    def invalidate(self, level_key: str, parent_key: Optional[str] = None) -> None:
        """Make the next fetch for this pair go to the network."""

        self.level(level_key)
        key = (level_key, parent_key)
        self._epochs[key] = self._epochs.get(key, 0) + 1
        self._cache.pop(key, None)
        self._inflight.pop(key, None)

    def clear(self) -> None:
        for key in list(self._cache) + list(self._inflight):
            self._epochs[key] = self._epochs.get(key, 0) + 1
        self._cache.clear()
        self._inflight.clear()

    def stats(self) -> dict[str, int]:
        return {"cached": len(self._cache), "in_flight": len(self._inflight)}

    def _load_finished(self, key: CacheKey, future: asyncio.Future) -> None:
        if self._inflight.get(key) is future:
            del self._inflight[key]
        if not future.cancelled():
            # Retrieve so an error nobody awaited is not reported as unhandled.
            future.exception()

    async def _load(self, level: LevelSpec, parent_key: Optional[str], epoch: int) -> Tuple[Option, ...]:
        key = (level.key, parent_key)
        try:
            options = await self._load_with_retry(level, parent_key)
        except FetchError as exc:
            exc.for_level(level.key, parent_key)
            log = logger.bind(level=level.key, parent_key=parent_key, error=str(exc))
            if level.optional:
                log.info("optional_level_fetch_absorbed")
                return ()
            log.warning("option_fetch_failed")
            raise

        result = tuple(options)
        if self._epochs.get(key, 0) == epoch:
            self._cache[key] = _CacheEntry(result, self._clock())
        logger.bind(level=level.key, parent_key=parent_key, count=len(result)).debug("option_fetch_completed")
        return result

    async def _load_with_retry(self, level: LevelSpec, parent_key: Optional[str]) -> List[Option]:
        attempts = level.retries + 1
        last_error: TransientFetchError | None = None
        for attempt in range(1, attempts + 1):
            try:
                return await self._attempt(level, parent_key)
            except TransientFetchError as exc:
                last_error = exc
                if attempt == attempts:
                    break
                cap = max(level.retry_delay_cap, level.retry_delay)
                sleep_for = min(level.retry_delay * (2 ** (attempt - 1)), cap)
                logger.bind(
                    level=level.key,
                    parent_key=parent_key,
                    attempt=attempt,
                    max_attempts=attempts,
                    sleep=sleep_for,
                    error=str(exc),
                ).warning("option_fetch_retry")
                await self._sleep(sleep_for)
        if last_error is not None:
            raise last_error
        raise RuntimeError("Option fetch failed without raising an exception")

    async def _attempt(self, level: LevelSpec, parent_key: Optional[str]) -> List[Option]:
        try:
            payload = await asyncio.wait_for(
                self._source.fetch_options(level, parent_key), timeout=level.timeout
            )
        except asyncio.TimeoutError as exc:
            raise TransientFetchError(f"Timed out after {level.timeout}s fetching {level.key}") from exc
        except RemoteClientError as exc:
            if exc.status_code == 404 and level.optional:
                return []
            raise
        return decode_options(level, payload, parent_key)
