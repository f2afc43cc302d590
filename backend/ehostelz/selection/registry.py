"""In-process registry of live selection chains, one per open screen."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, List

from loguru import logger

from ehostelz.selection.cell import CachedFetchCell
from ehostelz.selection.chain import DependencyChainController
from ehostelz.selection.presets import PRESETS
from ehostelz.selection.surface import SelectionSurface


@dataclass(slots=True)
class _Entry:
    controller: DependencyChainController
    surfaces: List[SelectionSurface]
    preset: str
    last_used: float


class ChainRegistry:
    """Creates chains from presets and expires the ones nobody touches."""

    def __init__(
        self,
        cell: CachedFetchCell,
        *,
        idle_ttl: float,
        max_active: int,
        strict: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_active < 1:
            raise ValueError("max_active must be at least 1")
        self._cell = cell
        self._idle_ttl = idle_ttl
        self._max_active = max_active
        self._strict = strict
        self._clock = clock
        self._entries: Dict[str, _Entry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def create(self, preset: str = "location") -> str:
        """Build and start a chain; must be called on the event loop."""

        try:
            build_levels = PRESETS[preset]
        except KeyError:
            raise ValueError(f"Unknown chain preset {preset!r}") from None

        self.evict_expired()
        while len(self._entries) >= self._max_active:
            oldest = min(self._entries, key=lambda key: self._entries[key].last_used)
            self.discard(oldest)

        controller = DependencyChainController(self._cell, build_levels(), strict=self._strict)
        surfaces = [SelectionSurface(controller, level.key) for level in controller.levels]
        chain_id = uuid.uuid4().hex
        self._entries[chain_id] = _Entry(controller, surfaces, preset, self._clock())
        controller.start()
        logger.bind(chain_id=chain_id, preset=preset).info("selection_chain_created")
        return chain_id

    def get(self, chain_id: str) -> DependencyChainController:
        return self._touch(chain_id).controller

    def surfaces(self, chain_id: str) -> List[SelectionSurface]:
        return self._touch(chain_id).surfaces

    def discard(self, chain_id: str) -> bool:
        entry = self._entries.pop(chain_id, None)
        if entry is None:
            return False
        entry.controller.close()
        return True

    def evict_expired(self) -> int:
        now = self._clock()
        expired = [
            chain_id
            for chain_id, entry in self._entries.items()
            if now - entry.last_used > self._idle_ttl
        ]
        for chain_id in expired:
            self.discard(chain_id)
        if expired:
            logger.bind(count=len(expired)).info("selection_chains_expired")
        return len(expired)

    def _touch(self, chain_id: str) -> _Entry:
        entry = self._entries.get(chain_id)
        if entry is None or self._clock() - entry.last_used > self._idle_ttl:
            if entry is not None:
                self.discard(chain_id)
            raise KeyError(chain_id)
        entry.last_used = self._clock()
        return entry
