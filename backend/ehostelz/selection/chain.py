"""Parent-to-child selection chains (province -> city -> area and similar).

The controller owns one selection state per level. ``select_option`` and
``reset`` are synchronous and leave every state consistent before they
return; option fetches run as tasks on the event loop and are applied only if
the level's generation has not moved on since they were started.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from loguru import logger

from ehostelz.selection.cell import CachedFetchCell
from ehostelz.selection.errors import FetchError, InvalidSelection, UnknownLevel
from ehostelz.selection.models import (
    ChainSnapshot,
    LevelSnapshot,
    LevelSpec,
    LevelStatus,
    Option,
    OptionId,
)


@dataclass(slots=True)
class _LevelState:
    spec: LevelSpec
    selected_id: str = ""
    options: List[Option] = field(default_factory=list)
    status: LevelStatus = LevelStatus.IDLE
    error_detail: Optional[str] = None
    parent_key: Optional[str] = None
    generation: int = 0

    def clear(self) -> None:
        # Bumping the generation drops any response still in flight.
        self.generation += 1
        self.selected_id = ""
        self.options = []
        self.status = LevelStatus.IDLE
        self.error_detail = None
        self.parent_key = None

    def snapshot(self) -> LevelSnapshot:
        return LevelSnapshot(
            key=self.spec.key,
            label=self.spec.label,
            parent=self.spec.parent,
            optional=self.spec.optional,
            selected_id=self.selected_id,
            options=list(self.options),
            status=self.status,
            error_detail=self.error_detail,
            parent_key=self.parent_key,
            generation=self.generation,
        )


class DependencyChainController:
    """Keeps a chain of dependent levels consistent and reports readiness."""

    def __init__(
        self,
        cell: CachedFetchCell,
        levels: Iterable[LevelSpec],
        *,
        strict: bool = True,
    ):
        self._cell = cell
        self.strict = strict
        self._states: Dict[str, _LevelState] = {}
        self._children: Dict[str, List[str]] = {}
        self._tasks: Set[asyncio.Task] = set()

        for spec in levels:
            if spec.key in self._states:
                raise ValueError(f"Duplicate level {spec.key!r}")
            if spec.parent is not None and spec.parent not in self._states:
                raise ValueError(
                    f"Level {spec.key!r} refers to {spec.parent!r}, which must be declared before it"
                )
            cell.register(spec)
            self._states[spec.key] = _LevelState(spec)
            self._children[spec.key] = []
            if spec.parent is not None:
                self._children[spec.parent].append(spec.key)
        if not self._states:
            raise ValueError("A selection chain needs at least one level")

    @property
    def levels(self) -> List[LevelSpec]:
        return [state.spec for state in self._states.values()]

    @property
    def is_ready(self) -> bool:
        return all(
            state.selected_id for state in self._states.values() if not state.spec.optional
        )

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def start(self) -> None:
        """Fetch every idle root level."""

        for state in self._states.values():
            if state.spec.is_root and state.status is LevelStatus.IDLE:
                self._begin_fetch(state, None)

    def select_option(self, level_key: str, option_id: OptionId | None) -> None:
        state = self._state(level_key)
        option_id = "" if option_id is None else str(option_id)
        if option_id == state.selected_id:
            return
        if option_id and all(option.key != option_id for option in state.options):
            if self.strict:
                raise InvalidSelection(level_key, option_id)
            logger.bind(level=level_key, option_id=option_id).warning("invalid_selection_ignored")
            return

        # Fail before touching state when there is no loop to fetch on.
        if option_id and self._children[level_key]:
            asyncio.get_running_loop()

        state.selected_id = option_id
        for descendant in self._descendants(level_key):
            descendant.clear()
        if option_id:
            for child_key in self._children[level_key]:
                self._begin_fetch(self._states[child_key], option_id)

    def retry(self, level_key: str) -> None:
        """Drop the cached options for the level's current parent and fetch again."""

        state = self._state(level_key)
        if state.spec.is_root:
            parent_key = None
        else:
            parent_key = self._states[state.spec.parent].selected_id or None
            if parent_key is None:
                logger.bind(level=level_key).info("retry_without_parent_ignored")
                return
        self._cell.invalidate(level_key, parent_key)
        self._begin_fetch(state, parent_key, keep_options=True)

    def reset(self) -> None:
        for state in self._states.values():
            state.clear()

    def get_snapshot(self) -> ChainSnapshot:
        return ChainSnapshot(
            levels=[state.snapshot() for state in self._states.values()],
            is_ready=self.is_ready,
        )

    def selected_values(self) -> Dict[str, str]:
        return {key: state.selected_id for key, state in self._states.items()}

    async def wait_idle(self) -> None:
        """Wait until every fetch this chain has started has been applied or dropped."""

        while self._tasks:
            await asyncio.wait(list(self._tasks))

    def close(self) -> None:
        for task in list(self._tasks):
            task.cancel()

    def _state(self, level_key: str) -> _LevelState:
        try:
            return self._states[level_key]
        except KeyError:
            raise UnknownLevel(level_key) from None

    def _descendants(self, level_key: str) -> List[_LevelState]:
        found: List[_LevelState] = []
        queue = list(self._children[level_key])
        while queue:
            key = queue.pop(0)
            found.append(self._states[key])
            queue.extend(self._children[key])
        return found

    def _begin_fetch(self, state: _LevelState, parent_key: Optional[str], *, keep_options: bool = False) -> None:
        loop = asyncio.get_running_loop()
        state.generation += 1
        state.parent_key = parent_key
        state.status = LevelStatus.LOADING
        state.error_detail = None
        if not keep_options:
            state.options = []
        task = loop.create_task(self._run_fetch(state, parent_key, state.generation))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_fetch(self, state: _LevelState, parent_key: Optional[str], generation: int) -> None:
        level_key = state.spec.key
        try:
            options = await self._cell.fetch(level_key, parent_key)
        except FetchError as exc:
            if state.generation != generation:
                logger.bind(level=level_key, parent_key=parent_key).debug("stale_option_error_dropped")
                return
            state.status = LevelStatus.ERROR
            state.error_detail = exc.message
            state.options = []
            return

        if state.generation != generation:
            logger.bind(level=level_key, parent_key=parent_key).debug("stale_option_response_dropped")
            return

        state.options = options
        state.status = LevelStatus.READY
        if state.selected_id and all(option.key != state.selected_id for option in options):
            # A refresh removed the selected option.
            state.selected_id = ""
            for descendant in self._descendants(level_key):
                descendant.clear()
