"""User-facing view of one level in a selection chain."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from ehostelz.selection.chain import DependencyChainController
from ehostelz.selection.models import LevelStatus, Option, OptionId


class SurfaceView(BaseModel):
    """What a select/typeahead control for one level should display."""

    level: str
    label: str
    enabled: bool
    loading: bool = False
    selected_id: str = ""
    options: List[Option] = Field(default_factory=list)
    placeholder: str
    message: Optional[str] = None
    error: Optional[str] = None
    can_retry: bool = False


class SelectionSurface:
    """Binds a control to one level: renders its state, relays user choices.

    Only the chain snapshot is read. Other levels are never touched; the
    parent's selection is consulted solely to decide whether the control is
    enabled.
    """

    def __init__(
        self,
        controller: DependencyChainController,
        level_key: str,
        *,
        retain_options: bool = False,
    ):
        self._controller = controller
        self.level_key = level_key
        self.retain_options = retain_options
        self._last_options: List[Option] = []
        self._last_parent_key: Optional[str] = None
        # Validates the key up front.
        controller.get_snapshot().level(level_key)

    def render(self) -> SurfaceView:
        snapshot = self._controller.get_snapshot()
        level = snapshot.level(self.level_key)
        parent = snapshot.level(level.parent) if level.parent else None

        enabled = parent is None or bool(parent.selected_id)
        loading = level.status is LevelStatus.LOADING
        options = list(level.options)

        if level.status is LevelStatus.READY:
            self._last_options = options
            self._last_parent_key = level.parent_key
        elif loading and self.retain_options and not options:
            if self._last_parent_key == level.parent_key:
                options = list(self._last_options)
        elif loading and not self.retain_options:
            options = []

        view = SurfaceView(
            level=level.key,
            label=level.label,
            enabled=enabled,
            loading=loading,
            selected_id=level.selected_id,
            options=options,
            placeholder=f"Select {level.label}",
        )
        if not enabled:
            view.placeholder = f"Select {parent.label} first"
        elif loading:
            view.message = f"Loading {level.label.lower()} options..."
        elif level.status is LevelStatus.ERROR:
            view.error = level.error_detail or f"Could not load {level.label.lower()} options"
            view.can_retry = True
        elif level.status is LevelStatus.READY and not options:
            view.message = f"No {level.label.lower()} options available"
        return view

    def choose(self, option_id: OptionId | None) -> None:
        self._controller.select_option(self.level_key, option_id)

    def retry(self) -> None:
        self._controller.retry(self.level_key)
