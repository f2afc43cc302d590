"""Types shared by the option cell, the chain controller and the surfaces."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

OptionId = Union[int, str]


class Option(BaseModel):
    """One selectable entry at a given hierarchy level."""

    model_config = ConfigDict(frozen=True)

    id: OptionId
    label: str
    parent_id: Optional[OptionId] = None

    @property
    def key(self) -> str:
        """String form of ``id`` used for selection and parent keys."""
        return str(self.id)


@dataclass(frozen=True, slots=True)
class LevelSpec:
    """A position in the hierarchy together with how its options are fetched.

    ``endpoint`` is an APEX path. When it contains ``{parent}`` the parent key
    is substituted into the path; otherwise ``parent_param`` names the query
    parameter carrying it. With ``filter_locally`` the whole table is fetched
    once and narrowed by ``parent_field`` after decoding.
    """

    key: str
    label: str
    endpoint: str
    parent: Optional[str] = None
    optional: bool = False
    parent_param: Optional[str] = None
    filter_locally: bool = False
    parent_field: Optional[str] = None
    label_field: str = "title"
    envelope: Tuple[str, ...] = ("items", "data")
    keep_remote_order: bool = False
    stale_seconds: float = 30 * 60
    retries: int = 3
    retry_delay: float = 1.0
    retry_delay_cap: float = 1.0
    timeout: float = 10.0

    @property
    def is_root(self) -> bool:
        return self.parent is None


class LevelStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class LevelSnapshot(BaseModel):
    """Read-only copy of one level's selection state."""

    key: str
    label: str
    parent: Optional[str] = None
    optional: bool = False
    selected_id: str = ""
    options: List[Option] = Field(default_factory=list)
    status: LevelStatus = LevelStatus.IDLE
    error_detail: Optional[str] = None
    parent_key: Optional[str] = None
    generation: int = 0


class ChainSnapshot(BaseModel):
    """Every level's state plus the chain-wide readiness flag."""

    levels: List[LevelSnapshot]
    is_ready: bool

    def level(self, key: str) -> LevelSnapshot:
        for level in self.levels:
            if level.key == key:
                return level
        raise KeyError(key)
