"""Cascading dependent selection: cached option fetches, chains and surfaces."""

from ehostelz.selection.cell import CachedFetchCell, OptionSource, decode_options
from ehostelz.selection.chain import DependencyChainController
from ehostelz.selection.errors import (
    FetchError,
    InvalidSelection,
    RemoteClientError,
    RemoteDataError,
    SelectionError,
    TransientFetchError,
    UnknownLevel,
)
from ehostelz.selection.models import ChainSnapshot, LevelSnapshot, LevelSpec, LevelStatus, Option
from ehostelz.selection.registry import ChainRegistry
from ehostelz.selection.surface import SelectionSurface, SurfaceView

__all__ = [
    "CachedFetchCell",
    "ChainRegistry",
    "ChainSnapshot",
    "DependencyChainController",
    "FetchError",
    "InvalidSelection",
    "LevelSnapshot",
    "LevelSpec",
    "LevelStatus",
    "Option",
    "OptionSource",
    "RemoteClientError",
    "RemoteDataError",
    "SelectionError",
    "SelectionSurface",
    "SurfaceView",
    "TransientFetchError",
    "UnknownLevel",
    "decode_options",
]
