"""Pydantic models for search filter chains."""

from typing import List, Optional, Union

from pydantic import BaseModel, Field

from ehostelz.selection.models import ChainSnapshot
from ehostelz.selection.surface import SurfaceView


class ChainCreateIn(BaseModel):
    preset: str = Field(default="location", description="Level layout to build")


class SelectIn(BaseModel):
    level: str = Field(description="Level key, e.g. province")
    option_id: Optional[Union[int, str]] = Field(
        default="", description="Option id to select; empty clears the level"
    )


class ChainOut(BaseModel):
    """Chain state plus one rendered view per level."""

    id: str
    snapshot: ChainSnapshot
    surfaces: List[SurfaceView]


class SearchQueryOut(BaseModel):
    """Parameters for the hostel search once every required level is chosen."""

    province: str
    city: str
    location: Optional[str] = None
