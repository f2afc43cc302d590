"""Pydantic models for location options returned by the proxy routes."""

from typing import Optional, Union

from pydantic import BaseModel, Field

from ehostelz.selection.models import Option


class LocationOut(BaseModel):
    """Province, city or area option in the shape the web client expects."""

    id: Union[int, str] = Field(description="Option id from the hostel backend")
    title: str = Field(description="Display name")
    parent_id: Optional[Union[int, str]] = Field(default=None, description="Id of the parent option")

    @classmethod
    def from_option(cls, option: Option) -> "LocationOut":
        return cls(id=option.id, title=option.label, parent_id=option.parent_id)
