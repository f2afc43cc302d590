"""Pydantic models for the student portal routes."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class StudentLoginIn(BaseModel):
    username: str = Field(min_length=1, max_length=150)
    password: str = Field(min_length=1, max_length=150)


class StudentLoginOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    hostel_id: Optional[str] = None


class LedgerPageOut(BaseModel):
    """One page of fee or payment rows with the values for the filter dropdowns."""

    rows: List[Dict[str, Any]]
    page: int
    page_size: int
    total: int
    total_pages: int
    start: int
    end: int
    pages: List[int] = Field(description="Page numbers to show as pager buttons")
    statuses: List[str]
    months: List[str]


class ResetPasswordVerifyIn(BaseModel):
    cnic: str = Field(min_length=1, max_length=20)
    mobile: str = Field(min_length=1, max_length=20)


class ResetPasswordVerifyOut(BaseModel):
    user_id: Optional[str] = Field(default=None, description="Student to pass to the update step")
    message: Optional[str] = None


class ResetPasswordUpdateIn(BaseModel):
    user_id: str = Field(min_length=1, max_length=50)
    new_password: str = Field(min_length=8, max_length=150)

    @field_validator("new_password")
    @classmethod
    def _letters_and_digits(cls, value: str) -> str:
        if not any(ch.isascii() and ch.isalpha() for ch in value) or not any(ch.isdigit() for ch in value):
            raise ValueError("Password must contain at least one letter and one number")
        return value
