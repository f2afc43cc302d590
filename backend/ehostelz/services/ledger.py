"""Filtering and pagination of student fee and payment rows."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Sequence

ALL = "all"

FEE_SEARCH_FIELDS = ("seat_title", "month_of", "payment_status")
PAYMENT_SEARCH_FIELDS = (
    "seat_title",
    "month_of",
    "fee_payment_status",
    "payment_method",
    "payment_type",
)


@dataclass(frozen=True, slots=True)
class LedgerKind:
    search_fields: Sequence[str]
    status_field: str


FEES = LedgerKind(FEE_SEARCH_FIELDS, "payment_status")
PAYMENTS = LedgerKind(PAYMENT_SEARCH_FIELDS, "fee_payment_status")


@dataclass(slots=True)
class Page:
    rows: List[Mapping[str, Any]]
    page: int
    page_size: int
    total: int
    total_pages: int
    start: int
    end: int


def _text(row: Mapping[str, Any], field: str) -> str:
    value = row.get(field)
    return "" if value is None else str(value)


def filter_rows(
    rows: Iterable[Mapping[str, Any]],
    kind: LedgerKind,
    *,
    search: str = "",
    status: str = ALL,
    month: str = ALL,
) -> List[Mapping[str, Any]]:
    needle = search.strip().lower()
    matched = []
    for row in rows:
        if needle and not any(needle in _text(row, field).lower() for field in kind.search_fields):
            continue
        if status != ALL and _text(row, kind.status_field) != status:
            continue
        if month != ALL and _text(row, "month_of") != month:
            continue
        matched.append(row)
    return matched


def unique_values(rows: Iterable[Mapping[str, Any]], field: str) -> List[str]:
    return sorted({_text(row, field) for row in rows if row.get(field) is not None})


def paginate(rows: Sequence[Mapping[str, Any]], page: int = 1, page_size: int = 10) -> Page:
    """Slice one page; ``start``/``end`` are the 1-based "showing a-b of n" bounds."""

    if page_size < 1:
        raise ValueError("page_size must be positive")
    total = len(rows)
    total_pages = math.ceil(total / page_size)
    page = min(max(page, 1), max(total_pages, 1))
    offset = (page - 1) * page_size
    current = list(rows[offset : offset + page_size])
    return Page(
        rows=current,
        page=page,
        page_size=page_size,
        total=total,
        total_pages=total_pages,
        start=offset + 1 if current else 0,
        end=offset + len(current),
    )


def page_window(current: int, total_pages: int, width: int = 5) -> List[int]:
    """Page numbers for the pager buttons, keeping ``current`` in view."""

    if total_pages <= width:
        return list(range(1, total_pages + 1))
    half = width // 2
    if current <= half + 1:
        first = 1
    elif current >= total_pages - half:
        first = total_pages - width + 1
    else:
        first = current - half
    return list(range(first, first + width))
