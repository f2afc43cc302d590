"""Shared helpers for translating fetch failures into HTTP errors."""

from __future__ import annotations

from fastapi import HTTPException, status

from ehostelz.selection.errors import (
    FetchError,
    RemoteClientError,
    RemoteDataError,
    TransientFetchError,
)


def raise_for_fetch_error(exc: FetchError) -> None:
    """Upstream 4xx keep their status; bad bodies are 502; outages are 503."""

    if isinstance(exc, RemoteClientError):
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc
    if isinstance(exc, RemoteDataError):
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Unexpected response from the hostel backend: {exc.message}",
        ) from exc
    if isinstance(exc, TransientFetchError):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="The hostel backend is not reachable. Please retry shortly.",
            headers={"Retry-After": "5"},
        ) from exc
    raise HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message
    ) from exc
