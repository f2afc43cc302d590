"""FastAPI dependencies for the process-wide clients, caches and stores."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, Request, status

from ehostelz.core.apex import ApexClient
from ehostelz.core.config import settings
from ehostelz.core.logging import session_id_ctx_var
from ehostelz.core.sessions import StudentContext, StudentSessionStore
from ehostelz.selection.cell import CachedFetchCell
from ehostelz.selection.presets import location_levels
from ehostelz.selection.registry import ChainRegistry

_apex_client: Optional[ApexClient] = None
_option_cell: Optional[CachedFetchCell] = None
_chain_registry: Optional[ChainRegistry] = None
_session_store: Optional[StudentSessionStore] = None


def get_apex_client() -> ApexClient:
    global _apex_client
    if _apex_client is None:
        _apex_client = ApexClient()
    return _apex_client


def get_option_cell() -> CachedFetchCell:
    """The one option cache shared by every chain and location route."""

    global _option_cell
    if _option_cell is None:
        _option_cell = CachedFetchCell(get_apex_client(), location_levels())
    return _option_cell


def get_chain_registry() -> ChainRegistry:
    global _chain_registry
    if _chain_registry is None:
        _chain_registry = ChainRegistry(
            get_option_cell(),
            idle_ttl=settings.CHAIN_IDLE_TTL_MINUTES * 60,
            max_active=settings.CHAIN_MAX_ACTIVE,
            strict=settings.strict_selection,
        )
    return _chain_registry


def get_session_store() -> StudentSessionStore:
    global _session_store
    if _session_store is None:
        _session_store = StudentSessionStore(ttl=settings.STUDENT_SESSION_TTL_MINUTES * 60)
    return _session_store


def bearer_token(request: Request) -> str:
    auth = request.headers.get("Authorization")
    if not auth or not auth.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated"
        )
    return auth.split(" ", 1)[1]


async def get_student_context(
    request: Request,
    store: StudentSessionStore = Depends(get_session_store),
) -> StudentContext:
    context = store.get(bearer_token(request))
    if context is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Session expired or invalid"
        )
    request.state.student_user_id = context.user_id
    session_id_ctx_var.set(context.user_id)
    return context


def close_clients() -> None:
    global _apex_client, _option_cell, _chain_registry
    if _apex_client is not None:
        _apex_client.close()
    _apex_client = None
    _option_cell = None
    _chain_registry = None
