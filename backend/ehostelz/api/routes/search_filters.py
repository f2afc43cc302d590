"""Server-side cascading search filters (province -> city -> area).

A screen creates a chain, relays each user choice to ``/select`` and renders
the returned surfaces. Fetches run in the background; pass ``wait=true`` to
get the state after they have settled.
"""

from typing import Optional

import anyio
from fastapi import APIRouter, Depends, HTTPException, Query, status
from loguru import logger

from ehostelz.core.config import settings
from ehostelz.core.deps import get_chain_registry
from ehostelz.schemas.search_filter import ChainCreateIn, ChainOut, SearchQueryOut, SelectIn
from ehostelz.selection.chain import DependencyChainController
from ehostelz.selection.errors import InvalidSelection, UnknownLevel
from ehostelz.selection.presets import AREA, CITY, PROVINCE
from ehostelz.selection.registry import ChainRegistry

router = APIRouter(prefix="/search-filters", tags=["search-filters"])

# Upper bound for wait=true; enough for one request plus its retries.
WAIT_TIMEOUT_SEC = settings.APEX_TIMEOUT_SEC * (settings.REQUIRED_LEVEL_RETRIES + 1)


def _controller(registry: ChainRegistry, chain_id: str) -> DependencyChainController:
    try:
        return registry.get(chain_id)
    except KeyError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Search filter not found or expired"
        )


def _chain_out(registry: ChainRegistry, chain_id: str) -> ChainOut:
    controller = _controller(registry, chain_id)
    surfaces = registry.surfaces(chain_id)
    return ChainOut(
        id=chain_id,
        snapshot=controller.get_snapshot(),
        surfaces=[surface.render() for surface in surfaces],
    )


async def _settle(controller: DependencyChainController) -> None:
    with anyio.move_on_after(WAIT_TIMEOUT_SEC):
        await controller.wait_idle()


@router.post("", response_model=ChainOut, status_code=status.HTTP_201_CREATED)
async def create_search_filter(
    payload: Optional[ChainCreateIn] = None,
    wait: bool = Query(default=False),
    registry: ChainRegistry = Depends(get_chain_registry),
) -> ChainOut:
    preset = payload.preset if payload else "location"
    try:
        chain_id = registry.create(preset)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    if wait:
        await _settle(registry.get(chain_id))
    return _chain_out(registry, chain_id)


@router.get("/{chain_id}", response_model=ChainOut)
async def get_search_filter(
    chain_id: str,
    wait: bool = Query(default=False),
    registry: ChainRegistry = Depends(get_chain_registry),
) -> ChainOut:
    controller = _controller(registry, chain_id)
    if wait:
        await _settle(controller)
    return _chain_out(registry, chain_id)


@router.post("/{chain_id}/select", response_model=ChainOut)
async def select_option(
    chain_id: str,
    payload: SelectIn,
    wait: bool = Query(default=False),
    registry: ChainRegistry = Depends(get_chain_registry),
) -> ChainOut:
    controller = _controller(registry, chain_id)
    try:
        controller.select_option(payload.level, payload.option_id)
    except UnknownLevel as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except InvalidSelection as exc:
        logger.bind(chain_id=chain_id, level=exc.level_key, option_id=exc.option_id).warning(
            "invalid_selection_rejected"
        )
        raise HTTPException(status_code=422, detail=str(exc))
    if wait:
        await _settle(controller)
    return _chain_out(registry, chain_id)


@router.post("/{chain_id}/reset", response_model=ChainOut)
async def reset_search_filter(
    chain_id: str,
    wait: bool = Query(default=False),
    registry: ChainRegistry = Depends(get_chain_registry),
) -> ChainOut:
    controller = _controller(registry, chain_id)
    controller.reset()
    controller.start()
    if wait:
        await _settle(controller)
    return _chain_out(registry, chain_id)


@router.post("/{chain_id}/levels/{level}/retry", response_model=ChainOut)
async def retry_level(
    chain_id: str,
    level: str,
    wait: bool = Query(default=False),
    registry: ChainRegistry = Depends(get_chain_registry),
) -> ChainOut:
    controller = _controller(registry, chain_id)
    try:
        controller.retry(level)
    except UnknownLevel as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if wait:
        await _settle(controller)
    return _chain_out(registry, chain_id)


@router.get("/{chain_id}/query", response_model=SearchQueryOut)
async def search_query(
    chain_id: str,
    registry: ChainRegistry = Depends(get_chain_registry),
) -> SearchQueryOut:
    controller = _controller(registry, chain_id)
    if not controller.is_ready:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Select a province and a city first",
        )
    values = controller.selected_values()
    return SearchQueryOut(
        province=values[PROVINCE],
        city=values[CITY],
        location=values.get(AREA) or None,
    )


@router.delete("/{chain_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_search_filter(
    chain_id: str,
    registry: ChainRegistry = Depends(get_chain_registry),
) -> None:
    if not registry.discard(chain_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Search filter not found or expired"
        )
