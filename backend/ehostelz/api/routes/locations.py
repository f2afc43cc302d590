"""Province, city and area lookups proxied from the hostel backend.

Every route goes through the shared option cell, so the browser and the
server-side search chains hit the same cache.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ehostelz.core.deps import get_option_cell
from ehostelz.core.fetch_errors import raise_for_fetch_error
from ehostelz.schemas.location import LocationOut
from ehostelz.selection.cell import CachedFetchCell
from ehostelz.selection.errors import FetchError
from ehostelz.selection.presets import AREA, CITY, PROVINCE

router = APIRouter(tags=["locations"])


async def _options(cell: CachedFetchCell, level_key: str, parent_key: Optional[str]) -> List[LocationOut]:
    try:
        options = await cell.fetch(level_key, parent_key)
    except FetchError as exc:
        raise_for_fetch_error(exc)
    return [LocationOut.from_option(option) for option in options]


@router.get("/provinces", response_model=List[LocationOut])
async def list_provinces(cell: CachedFetchCell = Depends(get_option_cell)) -> List[LocationOut]:
    return await _options(cell, PROVINCE, None)


@router.get("/cities", response_model=List[LocationOut])
async def list_cities(
    province_id: Optional[str] = Query(default=None),
    cell: CachedFetchCell = Depends(get_option_cell),
) -> List[LocationOut]:
    return await _options(cell, CITY, province_id or None)


@router.get("/cities/{province_id}", response_model=List[LocationOut])
async def list_province_cities(
    province_id: str,
    cell: CachedFetchCell = Depends(get_option_cell),
) -> List[LocationOut]:
    return await _options(cell, CITY, province_id)


@router.get("/locations/{city_id}", response_model=List[LocationOut])
async def list_city_locations(
    city_id: str,
    cell: CachedFetchCell = Depends(get_option_cell),
) -> List[LocationOut]:
    # Areas are optional: the cell turns a missing list into [] instead of raising.
    return await _options(cell, AREA, city_id)
