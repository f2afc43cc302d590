"""Public hostel lookups forwarded to the hostel backend."""

from typing import Any, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query

from ehostelz.core.apex import ApexClient
from ehostelz.core.deps import get_apex_client
from ehostelz.core.fetch_errors import raise_for_fetch_error
from ehostelz.selection.errors import FetchError

router = APIRouter(tags=["hostels"])


async def _forward(client: ApexClient, path: str, params: Optional[dict[str, Any]] = None) -> Any:
    try:
        return await client.get_json(path, params)
    except FetchError as exc:
        raise_for_fetch_error(exc)


@router.get("/find-hostels/{province_id}/{city_id}")
async def find_hostels(
    province_id: str,
    city_id: str,
    location_id: Optional[str] = Query(default=None),
    client: ApexClient = Depends(get_apex_client),
):
    params = {"location_id": location_id} if location_id else None
    path = f"find-hostels/{quote(province_id, safe='')}/{quote(city_id, safe='')}"
    return await _forward(client, path, params)


@router.get("/facilities/{hostel_id}")
async def hostel_facilities(hostel_id: str, client: ApexClient = Depends(get_apex_client)):
    return await _forward(client, f"facilities/{quote(hostel_id, safe='')}")


@router.get("/rents/{hostel_id}")
async def hostel_rents(hostel_id: str, client: ApexClient = Depends(get_apex_client)):
    return await _forward(client, f"rents/{quote(hostel_id, safe='')}")


@router.get("/vacant-seats/{hostel_id}")
async def hostel_vacant_seats(hostel_id: str, client: ApexClient = Depends(get_apex_client)):
    return await _forward(client, f"vacant-seats/{quote(hostel_id, safe='')}")


@router.get("/hostel-reviews/{hostel_id}")
async def hostel_reviews(hostel_id: str, client: ApexClient = Depends(get_apex_client)):
    return await _forward(client, f"hostel-reviews/{quote(hostel_id, safe='')}")
