import pytest

from ehostelz.core.deps import get_apex_client, get_option_cell
from ehostelz.selection.cell import CachedFetchCell
from ehostelz.selection.errors import RemoteDataError, TransientFetchError

from fakes import CITIES, FakeApex, api_client, make_levels, scripted_location_source


@pytest.fixture
def location_source(app):
    source = scripted_location_source()
    cell = CachedFetchCell(source, make_levels(retries=0))
    app.dependency_overrides[get_option_cell] = lambda: cell
    return source


@pytest.mark.anyio
async def test_provinces_are_sorted_and_cached(app, location_source):
    async with api_client(app) as client:
        first = await client.get("/api/provinces")
        second = await client.get("/api/provinces")

    assert first.status_code == 200
    assert first.json() == [
        {"id": 1, "title": "Punjab", "parent_id": None},
        {"id": 2, "title": "Sindh", "parent_id": None},
    ]
    assert second.json() == first.json()
    assert location_source.count("province") == 1
    assert first.headers["X-Request-ID"]


@pytest.mark.anyio
async def test_cities_are_filtered_by_province(app, location_source):
    async with api_client(app) as client:
        by_path = await client.get("/api/cities/2")
        by_query = await client.get("/api/cities", params={"province_id": "1"})

    assert by_path.json() == [{"id": 20, "title": "Karachi", "parent_id": 2}]
    assert [city["title"] for city in by_query.json()] == ["Faisalabad", "Lahore"]


@pytest.mark.anyio
async def test_cities_without_province_lists_every_city(app, location_source):
    location_source.script("city", None, {"items": CITIES})

    async with api_client(app) as client:
        response = await client.get("/api/cities")

    assert [city["title"] for city in response.json()] == ["Faisalabad", "Karachi", "Lahore"]


@pytest.mark.anyio
async def test_missing_area_list_is_empty(app, location_source):
    async with api_client(app) as client:
        known = await client.get("/api/locations/10")
        missing = await client.get("/api/locations/999")

    assert [area["title"] for area in known.json()] == ["DHA", "Gulberg"]
    assert missing.status_code == 200
    assert missing.json() == []


@pytest.mark.anyio
async def test_unreachable_backend_is_503(app, location_source):
    location_source.script("province", None, TransientFetchError("timed out"))

    async with api_client(app) as client:
        response = await client.get("/api/provinces")

    assert response.status_code == 503
    assert response.headers["Retry-After"] == "5"


@pytest.mark.anyio
async def test_malformed_backend_payload_is_502(app, location_source):
    location_source.script("province", None, {"items": [{"id": 1}]})

    async with api_client(app) as client:
        response = await client.get("/api/provinces")

    assert response.status_code == 502


@pytest.mark.anyio
async def test_bad_payload_error_raised_by_source_is_502(app, location_source):
    location_source.script("province", None, RemoteDataError("not json"))

    async with api_client(app) as client:
        response = await client.get("/api/provinces")

    assert response.status_code == 502
    assert "not json" in response.json()["detail"]


@pytest.mark.anyio
async def test_hostel_search_is_forwarded(app):
    apex = FakeApex({"find-hostels/1/10": {"items": [{"hostel_id": 5}]}})
    app.dependency_overrides[get_apex_client] = lambda: apex

    async with api_client(app) as client:
        response = await client.get("/api/find-hostels/1/10", params={"location_id": "100"})
        missing = await client.get("/api/facilities/5")

    assert response.json() == {"items": [{"hostel_id": 5}]}
    assert apex.calls[0] == ("GET", "find-hostels/1/10", {"location_id": "100"})
    assert missing.status_code == 404


@pytest.mark.anyio
async def test_health_and_readiness(app, location_source):
    async with api_client(app) as client:
        health = await client.get("/api/healthz")
        await client.get("/api/provinces")
        ready = await client.get("/api/readyz")

    assert health.json() == {"status": "ok"}
    assert ready.json()["option_cache"]["cached"] == 1
