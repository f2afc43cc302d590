import pytest

from ehostelz.core.deps import get_apex_client, get_session_store
from ehostelz.core.sessions import StudentSessionStore
from ehostelz.selection.errors import RemoteClientError, TransientFetchError

from fakes import FakeApex, api_client

LOGIN_OK = {"status": True, "code": 200, "data": {"user_id": 7, "hostel_id": None}}
FEES = [
    {"seat_title": "Room 1 - Bed A", "month_of": "January", "payment_status": "Paid"},
    {"seat_title": "Room 1 - Bed A", "month_of": "February", "payment_status": "Unpaid"},
    {"seat_title": "Room 1 - Bed A", "month_of": "March", "payment_status": "Unpaid"},
]


@pytest.fixture
def apex(app):
    fake = FakeApex({"student-login": LOGIN_OK})
    store = StudentSessionStore(ttl=3600)
    app.dependency_overrides[get_apex_client] = lambda: fake
    app.dependency_overrides[get_session_store] = lambda: store
    return fake


async def _login(client):
    response = await client.post("/api/student-login", json={"username": "ali", "password": "secret"})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.mark.anyio
async def test_login_creates_session(app, apex):
    async with api_client(app) as client:
        response = await client.post(
            "/api/student-login", json={"username": "ali", "password": "secret"}
        )

    body = response.json()
    assert body["user_id"] == "7"
    assert body["token_type"] == "bearer"
    assert body["hostel_id"] is None
    assert apex.calls == [("POST", "student-login", {"username": "ali", "password": "secret"})]


@pytest.mark.anyio
@pytest.mark.parametrize(
    "answer,detail",
    [
        ({"status": False, "code": 401, "message": "Wrong password"}, "Wrong password"),
        ({"status": True, "code": 500}, "Invalid username or password"),
        (RemoteClientError("APEX returned 401", status_code=401), "Invalid username or password"),
    ],
)
async def test_failed_login_is_401(app, apex, answer, detail):
    apex.routes["student-login"] = answer

    async with api_client(app) as client:
        response = await client.post(
            "/api/student-login", json={"username": "ali", "password": "nope"}
        )

    assert response.status_code == 401
    assert response.json()["detail"] == detail


@pytest.mark.anyio
async def test_login_during_outage_is_503(app, apex):
    apex.routes["student-login"] = TransientFetchError("timed out")

    async with api_client(app) as client:
        response = await client.post(
            "/api/student-login", json={"username": "ali", "password": "secret"}
        )

    assert response.status_code == 503


@pytest.mark.anyio
async def test_login_is_rate_limited(app, apex):
    async with api_client(app) as client:
        statuses = [
            (
                await client.post("/api/student-login", json={"username": "ali", "password": "x"})
            ).status_code
            for _ in range(11)
        ]

    assert statuses[:10] == [200] * 10
    assert statuses[10] == 429


@pytest.mark.anyio
async def test_portal_requires_a_session(app, apex):
    async with api_client(app) as client:
        missing = await client.get("/api/student/hostels")
        forged = await client.get(
            "/api/student/hostels", headers={"Authorization": "Bearer forged"}
        )

    assert missing.status_code == 401
    assert forged.json()["detail"] == "Session expired or invalid"


@pytest.mark.anyio
async def test_hostels_remember_the_students_hostel(app, apex):
    apex.routes["student-hostels/7"] = {"data": {"hostel_id": 3, "hostel_name": "Green Inn"}}
    apex.routes["student-profile/7/3"] = {"data": {"name": "Ali"}}

    async with api_client(app) as client:
        headers = await _login(client)
        before = await client.get("/api/student/profile", headers=headers)
        await client.get("/api/student/hostels", headers=headers)
        after = await client.get("/api/student/profile", headers=headers)

    assert before.status_code == 409
    assert after.json() == {"data": {"name": "Ali"}}


@pytest.mark.anyio
async def test_fees_are_filtered_and_paginated(app, apex):
    apex.routes["student-fees/7/3"] = {"data": FEES}

    async with api_client(app) as client:
        headers = await _login(client)
        response = await client.get(
            "/api/student/fees",
            headers=headers,
            params={"hostel_id": "3", "status": "Unpaid", "page_size": 1, "page": 2},
        )

    body = response.json()
    assert body["total"] == 2
    assert body["rows"] == [FEES[2]]
    assert (body["start"], body["end"], body["total_pages"]) == (2, 2, 2)
    assert body["pages"] == [1, 2]
    assert body["statuses"] == ["Paid", "Unpaid"]
    assert body["months"] == ["February", "January", "March"]


@pytest.mark.anyio
async def test_payments_pass_allotment_filter(app, apex):
    apex.routes["student-payments/7/3"] = {"data": []}

    async with api_client(app) as client:
        headers = await _login(client)
        response = await client.get(
            "/api/student/payments",
            headers=headers,
            params={"hostel_id": "3", "allotment_id": "12"},
        )

    assert response.json()["total"] == 0
    assert apex.calls[-1] == ("GET", "student-payments/7/3", {"allotment_id": "12"})


@pytest.mark.anyio
async def test_unexpected_ledger_shape_is_502(app, apex):
    apex.routes["student-fees/7/3"] = {"data": "nope"}

    async with api_client(app) as client:
        headers = await _login(client)
        response = await client.get("/api/student/fees", headers=headers, params={"hostel_id": "3"})

    assert response.status_code == 502


@pytest.mark.anyio
async def test_logout_ends_the_session(app, apex):
    async with api_client(app) as client:
        headers = await _login(client)
        logout = await client.post("/api/student-logout", headers=headers)
        after = await client.get("/api/student/hostels", headers=headers)

    assert logout.json() == {"status": "logged_out"}
    assert after.status_code == 401


@pytest.mark.anyio
async def test_reset_password_flow(app, apex):
    apex.routes["reset-password/verify"] = {"status": True, "code": 200, "data": {"user_id": 7}}
    apex.routes["reset-password/update"] = {"status": True, "code": 200}

    async with api_client(app) as client:
        verified = await client.post(
            "/api/reset-password/verify", json={"cnic": "35202-1234567-1", "mobile": "03001234567"}
        )
        updated = await client.post(
            "/api/reset-password/update",
            json={"user_id": verified.json()["user_id"], "new_password": "hostel2024"},
        )

    assert verified.status_code == 200
    assert verified.json()["user_id"] == "7"
    assert updated.json() == {"status": "updated"}
    assert apex.calls[-1] == (
        "POST",
        "reset-password/update",
        {"user_id": "7", "new_password": "hostel2024"},
    )


@pytest.mark.anyio
@pytest.mark.parametrize(
    "answer,detail",
    [
        ({"status": False, "code": 404, "message": "No student found"}, "No student found"),
        (RemoteClientError("APEX returned 404", status_code=404), "CNIC and mobile number do not match"),
    ],
)
async def test_reset_verify_mismatch_is_401(app, apex, answer, detail):
    apex.routes["reset-password/verify"] = answer

    async with api_client(app) as client:
        response = await client.post(
            "/api/reset-password/verify", json={"cnic": "1", "mobile": "2"}
        )

    assert response.status_code == 401
    assert response.json()["detail"] == detail


@pytest.mark.anyio
@pytest.mark.parametrize("password", ["short1", "lettersonly", "12345678"])
async def test_weak_new_password_is_rejected_before_forwarding(app, apex, password):
    async with api_client(app) as client:
        response = await client.post(
            "/api/reset-password/update", json={"user_id": "7", "new_password": password}
        )

    assert response.status_code == 422
    assert apex.calls == []


@pytest.mark.anyio
async def test_rejected_password_update_is_400(app, apex):
    apex.routes["reset-password/update"] = {"status": False, "code": 400, "message": "Same as old"}

    async with api_client(app) as client:
        response = await client.post(
            "/api/reset-password/update", json={"user_id": "7", "new_password": "hostel2024"}
        )

    assert response.status_code == 400
    assert response.json()["detail"] == "Same as old"


@pytest.mark.anyio
async def test_reset_password_is_rate_limited(app, apex):
    apex.routes["reset-password/verify"] = {"status": True, "code": 200, "data": {"user_id": 7}}

    async with api_client(app) as client:
        statuses = [
            (
                await client.post("/api/reset-password/verify", json={"cnic": "1", "mobile": "2"})
            ).status_code
            for _ in range(6)
        ]

    assert statuses[:5] == [200] * 5
    assert statuses[5] == 429
