from tests.helpers import PASSWORD, register_and_login

BOOKING = {
    "start_time": "2026-01-08T10:00:00Z",
    "end_time": "2026-01-08T12:00:00Z",
    "reason": "Band Practice",
}


async def create_booking(client, headers, payload=None):
    resp = await client.post("/bookings", json=payload or BOOKING, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def test_health(client):
    resp = await client.get("/health")

    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert resp.headers["X-Request-Id"]


async def test_register_rejects_bad_input(client):
    bad_role = await client.post(
        "/register",
        json={"email": "x@example.com", "password": PASSWORD, "name": "X", "role": "owner"},
    )
    assert bad_role.status_code == 422

    short_password = await client.post(
        "/register",
        json={"email": "x@example.com", "password": "123", "name": "X"},
    )
    assert short_password.status_code == 422

    await register_and_login(client, "x@example.com", "X")
    duplicate = await client.post(
        "/register",
        json={"email": "x@example.com", "password": PASSWORD, "name": "X"},
    )
    assert duplicate.status_code == 409


async def test_login_sets_session_cookie(client):
    await client.post("/register", json={"email": "a@example.com", "password": PASSWORD, "name": "Alice"})

    resp = await client.post("/login", json={"email": "a@example.com", "password": PASSWORD})

    assert resp.status_code == 200
    set_cookie = resp.headers["set-cookie"]
    assert set_cookie.startswith("secret=")
    assert "HttpOnly" in set_cookie

    token = resp.json()["access_token"]
    me = await client.get("/me", headers={"Cookie": f"secret={token}"})
    assert me.status_code == 200
    assert me.json()["name"] == "Alice"


async def test_wrong_password_is_unauthorized(client):
    await register_and_login(client, "a@example.com", "Alice")

    resp = await client.post("/login", json={"email": "a@example.com", "password": "wrong-password"})
    assert resp.status_code == 401


async def test_me_requires_session(client):
    assert (await client.get("/me")).status_code == 401
    assert (await client.get("/me", headers={"Authorization": "Bearer nonsense"})).status_code == 401


async def test_logout_revokes_token(client):
    headers, _ = await register_and_login(client, "a@example.com", "Alice")

    resp = await client.post("/logout", headers=headers)
    assert resp.status_code == 200

    assert (await client.get("/me", headers=headers)).status_code == 401


async def test_create_booking_belongs_to_caller(client):
    headers, user = await register_and_login(client, "a@example.com", "Alice")

    booking = await create_booking(client, headers, dict(BOOKING, status="approved"))

    assert booking["status"] == "pending"
    assert booking["user_id"] == user["id"]
    assert booking["user_name"] == "Alice"

    mine = await client.get("/bookings/mine", headers=headers)
    assert [b["id"] for b in mine.json()] == [booking["id"]]


async def test_create_booking_validation(client):
    headers, _ = await register_and_login(client, "a@example.com", "Alice")

    resp = await client.post("/bookings", json=dict(BOOKING, end_time=BOOKING["start_time"]), headers=headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "End time must be after start time"


async def test_only_admin_decides(client):
    user_headers, _ = await register_and_login(client, "a@example.com", "Alice")
    admin_headers, _ = await register_and_login(client, "boss@example.com", "Boss", role="admin")
    booking = await create_booking(client, user_headers)

    denied = await client.put(f"/bookings/{booking['id']}/status", json={"status": "approved"}, headers=user_headers)
    assert denied.status_code == 403

    invalid = await client.put(f"/bookings/{booking['id']}/status", json={"status": "done"}, headers=admin_headers)
    assert invalid.status_code == 400

    approved = await client.put(f"/bookings/{booking['id']}/status", json={"status": "approved"}, headers=admin_headers)
    assert approved.status_code == 200
    assert approved.json()["status"] == "approved"

    stats = await client.get("/bookings/stats", headers=admin_headers)
    assert stats.json() == {"pending": 0, "approved": 1, "rejected": 0}
    assert (await client.get("/bookings/stats", headers=user_headers)).status_code == 403


async def test_edit_and_delete_are_owner_and_pending_only(client):
    alice, _ = await register_and_login(client, "a@example.com", "Alice")
    bob, _ = await register_and_login(client, "b@example.com", "Bob")
    admin, _ = await register_and_login(client, "boss@example.com", "Boss", role="admin")
    booking = await create_booking(client, alice)
    url = f"/bookings/{booking['id']}"

    assert (await client.patch(url, json={"reason": "Mine now"}, headers=bob)).status_code == 403
    assert (await client.delete(url, headers=bob)).status_code == 403

    edited = await client.patch(url, json={"reason": "Recording"}, headers=alice)
    assert edited.status_code == 200
    assert edited.json()["reason"] == "Recording"

    await client.put(f"{url}/status", json={"status": "approved"}, headers=admin)
    assert (await client.patch(url, json={"reason": "Again"}, headers=alice)).status_code == 409
    assert (await client.delete(url, headers=alice)).status_code == 409


async def test_delete_pending_booking(client):
    headers, _ = await register_and_login(client, "a@example.com", "Alice")
    booking = await create_booking(client, headers)

    assert (await client.delete(f"/bookings/{booking['id']}", headers=headers)).status_code == 200
    assert (await client.get(f"/bookings/{booking['id']}", headers=headers)).status_code == 404


async def test_slots_and_views(client):
    alice, _ = await register_and_login(client, "a@example.com", "Alice")
    bob, _ = await register_and_login(client, "b@example.com", "Bob")
    admin, _ = await register_and_login(client, "boss@example.com", "Boss", role="admin")

    booking = await create_booking(client, alice)
    await client.put(f"/bookings/{booking['id']}/status", json={"status": "approved"}, headers=admin)

    slots = (await client.get("/slots/2026-01-08", headers=bob)).json()
    assert slots["taken"] == ["10:00", "11:00"]
    unavailable = [s["time"] for s in slots["schedule"] if not s["available"]]
    assert unavailable == ["10:00", "11:00"]

    own = (await client.get(f"/slots/2026-01-08?exclude={booking['id']}", headers=alice)).json()
    assert own["taken"] == []

    # double booking is accepted
    overlap = await create_booking(client, bob)
    assert overlap["status"] == "pending"

    approved = await client.get("/bookings?view=approved", headers=admin)
    assert [b["id"] for b in approved.json()] == [booking["id"]]

    by_day = await client.get("/bookings/date/2026-01-08", headers=bob)
    assert {b["id"] for b in by_day.json()} == {booking["id"], overlap["id"]}

    calendar = (await client.get("/calendar", headers=bob)).json()
    assert calendar["2026-01-08"] == {"approved": 1, "pending": 1}

    assert (await client.get("/slots/someday", headers=bob)).status_code == 400


async def test_last_calendar_day_is_bad_request(client):
    headers, _ = await register_and_login(client, "a@example.com", "Alice")

    assert (await client.get("/slots/9999-12-31", headers=headers)).status_code == 400
    assert (await client.get("/bookings/date/9999-12-31", headers=headers)).status_code == 400


async def test_exclude_ignores_booking_on_another_day(client):
    alice, _ = await register_and_login(client, "a@example.com", "Alice")
    bob, _ = await register_and_login(client, "b@example.com", "Bob")

    own = await create_booking(client, alice)
    await create_booking(
        client,
        bob,
        dict(BOOKING, start_time="2026-01-09T10:00:00Z", end_time="2026-01-09T12:00:00Z"),
    )

    slots = (await client.get(f"/slots/2026-01-09?exclude={own['id']}", headers=alice)).json()
    assert slots["taken"] == ["10:00", "11:00"]


async def test_session_without_profile_is_unauthorized(client, studio):
    await studio.identity.sign_up("orphan@example.com", PASSWORD)
    session = await studio.identity.sign_in_with_password("orphan@example.com", PASSWORD)

    resp = await client.get("/me", headers={"Authorization": f"Bearer {session.access_token}"})

    assert resp.status_code == 401
