from datetime import datetime, timezone

from studio_booking.schemas import NewBooking

PASSWORD = "secret123"


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def new_booking(start, end, user_id="user-a", user_name="Alice", reason="Band Practice", **extra) -> NewBooking:
    return NewBooking(user_id=user_id, user_name=user_name, start_time=start, end_time=end, reason=reason, **extra)


async def register_and_login(client, email: str, name: str, role: str = "user"):
    resp = await client.post(
        "/register",
        json={"email": email, "password": PASSWORD, "name": name, "role": role},
    )
    assert resp.status_code == 200, resp.text

    resp = await client.post("/login", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    return {"Authorization": f"Bearer {body['access_token']}"}, body["user"]
