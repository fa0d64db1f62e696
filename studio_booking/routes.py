import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, WebSocket, WebSocketDisconnect, status

from .config import SESSION_COOKIE_NAME, SESSION_TTL_SECONDS
from .container import Studio
from .errors import Result
from .rbac import require_role, require_pending_owner
from .schemas import (
    BookingRecord,
    BookingUpdate,
    BookingView,
    CreateBookingRequest,
    DaySummary,
    Login,
    LoginResponse,
    NewBooking,
    Register,
    SlotsResponse,
    StatusCounts,
    StatusUpdateRequest,
    UserProfile,
)
from .security import get_studio, get_access_token, get_current_user
from .slots import (
    calendar_summary,
    day_schedule,
    exclude_own_slots,
    filter_bookings,
    parse_day,
    starts_on,
    status_counts,
)
from .state import BookingState

logger = logging.getLogger(__name__)

router = APIRouter()


def unwrap(result: Result):
    if not result.ok:
        raise HTTPException(status_code=result.error.status_code, detail=str(result.error))
    return result.data


def _day_or_400(day: str):
    try:
        return parse_day(day)
    except (TypeError, ValueError, OverflowError):
        raise HTTPException(status_code=400, detail=f"Invalid date: {day}")


# ================= AUTH =================

@router.post("/register", response_model=UserProfile, tags=["Auth"])
async def register(data: Register, studio: Studio = Depends(get_studio)):
    return unwrap(await studio.auth.register(data.email, data.password, data.name, data.role))


@router.post("/login", response_model=LoginResponse, tags=["Auth"])
async def login(data: Login, response: Response, studio: Studio = Depends(get_studio)):
    result = unwrap(await studio.auth.login(data.email, data.password))

    response.set_cookie(
        SESSION_COOKIE_NAME,
        result.access_token,
        max_age=SESSION_TTL_SECONDS,
        httponly=True,
        samesite="lax",
    )
    return LoginResponse(access_token=result.access_token, user=result.profile)


@router.post("/logout", tags=["Auth"])
async def logout(
    response: Response,
    token: str | None = Depends(get_access_token),
    studio: Studio = Depends(get_studio),
):
    unwrap(await studio.auth.logout(token))
    response.delete_cookie(SESSION_COOKIE_NAME)
    return {"message": "Logged out"}


@router.get("/me", response_model=UserProfile, tags=["Auth"])
async def me(user: UserProfile = Depends(get_current_user)):
    return user


# ================= BOOKINGS =================

@router.get("/bookings", response_model=list[BookingRecord], tags=["Bookings"])
async def list_bookings(
    view: Optional[BookingView] = None,
    user_id: Optional[str] = None,
    user: UserProfile = Depends(get_current_user),
    studio: Studio = Depends(get_studio),
):
    if user_id:
        bookings = unwrap(await studio.bookings.list_for_user(user_id))
    else:
        bookings = unwrap(await studio.bookings.list_all())
    return filter_bookings(bookings, view)


@router.get("/bookings/mine", response_model=list[BookingRecord], tags=["Bookings"])
async def my_bookings(user: UserProfile = Depends(get_current_user), studio: Studio = Depends(get_studio)):
    return unwrap(await studio.bookings.list_for_user(user.id))


@router.get("/bookings/stats", response_model=StatusCounts, tags=["Bookings"])
async def booking_stats(user: UserProfile = Depends(get_current_user), studio: Studio = Depends(get_studio)):
    require_role(user, ["admin"])
    return status_counts(unwrap(await studio.bookings.list_all()))


@router.get("/bookings/date/{day}", response_model=list[BookingRecord], tags=["Bookings"])
async def bookings_for_date(day: str, user: UserProfile = Depends(get_current_user), studio: Studio = Depends(get_studio)):
    return unwrap(await studio.bookings.list_for_date(_day_or_400(day)))


@router.post("/bookings", response_model=BookingRecord, status_code=status.HTTP_201_CREATED, tags=["Bookings"])
async def create_booking(
    data: CreateBookingRequest,
    user: UserProfile = Depends(get_current_user),
    studio: Studio = Depends(get_studio),
):
    booking = NewBooking(
        user_id=user.id,
        user_name=user.name,
        start_time=data.start_time,
        end_time=data.end_time,
        reason=data.reason,
    )
    return unwrap(await studio.bookings.create(booking))


@router.get("/bookings/{booking_id}", response_model=BookingRecord, tags=["Bookings"])
async def get_booking(booking_id: str, user: UserProfile = Depends(get_current_user), studio: Studio = Depends(get_studio)):
    return unwrap(await studio.bookings.get(booking_id))


@router.patch("/bookings/{booking_id}", response_model=BookingRecord, tags=["Bookings"])
async def edit_booking(
    booking_id: str,
    data: BookingUpdate,
    user: UserProfile = Depends(get_current_user),
    studio: Studio = Depends(get_studio),
):
    booking = unwrap(await studio.bookings.get(booking_id))
    require_pending_owner(user, booking)
    return unwrap(await studio.bookings.edit(booking_id, data))


@router.delete("/bookings/{booking_id}", tags=["Bookings"])
async def delete_booking(booking_id: str, user: UserProfile = Depends(get_current_user), studio: Studio = Depends(get_studio)):
    booking = unwrap(await studio.bookings.get(booking_id))
    require_pending_owner(user, booking)
    unwrap(await studio.bookings.delete(booking_id))
    return {"message": "Booking deleted"}


@router.put("/bookings/{booking_id}/status", response_model=BookingRecord, tags=["Bookings"])
async def set_booking_status(
    booking_id: str,
    data: StatusUpdateRequest,
    user: UserProfile = Depends(get_current_user),
    studio: Studio = Depends(get_studio),
):
    require_role(user, ["admin"])
    return unwrap(await studio.bookings.set_status(booking_id, data.status))


# ================= CALENDAR =================

@router.get("/calendar", response_model=dict[str, DaySummary], tags=["Calendar"])
async def calendar(user: UserProfile = Depends(get_current_user), studio: Studio = Depends(get_studio)):
    return calendar_summary(unwrap(await studio.bookings.list_all()))


@router.get("/slots/{day}", response_model=SlotsResponse, tags=["Calendar"])
async def slots_for_day(
    day: str,
    exclude: Optional[str] = None,
    user: UserProfile = Depends(get_current_user),
    studio: Studio = Depends(get_studio),
):
    d = _day_or_400(day)
    taken = unwrap(await studio.bookings.get_taken_slots(d))

    if exclude:
        own = unwrap(await studio.bookings.get(exclude))
        if starts_on(own, d):
            taken = exclude_own_slots(taken, own)

    return SlotsResponse(date=d.isoformat(), taken=taken, schedule=day_schedule(taken))


# ================= REALTIME =================

@router.websocket("/bookings/stream")
async def booking_stream(websocket: WebSocket):
    studio: Studio = websocket.app.state.studio
    token = websocket.query_params.get("token") or websocket.cookies.get(SESSION_COOKIE_NAME)

    restored = await studio.auth.restore_session(token)
    if not restored.data:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()

    # only the newest snapshot matters to a slow client
    outbox: asyncio.Queue = asyncio.Queue(maxsize=1)

    def push(bookings: list[BookingRecord]):
        if outbox.full():
            outbox.get_nowait()
        outbox.put_nowait(bookings)

    async def send_updates():
        while True:
            bookings = await outbox.get()
            await websocket.send_json([b.model_dump(mode="json") for b in bookings])

    state = BookingState(studio.bookings, studio.changes, on_replace=push)
    sender = asyncio.create_task(send_updates())
    try:
        await state.start()
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("Booking stream closed for %s", restored.data.id)
    finally:
        state.close()
        sender.cancel()
