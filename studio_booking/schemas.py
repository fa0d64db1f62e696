from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

BookingStatus = Literal["pending", "approved", "rejected"]
# "today" is a computed view over start dates, never stored
BookingView = Literal["pending", "approved", "rejected", "today"]
UserRole = Literal["admin", "user"]

_ALLOWED_ROLES = {"user", "admin"}


def ensure_utc(value: datetime) -> datetime:
    # naive timestamps are taken as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ---- Bookings ----

class BookingRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    user_name: str
    start_time: datetime
    end_time: datetime
    status: BookingStatus
    reason: str
    created_at: datetime

    @field_validator("start_time", "end_time", "created_at")
    @classmethod
    def _as_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class NewBooking(BaseModel):
    user_id: str
    user_name: str
    start_time: datetime
    end_time: datetime
    reason: str
    # accepted so callers may pass it, always replaced by "pending"
    status: Optional[str] = None


class BookingUpdate(BaseModel):
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    reason: Optional[str] = None


class CreateBookingRequest(BaseModel):
    start_time: datetime
    end_time: datetime
    reason: str


class StatusUpdateRequest(BaseModel):
    status: str


class TimeSlot(BaseModel):
    time: str
    available: bool


class SlotsResponse(BaseModel):
    date: str
    taken: list[str]
    schedule: list[TimeSlot]


class StatusCounts(BaseModel):
    pending: int = 0
    approved: int = 0
    rejected: int = 0


class DaySummary(BaseModel):
    approved: int = 0
    pending: int = 0


# ---- Users ----

class UserProfile(BaseModel):
    id: str
    email: str
    name: str
    role: UserRole = "user"


class Register(BaseModel):
    email: str
    password: str = Field(min_length=6)
    name: str
    role: str = "user"

    @field_validator("role")
    @classmethod
    def _normalize_role(cls, v: str) -> str:
        rr = (v or "").strip().lower() or "user"
        if rr not in _ALLOWED_ROLES:
            raise ValueError(f"Invalid role: {v}. Allowed: {sorted(_ALLOWED_ROLES)}")
        return rr


class Login(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    access_token: str
    user: UserProfile
