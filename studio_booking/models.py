import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, JSON, ForeignKey
from .db import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class AuthUser(Base):
    __tablename__ = "auth_users"

    id = Column(String, primary_key=True, default=_new_id)
    email = Column(String, unique=True, nullable=False, index=True)
    password = Column(String, nullable=False)
    user_metadata = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String, primary_key=True)  # same id as auth_users.id
    email = Column(String, nullable=False)
    name = Column(String, nullable=False)
    role = Column(String, nullable=True)  # admin/user, NULL resolves to user

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String, primary_key=True, default=_new_id)

    user_id = Column(String, ForeignKey("profiles.id"), nullable=False, index=True)
    user_name = Column(String, nullable=False)

    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time = Column(DateTime(timezone=True), nullable=False)

    status = Column(String, nullable=False, index=True, default="pending")  # pending/approved/rejected
    reason = Column(String, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now, index=True)
