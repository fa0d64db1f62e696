from fastapi import HTTPException, status

from .schemas import UserProfile, BookingRecord


def require_role(user: UserProfile, allowed_roles: list[str]):
    allowed = {r.lower() for r in allowed_roles}

    if (user.role or "user").lower() not in allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access forbidden for this role",
        )


def require_pending_owner(user: UserProfile, booking: BookingRecord):
    """Users may only change their own bookings, and only while they are pending."""
    if booking.user_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only change your own bookings",
        )

    if booking.status != "pending":
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Booking status must be pending, got {booking.status}",
        )
