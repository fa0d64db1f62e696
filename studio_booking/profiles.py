import logging

from sqlalchemy.exc import SQLAlchemyError

from .errors import Result, NotFoundError, RemoteError, UnexpectedError
from .models import Profile
from .schemas import UserProfile

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "user"


class ProfileDirectory:
    """Maps identity ids to application profiles and their role."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    async def create_profile(self, user_id: str, email: str, name: str, role: str | None = DEFAULT_ROLE) -> Result[UserProfile]:
        try:
            async with self._session_factory() as db:
                db.add(Profile(id=user_id, email=email, name=name, role=role))
                await db.commit()
        except SQLAlchemyError as e:
            logger.error("Profile creation error: %s", e)
            return Result.failure(RemoteError("Failed to create user profile"))
        except Exception:
            logger.exception("Unexpected profile creation error")
            return Result.failure(UnexpectedError())

        return Result.success(UserProfile(id=user_id, email=email, name=name, role=role or DEFAULT_ROLE))

    async def get_user_profile(self, user_id: str) -> Result[UserProfile]:
        try:
            async with self._session_factory() as db:
                profile = await db.get(Profile, user_id)
        except SQLAlchemyError as e:
            logger.error("Profile fetch error: %s", e)
            return Result.failure(RemoteError("Failed to fetch user profile"))
        except Exception:
            logger.exception("Unexpected profile fetch error")
            return Result.failure(UnexpectedError("An unexpected error occurred while fetching profile"))

        if not profile:
            return Result.failure(NotFoundError("User profile not found"))

        return Result.success(
            UserProfile(
                id=profile.id,
                email=profile.email,
                name=profile.name,
                role=profile.role or DEFAULT_ROLE,
            )
        )
