import inspect
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

from .errors import Result, RemoteError, UnexpectedError, ValidationError
from .identity import IdentityProvider, IdentityError, AuthIdentity, AuthSession, SIGNED_IN
from .profiles import ProfileDirectory, DEFAULT_ROLE
from .schemas import UserProfile

logger = logging.getLogger(__name__)

ProfileListener = Callable[[Optional[UserProfile]], Union[None, Awaitable[None]]]


@dataclass
class LoginResult:
    profile: UserProfile
    access_token: str


class AuthService:
    """Registration, login, logout and session restore on top of the identity provider."""

    def __init__(self, identity: IdentityProvider, profiles: ProfileDirectory):
        self.identity = identity
        self.profiles = profiles

    async def register(self, email: str, password: str, name: str, role: str = DEFAULT_ROLE) -> Result[UserProfile]:
        if not email or not password or not (name or "").strip():
            return Result.failure(ValidationError("Email, password and name are required"))

        try:
            user = await self.identity.sign_up(email, password, {"name": name, "role": role})
        except IdentityError as e:
            return Result.failure(RemoteError(str(e), status_code=e.status_code))
        except Exception:
            logger.exception("Unexpected registration error")
            return Result.failure(UnexpectedError("An unexpected error occurred during registration"))

        profile = await self.profiles.create_profile(user.id, user.email, name.strip(), role)
        if not profile.ok:
            # no rollback: the identity stays without a profile
            logger.warning("Identity %s created without a profile: %s", user.id, profile.error)
        return profile

    async def login(self, email: str, password: str) -> Result[LoginResult]:
        try:
            session = await self.identity.sign_in_with_password(email, password)
        except IdentityError as e:
            return Result.failure(RemoteError(str(e), status_code=e.status_code))
        except Exception:
            logger.exception("Unexpected login error")
            return Result.failure(UnexpectedError("An unexpected error occurred during login"))

        profile = await self.profiles.get_user_profile(session.user.id)
        if not profile.ok:
            return Result.failure(profile.error)

        return Result.success(LoginResult(profile=profile.data, access_token=session.access_token))

    async def logout(self, token: str | None) -> Result[None]:
        try:
            await self.identity.sign_out(token)
        except Exception:
            logger.exception("Unexpected logout error")
            return Result.failure(UnexpectedError("An unexpected error occurred during logout"))
        return Result.success(None)

    async def get_current_session(self, token: str | None) -> Optional[AuthIdentity]:
        try:
            session = await self.identity.get_session(token)
        except Exception:
            logger.exception("Unexpected session error")
            return None
        return session.user if session else None

    async def restore_session(self, token: str | None) -> Result[Optional[UserProfile]]:
        identity = await self.get_current_session(token)
        if not identity:
            return Result.success(None)
        return await self.profiles.get_user_profile(identity.id)

    def on_auth_state_change(
        self,
        callback: ProfileListener,
        applies_to: Optional[Callable[[AuthSession], bool]] = None,
    ) -> Callable[[], None]:
        """Forward identity changes as the resolved profile, or ``None`` on sign-out.

        ``applies_to`` narrows the feed to the sessions a listener cares
        about; the identity provider is shared by every client of the process.
        """

        async def forward(event: str, session: Optional[AuthSession]):
            if applies_to is not None and (session is None or not applies_to(session)):
                return
            profile = None
            if event == SIGNED_IN and session:
                profile = (await self.profiles.get_user_profile(session.user.id)).data
            outcome = callback(profile)
            if inspect.isawaitable(outcome):
                await outcome

        return self.identity.on_auth_state_change(forward)
