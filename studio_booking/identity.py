"""
Identity provider: credentials, access tokens and sessions.

Passwords are bcrypt hashes in ``auth_users``. A sign-in issues a JWT whose
``jti`` names a Redis session key, so signing out revokes the token before it
expires. Listeners registered with ``on_auth_state_change`` hear about every
sign-in and sign-out.
"""

import inspect
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional, Union

from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from .config import JWT_SECRET, JWT_ALGORITHM, SESSION_TTL_SECONDS
from .models import AuthUser

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"])

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"


class IdentityError(Exception):
    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class AuthIdentity:
    id: str
    email: str
    user_metadata: dict = field(default_factory=dict)


@dataclass
class AuthSession:
    access_token: str
    user: AuthIdentity
    expires_at: datetime


AuthListener = Callable[[str, Optional[AuthSession]], Union[None, Awaitable[None]]]


def session_key(jti: str) -> str:
    return f"session:{jti}"


class IdentityProvider:
    def __init__(
        self,
        session_factory,
        redis,
        secret: str = JWT_SECRET,
        algorithm: str = JWT_ALGORITHM,
        ttl_seconds: int = SESSION_TTL_SECONDS,
    ):
        self._session_factory = session_factory
        self._redis = redis
        self._secret = secret
        self._algorithm = algorithm
        self._ttl_seconds = ttl_seconds
        self._listeners: list[AuthListener] = []

    async def sign_up(self, email: str, password: str, metadata: dict | None = None) -> AuthIdentity:
        email = email.strip().lower()
        try:
            async with self._session_factory() as db:
                result = await db.execute(select(AuthUser).where(AuthUser.email == email))
                if result.scalar_one_or_none():
                    raise IdentityError("User already registered", status_code=409)

                user = AuthUser(
                    email=email,
                    password=pwd_context.hash(password),
                    user_metadata=dict(metadata or {}),
                )
                db.add(user)
                await db.commit()
        except SQLAlchemyError as e:
            logger.error("Auth signup error: %s", e)
            raise IdentityError("Failed to create user account") from e

        return AuthIdentity(id=user.id, email=user.email, user_metadata=user.user_metadata)

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        email = email.strip().lower()
        try:
            async with self._session_factory() as db:
                result = await db.execute(select(AuthUser).where(AuthUser.email == email))
                user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Login error: %s", e)
            raise IdentityError("Failed to sign in") from e

        if not user or not pwd_context.verify(password, user.password):
            raise IdentityError("Invalid login credentials", status_code=401)

        identity = AuthIdentity(id=user.id, email=user.email, user_metadata=user.user_metadata or {})
        session = await self._issue_session(identity)
        await self._emit(SIGNED_IN, session)
        return session

    async def get_session(self, token: str | None) -> Optional[AuthSession]:
        if not token:
            return None

        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError:
            return None

        jti = payload.get("jti")
        if not jti or not await self._redis.get(session_key(jti)):
            return None

        identity = AuthIdentity(
            id=payload.get("sub"),
            email=payload.get("email"),
            user_metadata=payload.get("user_metadata") or {},
        )
        expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
        return AuthSession(access_token=token, user=identity, expires_at=expires_at)

    async def sign_out(self, token: str | None) -> None:
        session = await self.get_session(token)
        if not session:
            return

        payload = jwt.get_unverified_claims(token)
        await self._redis.delete(session_key(payload["jti"]))
        await self._emit(SIGNED_OUT, session)

    def on_auth_state_change(self, callback: AuthListener) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    async def _issue_session(self, identity: AuthIdentity) -> AuthSession:
        jti = str(uuid.uuid4())
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=self._ttl_seconds)

        token = jwt.encode(
            {
                "sub": identity.id,
                "email": identity.email,
                "user_metadata": identity.user_metadata,
                "jti": jti,
                "exp": int(expires_at.timestamp()),
            },
            self._secret,
            algorithm=self._algorithm,
        )

        await self._redis.set(session_key(jti), identity.id, ex=self._ttl_seconds)
        return AuthSession(access_token=token, user=identity, expires_at=expires_at)

    async def _emit(self, event: str, session: Optional[AuthSession]):
        logger.info("Auth state changed: %s", event)
        for listener in list(self._listeners):
            try:
                outcome = listener(event, session)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                logger.exception("Auth state listener failed")
