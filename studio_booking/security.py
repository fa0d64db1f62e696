from fastapi import Request, HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from .config import SESSION_COOKIE_NAME
from .container import Studio
from .errors import NotFoundError
from .schemas import UserProfile

bearer_scheme = HTTPBearer(auto_error=False)


def get_studio(request: Request) -> Studio:
    return request.app.state.studio


def get_access_token(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str | None:
    if creds and creds.scheme.lower() == "bearer":
        return creds.credentials
    return request.cookies.get(SESSION_COOKIE_NAME)


async def get_current_user(
    request: Request,
    token: str | None = Depends(get_access_token),
    studio: Studio = Depends(get_studio),
) -> UserProfile:
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing session token",
        )

    result = await studio.auth.restore_session(token)
    if isinstance(result.error, NotFoundError):
        # the session is valid but its identity never got a profile
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No user profile for this session",
        )
    if not result.ok:
        raise HTTPException(status_code=result.error.status_code, detail=str(result.error))

    if not result.data:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session",
        )

    request.state.user_sub = result.data.id
    request.state.user_role = result.data.role
    return result.data
