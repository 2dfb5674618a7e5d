"""
API key authentication.

Clients send the key issued at registration (or by /api/auth/rotate-key)
in the X-API-Key header. Keys are stored bcrypt-hashed; the first
characters are kept in clear as api_key_prefix so a request costs one
indexed lookup plus a bcrypt check per candidate.
"""
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from careerpilot.database import get_db
from careerpilot.middleware.correlation import set_request_user_id
from careerpilot.models.user import User
from careerpilot.services import app_events
from careerpilot.utils.logger import logger

# last_login is refreshed at most this often, so reads don't bump the row version
LAST_LOGIN_RESOLUTION = timedelta(minutes=5)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "ApiKey"})


async def find_user_by_api_key(db: AsyncSession, api_key: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.api_key_prefix == User.get_key_prefix(api_key)))
    for candidate in result.scalars():
        if candidate.api_key and User.verify_api_key(api_key, candidate.api_key):
            return candidate
    return None


async def _touch_last_login(db: AsyncSession, user: User) -> None:
    now = datetime.utcnow()
    if user.last_login and now - user.last_login <= LAST_LOGIN_RESOLUTION:
        return
    user.last_login = now
    await db.commit()
    app_events.track_login("api_key", user_id=user.id)
    logger.debug(f"[Auth] Updated last_login for user {user.id}")


async def get_current_user(
    request: Request,
    x_api_key: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Resolve the X-API-Key header to an active user, or fail with 401/403.

        @router.get("/api/profile/progress")
        async def progress(current_user: User = Depends(get_current_user)):
            ...
    """
    if not x_api_key:
        raise _unauthorized("API key required. Provide X-API-Key header.")

    user = await find_user_by_api_key(db, x_api_key)
    if user is None:
        raise _unauthorized("Invalid API key")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="User account is disabled")

    await _touch_last_login(db, user)

    set_request_user_id(user.id)
    request.state.user_id = user.id
    return user


async def get_current_user_optional(
    request: Request,
    x_api_key: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    """Like get_current_user, but anonymous or bad keys give None instead of an error"""
    if not x_api_key:
        return None
    try:
        return await get_current_user(request, x_api_key, db)
    except HTTPException:
        return None
