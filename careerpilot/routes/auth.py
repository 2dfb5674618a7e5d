from fastapi import APIRouter, Depends, HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from careerpilot.database import get_db
from careerpilot.middleware.auth import get_current_user
from careerpilot.models.user import User
from careerpilot.schemas.user import UserCreate
from careerpilot.services import app_events, user_service

router = APIRouter()

# Per-IP limits on account endpoints; main.py installs it as app.state.limiter
limiter = Limiter(key_func=get_remote_address)

KEY_WARNING = "Store this API key now. It is shown only once."


@router.post("/register", status_code=201)
@limiter.limit("5/hour")
async def register_user(
    request: Request,
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db)
):
    """Create an account. The response carries the API key; nothing else ever will."""
    created = await user_service.register_account(db, user_data.email, user_data.name)
    if created is None:
        raise HTTPException(status_code=400, detail="User already exists. Please sign in instead.")
    user, api_key = created

    app_events.track_sign_up("api_key", user_id=user.id)
    return {
        "success": True,
        "message": "Account created successfully. Please sign in.",
        "user": user.to_dict(),
        "api_key": api_key,
        "warning": KEY_WARNING,
    }


@router.get("/me")
async def whoami(current_user: User = Depends(get_current_user)):
    last_login = current_user.last_login
    return {
        **current_user.to_dict(),
        "isActive": current_user.is_active,
        "lastLogin": last_login.isoformat() if last_login else None,
    }


@router.post("/rotate-key")
@limiter.limit("3/day")
async def rotate_key(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Issue a new API key; the old one stops working immediately."""
    new_key = await user_service.rotate_api_key(db, current_user)
    app_events.track_login("api_key_rotation", user_id=current_user.id)
    return {
        "success": True,
        "new_api_key": new_key,
        "warning": f"{KEY_WARNING} Your previous key is no longer valid.",
        "user_id": current_user.id,
    }


@router.post("/logout")
async def logout(current_user: User = Depends(get_current_user)):
    """API keys are stateless; this only records the event for analytics."""
    app_events.track_logout(user_id=current_user.id)
    return {"success": True}
