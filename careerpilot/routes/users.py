from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from careerpilot.database import get_db
from careerpilot.models.user import User
from careerpilot.middleware.auth import get_current_user
from careerpilot.schemas.user import ProfileUpdate
from careerpilot.services import user_service
from careerpilot.services.analytics_service import build_analytics
from careerpilot.services.gamification import compute_progress, sync_badges
from careerpilot.services.interview_service import list_user_interviews

router = APIRouter()


@router.get("/users/{user_id}")
async def get_user_profile(user_id: str, db: AsyncSession = Depends(get_db)):
    """Public profile"""
    user = await user_service.get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    # Email is private
    user.pop("email", None)
    return user


@router.put("/profile")
async def update_profile(
    changes: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    user = await user_service.update_user_profile(db, current_user, changes)
    return {"success": True, "user": user.to_dict()}


@router.get("/profile/progress")
async def get_progress(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """XP, level, streak, badges and in-progress achievements"""
    interviews = await list_user_interviews(db, current_user.id)
    return compute_progress(current_user, interviews)


@router.post("/profile/sync-badges")
async def sync_user_badges(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Award newly earned badges and store the recomputed XP"""
    interviews = await list_user_interviews(db, current_user.id)
    return await sync_badges(db, current_user, interviews)


@router.get("/profile/analytics")
async def get_analytics(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    interviews = await list_user_interviews(db, current_user.id)
    return build_analytics(interviews)


@router.get("/leaderboard")
async def get_leaderboard(
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db)
):
    return {"leaderboard": await user_service.get_leaderboard(db, limit)}
