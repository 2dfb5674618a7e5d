from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from careerpilot.database import get_db
from careerpilot.models.user import User
from careerpilot.middleware.auth import get_current_user
from careerpilot.schemas.user import UserFeedbackCreate
from careerpilot.services import user_feedback_service

router = APIRouter()


@router.post("", status_code=201)
async def submit_feedback(
    data: UserFeedbackCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Bug report, feature request or general product feedback"""
    item = await user_feedback_service.submit_feedback(db, current_user, data)
    return {"success": True, "feedback": item.to_dict()}


@router.get("")
async def list_my_feedback(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    items = await user_feedback_service.get_feedback_by_user(db, current_user.id)
    return {"feedback": [i.to_dict() for i in items]}
