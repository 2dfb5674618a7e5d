"""Product feedback (bug reports, feature requests) from signed-in users"""
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from careerpilot.models.user import User
from careerpilot.models.user_feedback import UserFeedback
from careerpilot.schemas.user import UserFeedbackCreate
from careerpilot.services import app_events


async def submit_feedback(db: AsyncSession, user: User, data: UserFeedbackCreate) -> UserFeedback:
    item = UserFeedback(
        user_id=user.id,
        type=data.type,
        title=data.title,
        description=data.description,
        status="open",
        user_email=user.email,
        user_display_name=user.name,
    )
    db.add(item)
    await db.commit()
    await db.refresh(item)

    app_events.track_user_feedback(feedback=data.title, feedback_type=data.type)
    return item


async def get_feedback_by_user(db: AsyncSession, user_id: str) -> List[UserFeedback]:
    result = await db.execute(
        select(UserFeedback)
        .where(UserFeedback.user_id == user_id)
        .order_by(UserFeedback.created_at.desc())
    )
    return list(result.scalars().all())
