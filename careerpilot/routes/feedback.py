from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from careerpilot.database import get_db
from careerpilot.models.user import User
from careerpilot.middleware.auth import get_current_user
from careerpilot.schemas.interview import CreateFeedbackRequest
from careerpilot.services import feedback_service
from careerpilot.services.interview_service import get_interview_by_id

router = APIRouter()


@router.post("")
async def create_feedback(
    req: CreateFeedbackRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Evaluate an interview transcript.

    Any interview can be practised, so the feedback belongs to the caller,
    not to the interview's creator.
    """
    interview = await get_interview_by_id(db, req.interview_id)
    if not interview:
        raise HTTPException(status_code=404, detail="Interview not found")

    result = await feedback_service.create_feedback(
        db, req.interview_id, current_user.id, req.transcript
    )
    if not result["success"]:
        return JSONResponse(status_code=502, content=result)
    return result


@router.get("/{interview_id}")
async def get_feedback(
    interview_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    feedback = await feedback_service.get_feedback_by_interview_id(db, interview_id, current_user.id)
    return {"feedback": feedback.to_dict() if feedback else None}
