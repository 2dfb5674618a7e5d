from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from careerpilot.database import get_db
from careerpilot.models.user import User
from careerpilot.middleware.auth import get_current_user, get_current_user_optional
from careerpilot.schemas.interview import GenerateInterviewRequest, InterviewFilters
from careerpilot.services import interview_service
from careerpilot.services.feedback_service import get_feedback_by_interview_id
from careerpilot.utils.errors import handle_error
from careerpilot.utils.logger import logger

router = APIRouter()


@router.get("/vapi/generate")
async def generate_ping():
    """Reachability check used by the voice agent workflow"""
    return {"success": True, "data": "THANK YOU"}


@router.post("/vapi/generate")
async def generate_interview(
    req: GenerateInterviewRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Generate interview questions (called by the voice agent tool at the
    end of a "generate" call).

    Returns {success, interviewId}; failures are reported as
    {success: false, error} with status 500.
    """
    try:
        interview = await interview_service.generate_interview(db, req)
        return {"success": True, "interviewId": interview.id}
    except Exception as e:
        logger.error(f"Interview generation failed: {e}", exc_info=True)
        error = handle_error(e, {"component": "interviews", "action": "generate"})
        return JSONResponse(status_code=500, content={"success": False, "error": error["message"]})


@router.get("/interviews")
async def list_my_interviews(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await interview_service.get_interviews_by_user(db, current_user.id, page, page_size)


@router.get("/interviews/latest")
async def list_latest_interviews(
    limit: int = Query(10, ge=1, le=100),
    page: int = Query(1, ge=1),
    type: List[str] = Query(default=[]),
    techstack: List[str] = Query(default=[]),
    level: List[str] = Query(default=[]),
    current_user: User = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db)
):
    """Community interviews (other users' finalized interviews)"""
    filters = InterviewFilters(type=type, techstack=techstack, level=level)
    return await interview_service.get_latest_interviews(
        db,
        user_id=current_user.id if current_user else None,
        limit=limit,
        page=page,
        filters=filters,
    )


@router.get("/interviews/filters")
async def get_filter_options(db: AsyncSession = Depends(get_db)):
    return await interview_service.get_filter_options(db)


@router.get("/interviews/{interview_id}")
async def get_interview(
    interview_id: str,
    current_user: User = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db)
):
    interview = await interview_service.get_interview_by_id(db, interview_id)
    if not interview:
        raise HTTPException(status_code=404, detail="Interview not found")

    feedback = None
    if current_user:
        feedback = await get_feedback_by_interview_id(db, interview_id, current_user.id)
    return interview.to_dict(feedback)


@router.post("/sync-filters")
async def sync_filters(db: AsyncSession = Depends(get_db)):
    """Recompute the search facets from every interview"""
    try:
        stats = await interview_service.sync_filters(db)
    except Exception as e:
        logger.error(f"Error syncing filters: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})

    return {
        "success": True,
        "message": "Filters synchronized successfully",
        "stats": stats,
    }
