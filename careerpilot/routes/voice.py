from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from careerpilot.database import get_db
from careerpilot.models.user import User
from careerpilot.middleware.auth import get_current_user
from careerpilot.schemas.voice import StartCallRequest, VoiceEvent
from careerpilot.services.interview_service import get_interview_by_id
from careerpilot.services.voice_session import get_session_manager

router = APIRouter()


@router.post("/calls", status_code=201)
async def start_call(
    req: StartCallRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Open a call session before the client starts the voice SDK"""
    if req.interviewId and not await get_interview_by_id(db, req.interviewId):
        raise HTTPException(status_code=404, detail="Interview not found")

    session = get_session_manager().start_call(
        current_user.id, req.type, interview_id=req.interviewId, questions=req.questions
    )
    return session.to_dict()


@router.get("/calls/{call_id}")
async def get_call(call_id: str, current_user: User = Depends(get_current_user)):
    return get_session_manager().get(call_id, current_user.id).to_dict()


@router.post("/calls/{call_id}/events")
async def post_event(
    call_id: str,
    event: VoiceEvent,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Relay a voice SDK event. `call-end` on an interview call runs the
    feedback evaluation and returns its result in `feedback`.
    """
    session = await get_session_manager().handle_event(db, call_id, event, current_user.id)
    return session.to_dict()
