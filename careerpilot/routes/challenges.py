from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from careerpilot.config import get_settings
from careerpilot.database import get_db
from careerpilot.models.user import User
from careerpilot.middleware.auth import get_current_user
from careerpilot.schemas.challenge import ExecuteCodeRequest, GenerateChallengeRequest, SubmitSolutionRequest
from careerpilot.services.challenge_service import get_challenge_service
from careerpilot.services.code_execution import execute_code


async def require_challenges_enabled():
    """Technical challenges are behind ENABLE_TECHNICAL_CHALLENGES"""
    if not get_settings().enable_technical_challenges:
        raise HTTPException(status_code=404, detail="Not Found")


router = APIRouter(dependencies=[Depends(require_challenges_enabled)])


@router.get("")
async def list_challenges(
    difficulty: Optional[List[str]] = Query(None),
    techStack: Optional[List[str]] = Query(None),
    status: Optional[List[str]] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await get_challenge_service().get_technical_challenges(
        db, current_user.id, difficulty=difficulty, tech_stack=techStack, status=status
    )


@router.post("/generate", status_code=201)
async def generate_challenge(
    req: Optional[GenerateChallengeRequest] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Generate a new challenge from the caller's profile (or the profile in the body)"""
    challenge = await get_challenge_service().generate_technical_challenge(
        db, current_user.id, user_data=req.userData if req else None
    )
    return {"success": True, "challenge": challenge.to_dict()}


@router.post("/execute")
async def run_code(
    req: ExecuteCodeRequest,
    current_user: User = Depends(get_current_user)
):
    """Run a snippet in a sandboxed interpreter process"""
    return await execute_code(req.code, req.language)


@router.get("/{challenge_id}")
async def get_challenge(
    challenge_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    challenge = await get_challenge_service().get_challenge_by_id(db, challenge_id, current_user.id)
    if not challenge:
        raise HTTPException(status_code=404, detail="Challenge not found")
    return challenge


@router.post("/{challenge_id}/submit")
async def submit_solution(
    challenge_id: str,
    req: SubmitSolutionRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await get_challenge_service().submit_challenge_solution(
        db, challenge_id, req.solution, current_user.id
    )
    if not result["success"]:
        status_code = 404 if result["error"] == "Challenge not found" else 502
        return JSONResponse(status_code=status_code, content=result)
    return result
