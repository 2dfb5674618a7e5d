from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from careerpilot.database import get_db
from careerpilot.models.user import User
from careerpilot.middleware.auth import get_current_user
from careerpilot.schemas.interview import SuggestionsRequest
from careerpilot.services.suggestion_service import generate_suggestions

router = APIRouter()


@router.post("/suggestions")
async def get_suggestions(
    req: SuggestionsRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Six AI-picked mock interview scenarios for the caller.

    Errors (404 unknown user, 400 incomplete profile, 500 unparseable AI
    reply) surface through the AppError handler.
    """
    if req.userId and req.userId != current_user.id:
        raise HTTPException(status_code=403, detail="Suggestions can only be requested for yourself")

    suggestions = await generate_suggestions(db, current_user.id)
    return {"success": True, "suggestions": suggestions}
