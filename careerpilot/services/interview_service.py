"""
Interview generation, listing and search facets.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from careerpilot.config import get_settings
from careerpilot.models.feedback import Feedback
from careerpilot.models.filter_options import FILTER_OPTIONS_ID, FilterOptions
from careerpilot.models.interview import Interview
from careerpilot.schemas.interview import GenerateInterviewRequest, InterviewFilters
from careerpilot.services.ai_client import AIResponseError, get_ai_client, parse_json
from careerpilot.services.cache import cache_delete, cache_delete_prefix, cache_get, cache_set
from careerpilot.utils.errors import AppError
from careerpilot.utils.logger import logger

FILTERS_CACHE_KEY = "filters:options"


def split_techstack(raw: str) -> List[str]:
    """'React, Node.js,,' -> ['React', 'Node.js']"""
    return [t.strip() for t in (raw or "").split(",") if t.strip()]


def _merge(existing: List[str], values: List[str]) -> List[str]:
    merged = list(existing or [])
    for value in values:
        if value and value not in merged:
            merged.append(value)
    return merged


def build_questions_prompt(req: GenerateInterviewRequest) -> str:
    return f"""Prepare questions for a job interview.
The job role is {req.role}.
The job experience level is {req.level}.
The tech stack used in the job is: {req.techstack}.
The focus between behavioral and technical questions should lean towards: {req.type}.
The amount of questions required is: {req.amount}.
Please return only the questions, without any additional text.
The questions are going to be read by a voice assistant so do not use "/" or "*" or any other special characters which might break the voice assistant.
Return the questions formatted like this:
["Question 1", "Question 2", "Question 3"]
"""


async def generate_interview(db: AsyncSession, req: GenerateInterviewRequest) -> Interview:
    """Ask the AI for voice-friendly questions and store a finalized interview."""
    text = await get_ai_client().generate_text(build_questions_prompt(req))
    questions = parse_json(text, array=True)
    if not isinstance(questions, list) or not all(isinstance(q, str) for q in questions):
        raise AIResponseError("Expected a JSON array of question strings", raw=text)
    questions = [q.strip() for q in questions if q.strip()]
    if not questions:
        raise AIResponseError("AI returned no questions", raw=text)

    interview = Interview(
        user_id=req.userid,
        role=req.role,
        type=req.type,
        level=req.level,
        techstack=split_techstack(req.techstack),
        questions=questions,
        finalized=True,
    )
    db.add(interview)
    await db.commit()
    await db.refresh(interview)

    await update_filter_options(db, interview)
    await cache_delete_prefix(f"interviews:{req.userid}:")

    logger.info(f"Generated interview {interview.id} with {len(questions)} questions",
                extra={"interview_id": interview.id})
    return interview


async def _feedback_by_interview(db: AsyncSession, user_id: str, interview_ids: List[str]) -> Dict[str, Feedback]:
    if not interview_ids:
        return {}
    result = await db.execute(
        select(Feedback).where(
            Feedback.user_id == user_id,
            Feedback.interview_id.in_(interview_ids),
        )
    )
    return {f.interview_id: f for f in result.scalars().all()}


async def get_interviews_by_user(
    db: AsyncSession,
    user_id: str,
    page: int = 1,
    page_size: int = 10,
) -> Dict[str, Any]:
    """A user's interviews, newest first, with their feedback embedded."""
    if not user_id:
        raise AppError("User ID is required", code="VALIDATION_ERROR", status_code=400)

    cache_key = f"interviews:{user_id}:{page}:{page_size}"
    cached = await cache_get(cache_key)
    if cached is not None:
        return cached

    total = await db.scalar(
        select(func.count()).select_from(Interview).where(Interview.user_id == user_id)
    )
    result = await db.execute(
        select(Interview)
        .where(Interview.user_id == user_id)
        .order_by(Interview.created_at.desc())
        .limit(page_size)
        .offset((page - 1) * page_size)
    )
    interviews = result.scalars().all()
    feedback = await _feedback_by_interview(db, user_id, [i.id for i in interviews])

    data = {
        "interviews": [i.to_dict(feedback.get(i.id)) for i in interviews],
        "total": total or 0,
    }
    await cache_set(cache_key, data, ttl=get_settings().cache_ttl_seconds)
    return data


async def list_user_interviews(db: AsyncSession, user_id: str) -> List[Dict[str, Any]]:
    """Every interview of a user with embedded feedback (uncached, for progress/analytics)."""
    result = await db.execute(
        select(Interview)
        .where(Interview.user_id == user_id)
        .order_by(Interview.created_at.desc())
    )
    interviews = result.scalars().all()
    feedback = await _feedback_by_interview(db, user_id, [i.id for i in interviews])
    return [i.to_dict(feedback.get(i.id)) for i in interviews]


async def get_latest_interviews(
    db: AsyncSession,
    user_id: Optional[str] = None,
    limit: int = 10,
    page: int = 1,
    filters: Optional[InterviewFilters] = None,
) -> Dict[str, Any]:
    """Finalized interviews created by other users, newest first."""
    stmt = select(Interview).where(Interview.finalized.is_(True))
    if user_id:
        stmt = stmt.where(Interview.user_id != user_id)
    if filters and filters.type:
        stmt = stmt.where(Interview.type.in_(filters.type))
    if filters and filters.level:
        stmt = stmt.where(Interview.level.in_(filters.level))
    stmt = stmt.order_by(Interview.created_at.desc())

    offset = (page - 1) * limit

    if filters and filters.techstack:
        # JSON list column: any-of match is done in Python
        wanted = set(filters.techstack)
        rows = [
            i for i in (await db.execute(stmt)).scalars().all()
            if wanted.intersection(i.techstack or [])
        ]
        return {
            "interviews": [i.to_dict() for i in rows[offset:offset + limit]],
            "total": len(rows),
        }

    total = await db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery()))
    result = await db.execute(stmt.limit(limit).offset(offset))
    return {
        "interviews": [i.to_dict() for i in result.scalars().all()],
        "total": total or 0,
    }


async def get_interview_by_id(db: AsyncSession, interview_id: str) -> Optional[Interview]:
    return await db.get(Interview, interview_id)


async def _get_or_create_options(db: AsyncSession) -> FilterOptions:
    options = await db.get(FilterOptions, FILTER_OPTIONS_ID)
    if options is None:
        options = FilterOptions(id=FILTER_OPTIONS_ID, types=[], techstacks=[], levels=[], total_interviews=0)
        db.add(options)
    return options


async def update_filter_options(db: AsyncSession, interview: Interview) -> None:
    """Merge one new interview's facets into the stored options."""
    try:
        options = await _get_or_create_options(db)
        # Reassign lists so the JSON columns are flagged dirty
        options.types = _merge(options.types, [interview.type])
        options.techstacks = _merge(options.techstacks, interview.techstack or [])
        options.levels = _merge(options.levels, [interview.level])
        options.total_interviews = (options.total_interviews or 0) + 1
        options.last_updated = datetime.utcnow()
        await db.commit()
        await cache_delete(FILTERS_CACHE_KEY)
    except Exception as e:
        # The interview is already stored; a full sync repairs the facets
        await db.rollback()
        logger.error(f"Error updating filter options: {e}", extra={"interview_id": interview.id})


async def sync_filters(db: AsyncSession) -> Dict[str, int]:
    """Recompute facets over every interview."""
    result = await db.execute(select(Interview).order_by(Interview.created_at))
    interviews = result.scalars().all()

    types: List[str] = []
    techstacks: List[str] = []
    levels: List[str] = []
    for interview in interviews:
        types = _merge(types, [interview.type])
        techstacks = _merge(techstacks, interview.techstack or [])
        levels = _merge(levels, [interview.level])

    options = await _get_or_create_options(db)
    options.types = types
    options.techstacks = techstacks
    options.levels = levels
    options.total_interviews = len(interviews)
    options.last_updated = datetime.utcnow()
    await db.commit()
    await cache_delete(FILTERS_CACHE_KEY)

    return {
        "totalInterviews": len(interviews),
        "uniqueTypes": len(types),
        "uniqueTechStacks": len(techstacks),
        "uniqueLevels": len(levels),
    }


async def get_filter_options(db: AsyncSession) -> Dict[str, Any]:
    cached = await cache_get(FILTERS_CACHE_KEY)
    if cached is not None:
        return cached

    options = await db.get(FilterOptions, FILTER_OPTIONS_ID)
    if options is None:
        data = {"type": [], "techstack": [], "level": [], "totalInterviews": 0, "lastUpdated": None}
    else:
        data = options.to_dict()

    await cache_set(FILTERS_CACHE_KEY, data, ttl=get_settings().cache_ttl_seconds)
    return data
