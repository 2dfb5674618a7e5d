"""
Personalised mock interview suggestions from a user's profile and history.
"""
import json
from typing import Any, Dict, List

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from careerpilot.models.user import User
from careerpilot.schemas.interview import InterviewSuggestion
from careerpilot.services.ai_client import AIResponseError, get_ai_client, parse_json
from careerpilot.services.interview_service import list_user_interviews
from careerpilot.utils.errors import AppError
from careerpilot.utils.logger import logger

SUGGESTION_COUNT = 6


def build_suggestions_prompt(user: User, interviews: List[Dict[str, Any]]) -> str:
    past = [
        {
            "role": i["role"],
            "level": i["level"],
            "techstack": i["techstack"],
            "type": i["type"],
            "totalScore": i["feedback"]["totalScore"] if i.get("feedback") else None,
        }
        for i in interviews
    ]
    return f"""As an expert career advisor, create a diverse set of interview suggestions to help the user advance in their career. The suggestions should follow a clear progression path and cover different aspects of development.

User Data:
- Current Skills: {', '.join(user.skills or [])}
- Experience Level: {user.experience}
- Preferred Roles: {', '.join(user.preferred_roles or [])}
- Past Interviews: {json.dumps(past)}
- Bio: {user.bio or ''}

Create {SUGGESTION_COUNT} different interview scenarios that:
1. Represent a clear progression path (junior -> mid -> senior -> architect)
2. Mix technical and behavioral interviews
3. Cover different specializations (frontend, fullstack, specific frameworks)
4. Include varying complexity levels
5. Focus on different skill aspects (coding, system design, leadership)
6. Suggest complementary tech stacks

Guidelines for diversity:
- Roles: Include different positions (Developer, Engineer, Architect, Lead)
- Types: Balance between technical and behavioral
- Levels: Mix of Junior, Mid, Senior positions
- Tech Stacks: Combine core technologies with specialized ones
- Questions: Vary the number based on interview complexity (5-8 questions)

Return ONLY a valid JSON array of objects in this exact format:
[
  {{
    "role": "string",
    "type": "string",
    "level": "string",
    "techstack": "string",
    "amount": number
  }}
]

Each suggestion should be significantly different from the others in at least 2-3 aspects (role, level, tech stack, or type).
IMPORTANT: Return ONLY the JSON array, no additional text or explanation."""


def profile_is_complete(user: User) -> bool:
    return bool(user.skills and user.experience and user.preferred_roles)


async def generate_suggestions(db: AsyncSession, user_id: str) -> List[Dict[str, Any]]:
    user = await db.get(User, user_id)
    if user is None:
        raise AppError("User not found", code="USER_NOT_FOUND", status_code=404)
    if not profile_is_complete(user):
        raise AppError(
            "Please complete your profile (skills, experience and preferred roles) to get suggestions",
            code="PROFILE_INCOMPLETE",
            status_code=400,
        )

    interviews = await list_user_interviews(db, user_id)
    text = await get_ai_client().generate_text(build_suggestions_prompt(user, interviews))

    try:
        raw = parse_json(text, array=True)
        if not isinstance(raw, list):
            raise AIResponseError("Suggestions are not a list", raw=text)
        suggestions = [InterviewSuggestion.model_validate(item).model_dump() for item in raw]
    except (AIResponseError, ValidationError) as e:
        logger.error(f"Failed to parse suggestions: {e}")
        raise AppError("Failed to parse suggestions", code="SUGGESTIONS_PARSE_FAILED", status_code=500)

    return suggestions[:SUGGESTION_COUNT]
