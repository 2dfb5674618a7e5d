"""
AI evaluation of mock interview transcripts.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from careerpilot.models.feedback import Feedback
from careerpilot.schemas.interview import FeedbackObject, TranscriptMessage
from careerpilot.services import app_events
from careerpilot.services.ai_client import get_ai_client
from careerpilot.services.cache import cache_delete_prefix
from careerpilot.utils.logger import logger

Message = Union[TranscriptMessage, Dict[str, Any]]

FEEDBACK_SYSTEM_PROMPT = (
    "You are a professional interviewer analyzing a mock interview. "
    "Your task is to evaluate the candidate based on structured categories"
)


def format_transcript(transcript: Iterable[Message]) -> str:
    lines = []
    for message in transcript:
        if isinstance(message, dict):
            role, content = message.get("role", ""), message.get("content", "")
        else:
            role, content = message.role, message.content
        lines.append(f"- {role}: {content}\n")
    return "".join(lines)


def build_feedback_prompt(formatted_transcript: str) -> str:
    return f"""You are an AI interviewer analyzing a mock interview. Your task is to evaluate the candidate based on structured categories. Be thorough and detailed in your analysis. Don't be lenient with the candidate. If there are mistakes or areas for improvement, point them out.
Transcript:
{formatted_transcript}

Please score the candidate from 0 to 100 in the following areas. Do not add categories other than the ones provided:
- **Communication Skills**: Clarity, articulation, structured responses.
- **Technical Knowledge**: Understanding of key concepts for the role.
- **Problem-Solving**: Ability to analyze problems and propose solutions.
- **Cultural & Role Fit**: Alignment with company values and job role.
- **Confidence & Clarity**: Confidence in responses, engagement, and clarity.

Return a JSON object with: totalScore (0-100), categoryScores (list of {{"name", "score", "comment"}} using exactly the five names above), strengths (list of strings), areasForImprovement (list of strings), finalAssessment (string).
"""


async def get_feedback_by_interview_id(
    db: AsyncSession,
    interview_id: str,
    user_id: str,
) -> Optional[Feedback]:
    result = await db.execute(
        select(Feedback).where(
            Feedback.interview_id == interview_id,
            Feedback.user_id == user_id,
        ).limit(1)
    )
    return result.scalar_one_or_none()


async def create_feedback(
    db: AsyncSession,
    interview_id: str,
    user_id: str,
    transcript: Iterable[Message],
    duration: float = 0,
) -> Dict[str, Any]:
    """
    Score a transcript and store the evaluation.

    Never raises: any AI or storage failure is logged and reported as
    {"success": False}. A second evaluation of the same interview replaces
    the first.
    """
    try:
        prompt = build_feedback_prompt(format_transcript(transcript))
        evaluation = await get_ai_client().generate_object(
            prompt, FeedbackObject, system=FEEDBACK_SYSTEM_PROMPT
        )

        feedback = await get_feedback_by_interview_id(db, interview_id, user_id)
        if feedback is None:
            feedback = Feedback(interview_id=interview_id, user_id=user_id)
            db.add(feedback)

        feedback.total_score = evaluation.totalScore
        feedback.category_scores = [c.model_dump() for c in evaluation.categoryScores]
        feedback.strengths = evaluation.strengths
        feedback.areas_for_improvement = evaluation.areasForImprovement
        feedback.final_assessment = evaluation.finalAssessment
        feedback.created_at = datetime.utcnow()

        await db.commit()
        await db.refresh(feedback)
        await cache_delete_prefix(f"interviews:{user_id}:")

        app_events.track_interview_complete(interview_id, evaluation.totalScore, duration)
        return {"success": True, "feedbackId": feedback.id}

    except Exception as e:
        await db.rollback()
        logger.error(
            f"Error saving feedback: {e}",
            extra={"interview_id": interview_id, "error_type": type(e).__name__},
        )
        return {"success": False}
