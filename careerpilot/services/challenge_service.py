"""
AI-generated coding challenges and solution reviews.

Challenges are personal: generated from the owner's profile, steered away
from their recent topics, and graded by the model when a solution is
submitted. A review score of PASSING_SCORE or more completes the challenge.
"""
import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from careerpilot.config import get_settings
from careerpilot.models.challenge import ChallengeSubmission, TechnicalChallenge
from careerpilot.models.user import User
from careerpilot.schemas.challenge import ChallengeProfile, GeneratedChallenge, SolutionReview
from careerpilot.services.ai_client import get_ai_client
from careerpilot.services.cache import cache_delete_prefix, cache_get, cache_set
from careerpilot.utils.errors import AppError
from careerpilot.utils.logger import logger

PASSING_SCORE = 70
RECENT_CHALLENGES = 5


class ChallengeService:
    """Technical challenge generation, listing and grading"""

    async def get_technical_challenges(
        self,
        db: AsyncSession,
        user_id: str,
        difficulty: Optional[List[str]] = None,
        tech_stack: Optional[List[str]] = None,
        status: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        if not user_id:
            raise AppError("User ID is required", code="VALIDATION_ERROR", status_code=400)

        filters = {"difficulty": difficulty or [], "techStack": tech_stack or [], "status": status or []}
        cache_key = f"challenges:{user_id}:{json.dumps(filters, sort_keys=True)}"
        cached = await cache_get(cache_key)
        if cached is not None:
            return cached

        stmt = select(TechnicalChallenge).where(TechnicalChallenge.user_id == user_id)
        if difficulty:
            stmt = stmt.where(TechnicalChallenge.difficulty.in_(difficulty))
        if status:
            stmt = stmt.where(TechnicalChallenge.status.in_(status))
        stmt = stmt.order_by(TechnicalChallenge.created_at.desc())

        challenges = (await db.execute(stmt)).scalars().all()
        if tech_stack:
            wanted = set(tech_stack)
            challenges = [c for c in challenges if wanted.intersection(c.tech_stack or [])]

        data = {"challenges": [c.to_dict() for c in challenges], "total": len(challenges)}
        await cache_set(cache_key, data, ttl=get_settings().cache_ttl_seconds)
        return data

    async def _recent_challenges(self, db: AsyncSession, user_id: str) -> List[TechnicalChallenge]:
        result = await db.execute(
            select(TechnicalChallenge)
            .where(TechnicalChallenge.user_id == user_id)
            .order_by(TechnicalChallenge.created_at.desc())
            .limit(RECENT_CHALLENGES)
        )
        return list(result.scalars().all())

    def build_generation_prompt(self, profile: ChallengeProfile, recent: List[Dict[str, str]]) -> str:
        titles = "\n".join(f"- {c['title']}" for c in recent)
        # First line of each description summarises the topic
        topics = "\n".join(f"- {c['description'].splitlines()[0] if c['description'] else ''}" for c in recent)
        return f"""Generate a unique and creative single-file coding challenge based on the user's profile. The challenge MUST be significantly different from their recent challenges.

User Profile:
- Skills: {', '.join(profile.skills)}
- Experience Level: {profile.experience}
- Preferred Roles: {', '.join(profile.preferredRoles)}

Recent Challenge Titles (AVOID similar topics):
{titles}

Recent Topics Covered (GENERATE something DIFFERENT):
{topics}

Requirements:
1. Generate a COMPLETELY DIFFERENT type of challenge than the recent ones
2. If recent challenges were frontend-focused, lean towards backend or algorithms
3. If recent challenges used certain technologies, use different ones from the user's skill set
4. Ensure the challenge has a unique and creative problem statement
5. Match the user's skill level but explore different aspects of their skills
6. Be solvable in a single file
7. Have clear input/output specifications
8. Include sample test cases

Return a JSON object with:
{{
  "title": "string (MUST be unique from recent titles)",
  "description": "string (include problem statement, input/output format, sample test cases, and constraints)",
  "difficulty": "beginner" | "intermediate" | "advanced",
  "techStack": string[],
  "estimatedTime": number (in minutes),
  "points": number (10-100)
}}

IMPORTANT: Return ONLY the JSON object, no additional text or explanation."""

    async def generate_technical_challenge(
        self,
        db: AsyncSession,
        user_id: str,
        user_data: Optional[ChallengeProfile] = None,
        existing: Optional[List[Dict[str, str]]] = None,
    ) -> TechnicalChallenge:
        if user_data is None:
            user = await db.get(User, user_id)
            user_data = ChallengeProfile(
                skills=(user.skills if user else None) or [],
                experience=(user.experience if user else None) or "",
                preferredRoles=(user.preferred_roles if user else None) or [],
            )

        if not (user_data.skills and user_data.experience and user_data.preferredRoles):
            raise AppError(
                "Please complete your profile to generate technical challenges",
                code="PROFILE_INCOMPLETE",
                status_code=400,
            )

        if existing is None:
            existing = [
                {"title": c.title, "description": c.description}
                for c in await self._recent_challenges(db, user_id)
            ]

        generated = await get_ai_client().generate_object(
            self.build_generation_prompt(user_data, existing),
            GeneratedChallenge,
            temperature=0.9,
        )

        challenge = TechnicalChallenge(
            user_id=user_id,
            title=generated.title,
            description=generated.description,
            difficulty=generated.difficulty,
            tech_stack=generated.techStack,
            estimated_time=generated.estimatedTime,
            points=generated.points,
            status="not_started",
        )
        db.add(challenge)
        await db.commit()
        await db.refresh(challenge)
        await cache_delete_prefix(f"challenges:{user_id}:")

        logger.info(f"Generated challenge '{challenge.title}'", extra={"challenge_id": challenge.id})
        return challenge

    async def get_challenge_by_id(self, db: AsyncSession, challenge_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        """The caller's own challenge with its submissions, newest first; None for anyone else's."""
        challenge = await db.get(TechnicalChallenge, challenge_id)
        if challenge is None or challenge.user_id != user_id:
            return None

        result = await db.execute(
            select(ChallengeSubmission)
            .where(
                ChallengeSubmission.challenge_id == challenge_id,
                ChallengeSubmission.user_id == user_id,
            )
            .order_by(ChallengeSubmission.submitted_at.desc())
        )
        return challenge.to_dict(submissions=result.scalars().all())

    def build_review_prompt(self, challenge: TechnicalChallenge, solution: str) -> str:
        return f"""Evaluate this single-file coding solution:

Challenge: {challenge.title}
Description: {challenge.description}
Difficulty: {challenge.difficulty}
Tech Stack: {', '.join(challenge.tech_stack or [])}

Solution:
{solution}

Evaluate ONLY the implementation provided in this single file. Focus on:
1. Correctness - Does it solve the problem according to requirements?
2. Code quality - Is the code clean, readable, and well-structured?
3. Algorithm/approach - Is the solution efficient and well-thought-out?
4. Best practices - Does it follow language/framework best practices?
5. Edge cases - Does it handle edge cases mentioned in the problem?

DO NOT suggest:
- Extracting code into separate files/modules
- Creating additional components/files
- Project structure changes
- External configurations

Return a JSON object with the following structure:
{{
  "score": number (0-100),
  "strengths": ["specific strengths of THIS implementation"],
  "improvements": ["improvements for THIS file only"],
  "suggestions": ["specific code-level suggestions"]
}}

IMPORTANT: Return ONLY the JSON object, no additional text or explanation."""

    async def submit_challenge_solution(
        self,
        db: AsyncSession,
        challenge_id: str,
        solution: str,
        user_id: str,
    ) -> Dict[str, Any]:
        challenge = await db.get(TechnicalChallenge, challenge_id)
        if challenge is None or challenge.user_id != user_id:
            return {"success": False, "error": "Challenge not found"}

        try:
            review = await get_ai_client().generate_object(
                self.build_review_prompt(challenge, solution), SolutionReview
            )
            passed = review.score >= PASSING_SCORE

            submission = ChallengeSubmission(
                challenge_id=challenge_id,
                user_id=user_id,
                solution=solution,
                feedback=review.model_dump(),
                status="completed" if passed else "in_progress",
            )
            db.add(submission)

            if passed:
                challenge.status = "completed"
                challenge.completed_at = datetime.utcnow()
            elif challenge.status == "not_started":
                challenge.status = "in_progress"

            await db.commit()
            await db.refresh(submission)
            await cache_delete_prefix(f"challenges:{user_id}:")

            return {
                "success": True,
                "feedback": {**review.model_dump(), "submissionId": submission.id},
            }
        except Exception as e:
            await db.rollback()
            logger.error(f"Error submitting solution: {e}", extra={"challenge_id": challenge_id})
            return {"success": False, "error": "Failed to submit solution. Please try again."}


_challenge_service: Optional[ChallengeService] = None


def get_challenge_service() -> ChallengeService:
    global _challenge_service
    if _challenge_service is None:
        _challenge_service = ChallengeService()
    return _challenge_service
