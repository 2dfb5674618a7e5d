"""
Experience points and level math, plus the versioned XP write.

XP is derived from a user's interview history; the stored value on the
user row is only a cache used by the leaderboard. Writes are guarded by
the user's version counter (SQLAlchemy version_id_col), so two concurrent
recomputations cannot silently overwrite each other.
"""
import asyncio
import math
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from careerpilot.models.user import User
from careerpilot.services.cache import cache_delete, cache_delete_prefix
from careerpilot.utils.errors import AppError
from careerpilot.utils.logger import logger

# XP awarded per activity
XP_MULTIPLIERS = {
    "INTERVIEW_COMPLETION": 100,
    "PERFECT_SCORE": 200,
    "HIGH_SCORE": 150,
    "STREAK_DAY": 50,
    "ACHIEVEMENT_COMPLETION": 300,
    "BADGE_EARNED": 250,
    "WEEKLY_ACTIVITY": 100,
}

# Level progression
BASE_XP = 1000
SCALING_FACTOR = 1.5

HIGH_SCORE_THRESHOLD = 90
MAX_RETRIES = 3


class XPUpdateError(AppError):
    def __init__(self, message: str = "Failed to update XP after maximum retries"):
        super().__init__(message, code="XP_UPDATE_FAILED", status_code=409)


def _score(interview: Dict[str, Any]) -> Optional[int]:
    feedback = interview.get("feedback")
    if not feedback:
        return None
    return feedback.get("totalScore")


class XPService:
    """XP and level calculations"""

    def calculate_xp(
        self,
        interviews: List[Dict[str, Any]],
        badges: List[Dict[str, Any]],
        achievements: List[Dict[str, Any]],
        streak: int,
    ) -> int:
        scores = [s for s in (_score(i) for i in interviews) if s is not None]

        completed = len(scores)
        perfect = sum(1 for s in scores if s == 100)
        high = sum(1 for s in scores if s >= HIGH_SCORE_THRESHOLD)
        with_progress = sum(1 for a in achievements if a.get("progress"))

        return (
            completed * XP_MULTIPLIERS["INTERVIEW_COMPLETION"]
            + perfect * XP_MULTIPLIERS["PERFECT_SCORE"]
            + high * XP_MULTIPLIERS["HIGH_SCORE"]
            + streak * XP_MULTIPLIERS["STREAK_DAY"]
            + with_progress * XP_MULTIPLIERS["ACHIEVEMENT_COMPLETION"]
            + len(badges) * XP_MULTIPLIERS["BADGE_EARNED"]
        )

    def calculate_level(self, xp: int) -> int:
        if xp < BASE_XP:
            return 1
        return math.floor(1 + math.log(xp / BASE_XP) / math.log(SCALING_FACTOR))

    def calculate_xp_to_next_level(self, current_level: int) -> int:
        if current_level < 1:
            return BASE_XP
        return math.floor(BASE_XP * SCALING_FACTOR ** current_level)

    def calculate_xp_for_level(self, level: int) -> int:
        if level <= 1:
            return 0
        return math.floor(BASE_XP * SCALING_FACTOR ** (level - 1))

    def level_summary(self, xp: int) -> Dict[str, int]:
        level = self.calculate_level(xp)
        return {
            "level": level,
            "experiencePoints": xp,
            "xpForCurrentLevel": self.calculate_xp_for_level(level),
            "xpToNextLevel": self.calculate_xp_to_next_level(level),
        }

    async def calculate_and_update_xp(
        self,
        db: AsyncSession,
        user_id: str,
        interviews: List[Dict[str, Any]],
        badges: List[Dict[str, Any]],
        achievements: List[Dict[str, Any]],
        streak: int,
        store_badges: bool = False,
    ) -> int:
        """
        Recompute XP and persist it when it changed.

        With store_badges the given badge list is written in the same
        versioned update. A version conflict is retried up to MAX_RETRIES
        attempts in total, sleeping 0.1s * attempt between them.
        """
        new_xp = self.calculate_xp(interviews, badges, achievements, streak)

        for attempt in range(1, MAX_RETRIES + 1):
            try:
                user = await db.get(User, user_id, populate_existing=True)
                if user is None:
                    raise AppError("User not found", code="USER_NOT_FOUND", status_code=404)

                changed = False
                if new_xp != (user.experience_points or 0):
                    user.experience_points = new_xp
                    changed = True
                if store_badges and badges != (user.badges or []):
                    user.badges = list(badges)
                    changed = True

                if changed:
                    await db.commit()
                    await cache_delete(f"user:{user_id}")
                    await cache_delete_prefix("leaderboard:")
                return new_xp

            except StaleDataError:
                await db.rollback()
                if attempt < MAX_RETRIES:
                    logger.info(f"Retry attempt {attempt} due to version conflict")
                    await asyncio.sleep(0.1 * attempt)
                    continue
                logger.error(f"Error updating XP for user {user_id}: version conflict persisted")

        raise XPUpdateError()


_xp_service: Optional[XPService] = None


def get_xp_service() -> XPService:
    global _xp_service
    if _xp_service is None:
        _xp_service = XPService()
    return _xp_service
