"""
Achievements, badges, streaks and the progress snapshot shown on profiles.

Rules are evaluated over interview dicts as produced by Interview.to_dict()
with embedded feedback. Only completed interviews (those with feedback)
count toward scores.
"""
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from careerpilot.models.user import User
from careerpilot.services import app_events
from careerpilot.services.xp_service import get_xp_service

Interviews = List[Dict[str, Any]]


def _created_at(interview: Dict[str, Any]) -> Optional[datetime]:
    value = interview.get("createdAt")
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _completed(interviews: Interviews) -> Interviews:
    return [i for i in interviews if i.get("feedback")]


def _scores(interviews: Interviews) -> List[int]:
    return [i["feedback"].get("totalScore", 0) for i in _completed(interviews)]


def _perfect_count(interviews: Interviews) -> int:
    return sum(1 for s in _scores(interviews) if s == 100)


def _average_score(interviews: Interviews) -> float:
    scores = _scores(interviews)
    return sum(scores) / len(scores) if scores else 0


def _low_score_count(interviews: Interviews) -> int:
    return sum(1 for s in _scores(interviews) if s < 50)


def _has_comeback(interviews: Interviews) -> bool:
    done = _completed(interviews)
    low_dates = [_created_at(i) for i in done if i["feedback"].get("totalScore", 0) < 50]
    low_dates = [d for d in low_dates if d is not None]
    for i in done:
        created = _created_at(i)
        if i["feedback"].get("totalScore", 0) >= 90 and created is not None:
            if any(created > d for d in low_dates):
                return True
    return False


def week_key(d: datetime) -> str:
    """Calendar-month week bucket: '<year>-W<n>', n = ceil((day + 6 - weekday) / 7), Sunday = 0."""
    weekday = d.isoweekday() % 7
    return f"{d.year}-W{math.ceil((d.day + 6 - weekday) / 7)}"


def _active_weeks(interviews: Interviews) -> int:
    return len({week_key(d) for d in (_created_at(i) for i in _completed(interviews)) if d})


@dataclass(frozen=True)
class Achievement:
    id: str
    name: str
    description: str
    target: int
    type: str
    measure: Callable[[int, Interviews], float]

    def raw_progress(self, completed: int, interviews: Interviews) -> float:
        return self.measure(completed, interviews)

    def is_completed(self, completed: int, interviews: Interviews) -> bool:
        return self.raw_progress(completed, interviews) >= self.target

    def evaluate(self, completed: int, interviews: Interviews) -> Dict[str, Any]:
        raw = self.raw_progress(completed, interviews)
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "target": self.target,
            "type": self.type,
            # reported progress never exceeds the target
            "progress": min(raw, self.target),
            "completed": raw >= self.target,
        }


@dataclass(frozen=True)
class Badge:
    id: str
    name: str
    description: str
    icon: str
    type: str
    condition: Callable[[int, Interviews], bool]

    def to_dict(self, earned_at: Optional[str] = None) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "type": self.type,
        }
        if earned_at:
            data["earnedAt"] = earned_at
        return data


ACHIEVEMENTS = [
    Achievement("achievement-1", "First Step", "Complete your first interview", 1,
                "interview_count", lambda c, _: c),
    Achievement("achievement-2", "Interview Enthusiast", "Complete 5 interviews", 5,
                "interview_count", lambda c, _: c),
    Achievement("achievement-3", "Interview Master", "Complete 10 interviews", 10,
                "interview_count", lambda c, _: c),
    Achievement("achievement-4", "Grind Guru", "Complete 30 interviews", 30,
                "interview_count", lambda c, _: c),
    Achievement("achievement-5", "Perfect Score", "Get a 100% score in an interview", 1,
                "score_threshold", lambda _, i: 1 if _perfect_count(i) else 0),
    Achievement("achievement-6", "Double Perfection", "Get 100% score in 2 interviews", 2,
                "score_threshold", lambda _, i: _perfect_count(i)),
    Achievement("achievement-7", "High Scorer", "Average score above 90%", 90,
                "average_score", lambda _, i: _average_score(i)),
    Achievement("achievement-8", "Try Harder", "Get 3 interviews with a score below 50%", 3,
                "low_score", lambda _, i: _low_score_count(i)),
    Achievement("achievement-9", "Redemption Arc", "Improve from below 50% to 90%+ in a later interview", 1,
                "score_comeback", lambda _, i: 1 if _has_comeback(i) else 0),
    Achievement("achievement-10", "Consistency Beast", "Complete at least one interview every week for 4 weeks", 4,
                "weekly_activity", lambda _, i: _active_weeks(i)),
]

BADGES = [
    Badge("badge-1", "First Step", "Completed your first interview", "👣",
          "interview_count", lambda c, _: c >= 1),
    Badge("badge-2", "Enthusiast", "Completed 5 interviews", "🎯",
          "interview_count", lambda c, _: c >= 5),
    Badge("badge-3", "Interview Master", "Completed 10 interviews", "🏆",
          "interview_count", lambda c, _: c >= 10),
    Badge("badge-4", "Grind Guru", "Completed 30 interviews", "🚀",
          "interview_count", lambda c, _: c >= 30),
    Badge("badge-5", "Perfect Scorer", "Scored 100% in an interview", "💯",
          "score_threshold", lambda _, i: _perfect_count(i) >= 1),
    Badge("badge-6", "Double Perfection", "Two perfect scores", "⚡",
          "score_threshold", lambda _, i: _perfect_count(i) >= 2),
    Badge("badge-7", "High Scorer", "Average score above 90%", "📈",
          "average_score", lambda _, i: _average_score(i) >= 90),
    Badge("badge-8", "Try Harder", "3 interviews under 50% score", "😅",
          "low_score", lambda _, i: _low_score_count(i) >= 3),
    Badge("badge-9", "Redemption Arc", "Came back from failure to success", "🔁",
          "score_comeback", lambda _, i: _has_comeback(i)),
    Badge("badge-10", "Consistency Beast", "Completed interviews for 4 weeks", "📆",
          "weekly_activity", lambda _, i: _active_weeks(i) >= 4),
]

BADGES_BY_ID = {b.id: b for b in BADGES}


def badge_for_achievement(achievement: Dict[str, Any]) -> Optional[Badge]:
    """Match by name first, then by rule type."""
    for badge in BADGES:
        if badge.name == achievement["name"]:
            return badge
    for badge in BADGES:
        if badge.type == achievement["type"]:
            return badge
    return None


def calculate_streak(interviews: Interviews, today: Optional[date] = None) -> int:
    """
    Consecutive days ending today with a completed interview. Walks the
    completed interviews newest first; each one must fall on the day being
    checked, which then moves back by one.
    """
    current = today or datetime.now(timezone.utc).date()
    dated = [(d, i) for i in _completed(interviews) for d in [_created_at(i)] if d is not None]
    dated.sort(key=lambda pair: pair[0], reverse=True)

    streak = 0
    for created, _ in dated:
        if created.date() == current:
            streak += 1
            current -= timedelta(days=1)
        else:
            break
    return streak


def evaluate_achievements(interviews: Interviews) -> List[Dict[str, Any]]:
    completed = len(_completed(interviews))
    return [a.evaluate(completed, interviews) for a in ACHIEVEMENTS]


def earned_badges(interviews: Interviews) -> List[Badge]:
    completed = len(_completed(interviews))
    return [b for b in BADGES if b.condition(completed, interviews)]


def displayed_badges(user: User, achievements: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    stored = user.badges or []
    if stored:
        return [
            BADGES_BY_ID[b["id"]].to_dict(b.get("earnedAt"))
            for b in stored
            if b.get("id") in BADGES_BY_ID
        ]

    matched: Dict[str, Badge] = {}
    for achievement in achievements:
        if not achievement["completed"]:
            continue
        badge = badge_for_achievement(achievement)
        if badge is not None:
            matched.setdefault(badge.id, badge)
    return [b.to_dict() for b in matched.values()]


def compute_progress(user: User, interviews: Interviews, today: Optional[date] = None) -> Dict[str, Any]:
    """UserProgress snapshot for the profile page."""
    xp_service = get_xp_service()
    completed = _completed(interviews)
    achievements = evaluate_achievements(interviews)
    badges = displayed_badges(user, achievements)
    streak = calculate_streak(interviews, today)

    total_score = sum(i["feedback"].get("totalScore", 0) for i in completed)
    experience_points = user.experience_points or xp_service.calculate_xp(
        interviews, user.badges or [], achievements, streak
    )

    return {
        "userId": user.id,
        "totalInterviews": len(interviews),
        "completedInterviews": len(completed),
        "averageScore": round(total_score / len(interviews), 1) if interviews else 0,
        "streak": streak,
        "badges": badges,
        "achievements": [a for a in achievements if not a["completed"] and a["progress"] > 0],
        "allAchievements": achievements,
        **xp_service.level_summary(experience_points),
    }


async def sync_badges(
    db: AsyncSession,
    user: User,
    interviews: Interviews,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """
    Award badges the user has earned but does not hold yet, then recompute
    and store XP with the full badge list.
    """
    held = {b.get("id") for b in user.badges or []}
    now = datetime.now(timezone.utc).isoformat()
    new_badges = [
        {"id": b.id, "earnedAt": now}
        for b in earned_badges(interviews)
        if b.id not in held
    ]

    achievements = evaluate_achievements(interviews)
    streak = calculate_streak(interviews, today)
    all_badges = list(user.badges or []) + new_badges

    await get_xp_service().calculate_and_update_xp(
        db,
        user.id,
        interviews,
        all_badges,
        achievements,
        streak,
        store_badges=bool(new_badges),
    )
    await db.refresh(user)

    for badge in new_badges:
        app_events.track_user_progress(f"badge_earned:{badge['id']}", 1)

    return {
        "progress": compute_progress(user, interviews, today),
        "newBadges": [BADGES_BY_ID[b["id"]].to_dict(b["earnedAt"]) for b in new_badges],
    }
