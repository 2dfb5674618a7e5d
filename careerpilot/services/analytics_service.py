"""
Interview analytics for the dashboard charts.

Pure aggregation over interview dicts (Interview.to_dict with embedded
feedback). Interviews without feedback score 0.
"""
from collections import Counter, OrderedDict
from datetime import datetime
from typing import Any, Dict, List, Optional

from careerpilot.utils.logger import logger


def empty_analytics() -> Dict[str, Any]:
    return {
        "totalInterviews": 0,
        "averageScore": 0,
        "practiceStreak": 0,
        "performanceData": [],
        "skillData": [],
        "progressData": [],
        "interviewHistory": [],
        "techStackFrequency": [],
    }


def _created(interview: Dict[str, Any]) -> datetime:
    return datetime.fromisoformat(interview["createdAt"])


def _score(interview: Dict[str, Any]) -> int:
    feedback = interview.get("feedback")
    return feedback.get("totalScore", 0) if feedback else 0


def iso_week_key(d: datetime) -> str:
    """'YYYY-WW' using the ISO year and week number."""
    year, week, _ = d.isocalendar()
    return f"{year}-{week:02d}"


def _week_sort_key(key: str):
    year, week = key.split("-")
    return int(year), int(week)


def _group_by_week(interviews: List[Dict[str, Any]]) -> "OrderedDict[str, List[Dict[str, Any]]]":
    groups: "OrderedDict[str, List[Dict[str, Any]]]" = OrderedDict()
    for interview in sorted(interviews, key=_created):
        groups.setdefault(iso_week_key(_created(interview)), []).append(interview)
    return groups


def average_score(interviews: List[Dict[str, Any]]) -> int:
    if not interviews:
        return 0
    return round(sum(_score(i) for i in interviews) / len(interviews))


def practice_streak(interviews: List[Dict[str, Any]]) -> int:
    """Count consecutive one-day gaps between completed interviews, newest first."""
    completed = [i for i in interviews if i.get("feedback")]

    def feedback_time(i):
        created = i["feedback"].get("createdAt")
        return datetime.fromisoformat(created) if created else datetime.min

    completed.sort(key=feedback_time, reverse=True)

    streak = 0
    for current, following in zip(completed, completed[1:]):
        gap = (_created(current).date() - _created(following).date()).days
        if gap == 1:
            streak += 1
        else:
            break
    return streak


def performance_data(interviews: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    data = [
        {
            "week": week,
            "score": round(sum(_score(i) for i in group) / len(group)),
            "questions": sum(len(i.get("questions") or []) for i in group),
        }
        for week, group in _group_by_week(interviews).items()
    ]
    return sorted(data, key=lambda d: _week_sort_key(d["week"]))


def skill_data(interviews: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    by_skill: Dict[str, List[int]] = {}
    for interview in interviews:
        feedback = interview.get("feedback") or {}
        for category in feedback.get("categoryScores") or []:
            by_skill.setdefault(category["name"], []).append(category["score"])

    data = [
        {"name": name, "value": round(sum(scores) / len(scores))}
        for name, scores in by_skill.items()
    ]
    return sorted(data, key=lambda d: d["value"], reverse=True)


def progress_data(interviews: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {
            "week": week,
            "interviews": len(group),
            "score": round(sum(_score(i) for i in group) / len(group)),
        }
        for week, group in _group_by_week(interviews).items()
    ]


def interview_history(interviews: List[Dict[str, Any]], limit: int = 10) -> List[Dict[str, Any]]:
    newest_first = sorted(interviews, key=_created, reverse=True)
    history = []
    for interview in newest_first[:limit]:
        created = _created(interview)
        previous = next(
            (
                i for i in newest_first
                if i["id"] != interview["id"]
                and i.get("type") == interview.get("type")
                and _created(i) < created
            ),
            None,
        )
        score = _score(interview)
        improvement = f"+{max(0, score - _score(previous))}%" if previous else "N/A"
        history.append({
            "id": interview["id"],
            "date": created.date().isoformat(),
            "type": interview.get("type"),
            "topic": interview.get("role"),
            "score": score,
            "improvement": improvement,
        })
    return history


def tech_stack_frequency(interviews: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    counts = Counter(
        tech
        for interview in interviews
        for tech in interview.get("techstack") or []
        if isinstance(tech, str) and tech
    )
    return [{"name": name, "count": count} for name, count in counts.most_common()]


def build_analytics(interviews: Optional[List[Dict[str, Any]]]) -> Dict[str, Any]:
    if not interviews:
        return empty_analytics()

    try:
        return {
            "totalInterviews": len(interviews),
            "averageScore": average_score(interviews),
            "practiceStreak": practice_streak(interviews),
            "performanceData": performance_data(interviews),
            "skillData": skill_data(interviews),
            "progressData": progress_data(interviews),
            "interviewHistory": interview_history(interviews),
            "techStackFrequency": tech_stack_frequency(interviews),
        }
    except Exception as e:
        logger.error(f"Error calculating analytics data: {e}", exc_info=True)
        return empty_analytics()
