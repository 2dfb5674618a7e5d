"""
Product analytics events.

Each event becomes one structured log line (`app.event`) plus an
`events.<action>` counter. Tracking is best-effort and never raises into
the caller.
"""
from datetime import datetime, timezone
from typing import Any, Optional

from careerpilot.utils.logger import logger
from careerpilot.utils.metrics import inc


def track(event_name: str, /, **params: Any) -> None:
    try:
        payload = {k: v for k, v in params.items() if v is not None}
        payload["timestamp"] = datetime.now(timezone.utc).isoformat()
        inc(f"events.{event_name}")
        logger.info("app.event", extra={"event": event_name, "params": payload})
    except Exception as exc:
        logger.debug(f"Error tracking event {event_name}: {exc}")


# Authentication
def track_sign_up(method: str, **params: Any) -> None:
    track("sign_up", method=method, **params)


def track_login(method: str, **params: Any) -> None:
    track("login", method=method, **params)


def track_logout(**params: Any) -> None:
    track("logout", **params)


# Interview flow
def track_interview_start(interview_id: str, interview_type: str, difficulty: str, **params: Any) -> None:
    track(
        "interview_start",
        interview_id=interview_id,
        interview_type=interview_type,
        difficulty_level=difficulty,
        **params,
    )


def track_interview_complete(interview_id: str, score: int, duration: float, **params: Any) -> None:
    track(
        "interview_complete",
        interview_id=interview_id,
        score=score,
        duration_seconds=duration,
        **params,
    )


def track_question_attempt(interview_id: str, question_id: str, time_spent: float, correct: bool) -> None:
    track(
        "question_attempt",
        interview_id=interview_id,
        question_id=question_id,
        time_spent_seconds=time_spent,
        is_correct=correct,
    )


# Engagement
def track_user_engagement(feature: str, action: str, duration: Optional[float] = None) -> None:
    track("user_engagement", feature=feature, action=action, duration_seconds=duration)


def track_user_feedback(rating: Optional[int] = None, feedback: Optional[str] = None, **params: Any) -> None:
    track("user_feedback", rating=rating, feedback=feedback, **params)


def track_user_progress(milestone: str, value: float) -> None:
    track("user_progress", milestone=milestone, value=value)


def track_error(code: str, message: str, /, **context: Any) -> None:
    track("error", error_code=code, error_message=message, **context)
