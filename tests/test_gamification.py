from datetime import date, datetime, timedelta

from careerpilot.models.user import User
from careerpilot.services import gamification
from careerpilot.services.gamification import (
    calculate_streak,
    compute_progress,
    displayed_badges,
    earned_badges,
    evaluate_achievements,
    sync_badges,
    week_key,
)
from tests.factories import create_user

TODAY = date(2024, 5, 10)


def _iv(score=None, when=TODAY, type="technical"):
    created = datetime.combine(when, datetime.min.time()).replace(hour=12)
    return {
        "id": f"iv-{when.isoformat()}-{score}",
        "type": type,
        "createdAt": created.isoformat(),
        "feedback": {"totalScore": score} if score is not None else None,
    }


def _by_id(achievements):
    return {a["id"]: a for a in achievements}


def test_streak_counts_consecutive_days_ending_today():
    interviews = [_iv(80, TODAY), _iv(70, TODAY - timedelta(days=1)), _iv(60, TODAY - timedelta(days=2))]
    assert calculate_streak(interviews, TODAY) == 3


def test_streak_is_zero_without_interview_today():
    interviews = [_iv(80, TODAY - timedelta(days=1))]
    assert calculate_streak(interviews, TODAY) == 0


def test_streak_ignores_unfinished_interviews():
    interviews = [_iv(None, TODAY), _iv(80, TODAY - timedelta(days=1))]
    assert calculate_streak(interviews, TODAY) == 0


def test_week_key_starts_weeks_on_sunday():
    assert week_key(datetime(2024, 5, 4)) == "2024-W1"  # Saturday
    assert week_key(datetime(2024, 5, 5)) == "2024-W2"  # Sunday
    assert week_key(datetime(2024, 5, 10)) == "2024-W2"


def test_progress_is_capped_at_target():
    interviews = [_iv(70, TODAY - timedelta(days=n)) for n in range(7)]
    achievements = _by_id(evaluate_achievements(interviews))

    assert achievements["achievement-2"]["progress"] == 5
    assert achievements["achievement-2"]["completed"] is True
    assert achievements["achievement-3"]["progress"] == 7
    assert achievements["achievement-3"]["completed"] is False


def test_only_completed_interviews_count():
    interviews = [_iv(None), _iv(None), _iv(90)]
    achievements = _by_id(evaluate_achievements(interviews))
    assert achievements["achievement-1"]["progress"] == 1
    assert achievements["achievement-7"]["progress"] == 90
    assert achievements["achievement-7"]["completed"] is True


def test_comeback_requires_low_score_first():
    earlier, later = TODAY - timedelta(days=3), TODAY
    comeback = _by_id(evaluate_achievements([_iv(40, earlier), _iv(95, later)]))
    assert comeback["achievement-9"]["completed"] is True

    reversed_order = _by_id(evaluate_achievements([_iv(95, earlier), _iv(40, later)]))
    assert reversed_order["achievement-9"]["completed"] is False


def test_weekly_activity_over_four_weeks():
    days = [date(2024, 5, 1), date(2024, 5, 8), date(2024, 5, 15), date(2024, 5, 22)]
    achievements = _by_id(evaluate_achievements([_iv(60, d) for d in days]))
    assert achievements["achievement-10"]["progress"] == 4
    assert achievements["achievement-10"]["completed"] is True


def test_earned_badges_follow_conditions():
    interviews = [_iv(100, TODAY), _iv(100, TODAY - timedelta(days=1))]
    ids = [b.id for b in earned_badges(interviews)]
    assert ids == ["badge-1", "badge-5", "badge-6", "badge-7"]


def test_displayed_badges_prefers_stored_badges():
    user = User(badges=[{"id": "badge-3", "earnedAt": "2024-01-01T00:00:00"}, {"id": "unknown"}])
    badges = displayed_badges(user, evaluate_achievements([_iv(80)]))
    assert [b["id"] for b in badges] == ["badge-3"]
    assert badges[0]["earnedAt"] == "2024-01-01T00:00:00"


def test_displayed_badges_falls_back_to_completed_achievements():
    user = User(badges=[])
    badges = displayed_badges(user, evaluate_achievements([_iv(80)]))
    assert [b["id"] for b in badges] == ["badge-1"]


def test_compute_progress_snapshot():
    user = User(id="u1", badges=[], experience_points=0)
    interviews = [_iv(80, TODAY), _iv(None, TODAY)]

    progress = compute_progress(user, interviews, TODAY)

    assert progress["userId"] == "u1"
    assert progress["totalInterviews"] == 2
    assert progress["completedInterviews"] == 1
    assert progress["averageScore"] == 40.0
    assert progress["streak"] == 1
    assert len(progress["allAchievements"]) == 10
    assert all(not a["completed"] and a["progress"] > 0 for a in progress["achievements"])
    with_progress = sum(1 for a in progress["allAchievements"] if a["progress"])
    assert with_progress == 6
    # one completion, a one-day streak, six achievements under way
    assert progress["experiencePoints"] == 100 + 50 + 6 * 300
    assert progress["level"] == 2


def test_compute_progress_uses_stored_xp():
    user = User(id="u1", badges=[], experience_points=2000)
    progress = compute_progress(user, [], TODAY)
    assert progress["experiencePoints"] == 2000
    assert progress["level"] == 2
    assert progress["xpForCurrentLevel"] == 1500
    assert progress["averageScore"] == 0


async def test_sync_badges_awards_once(db, monkeypatch):
    events = []
    monkeypatch.setattr(gamification.app_events, "track_user_progress", lambda *a, **k: events.append(a))
    user_id, _ = await create_user()
    user = await db.get(User, user_id)
    interviews = [_iv(80, TODAY)]

    first = await sync_badges(db, user, interviews, TODAY)

    assert [b["id"] for b in first["newBadges"]] == ["badge-1"]
    assert [b["id"] for b in user.badges] == ["badge-1"]
    assert user.experience_points == first["progress"]["experiencePoints"]
    assert events == [("badge_earned:badge-1", 1)]

    second = await sync_badges(db, user, interviews, TODAY)
    assert second["newBadges"] == []
    assert [b["id"] for b in second["progress"]["badges"]] == ["badge-1"]
