from careerpilot.services import app_events
from careerpilot.utils import metrics
from careerpilot.utils.errors import AppError, handle_error, sanitize_error_message


def test_track_counts_event():
    app_events.track_interview_start("iv-1", "technical", "voice")
    app_events.track_interview_start("iv-2", "technical", "voice")
    assert metrics.get_counter("events.interview_start") == 2


def test_sanitizes_secrets():
    message = sanitize_error_message('connect failed: password=hunter2 api_key: abc123')
    assert "hunter2" not in message
    assert "abc123" not in message
    assert message.count("[REDACTED]") == 2


def test_handle_app_error_keeps_message_and_code():
    error = AppError("Challenge not found", code="NOT_FOUND", status_code=404, context={"component": "challenges"})
    assert handle_error(error) == {"message": "Challenge not found", "code": "NOT_FOUND"}
    assert metrics.get_counter("events.error") == 1


def test_handle_unknown_error_is_generic():
    result = handle_error(RuntimeError("token=secret-value leaked"))
    assert result == {"message": "An unexpected error occurred", "code": "UNEXPECTED_ERROR"}


def test_metrics_snapshot_summarizes_histograms():
    for value in (10, 20, 30):
        metrics.observe("ai.duration_ms", value)
    metrics.inc("ai.success")

    snapshot = metrics.get_snapshot()
    assert snapshot["counters"]["ai.success"] == 1
    assert snapshot["histograms"]["ai.duration_ms"]["count"] == 3
    assert snapshot["histograms"]["ai.duration_ms"]["max"] == 30


def test_context_keys_matching_parameter_names_are_tracked():
    error = AppError("AI_API_KEY is not configured", code="AI_NOT_CONFIGURED", status_code=503)
    result = handle_error(error, {"component": "interviews", "action": "generate", "code": "ignored", "message": "x"})
    assert result == {"message": "AI_API_KEY is not configured", "code": "AI_NOT_CONFIGURED"}
    assert metrics.get_counter("events.error") == 1


def test_engagement_event_with_action():
    app_events.track_user_engagement("challenges", action="submit", duration=12.5)
    assert metrics.get_counter("events.user_engagement") == 1
