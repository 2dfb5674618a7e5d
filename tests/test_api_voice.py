from tests.factories import create_interview, feedback_reply, run


def _event(client, headers, call_id, body):
    return client.post(f"/api/voice/calls/{call_id}/events", headers=headers, json=body)


def test_interview_call_flow(client, user_factory, fake_ai):
    user_id, headers = user_factory()
    interview_id = run(create_interview(user_id))
    fake_ai.objects.append(feedback_reply(90))

    started = client.post(
        "/api/voice/calls", headers=headers,
        json={"type": "interview", "interviewId": interview_id, "questions": ["What is JSX?"]},
    )
    assert started.status_code == 201
    call_id = started.json()["callId"]
    assert started.json()["status"] == "CONNECTING"

    assert _event(client, headers, call_id, {"type": "call-start"}).json()["status"] == "ACTIVE"
    _event(client, headers, call_id, {"type": "message", "message": {
        "type": "transcript", "transcriptType": "final", "role": "user", "transcript": "JSX is syntax sugar",
    }})

    ended = _event(client, headers, call_id, {"type": "call-end"}).json()
    assert ended["status"] == "FINISHED"
    assert ended["feedback"]["success"] is True

    stored = client.get(f"/api/feedback/{interview_id}", headers=headers).json()["feedback"]
    assert stored["totalScore"] == 90

    assert _event(client, headers, call_id, {"type": "call-start"}).status_code == 409


def test_calls_are_private(client, user_factory):
    _, headers = user_factory()
    _, other = user_factory(email="grace@example.com", name="Grace")
    call_id = client.post("/api/voice/calls", headers=headers, json={"type": "generate"}).json()["callId"]

    assert client.get(f"/api/voice/calls/{call_id}", headers=headers).status_code == 200
    response = client.get(f"/api/voice/calls/{call_id}", headers=other)
    assert response.status_code == 404
    assert response.json()["code"] == "CALL_NOT_FOUND"


def test_unknown_event_type_rejected(client, user_factory):
    _, headers = user_factory()
    call_id = client.post("/api/voice/calls", headers=headers, json={"type": "generate"}).json()["callId"]
    assert _event(client, headers, call_id, {"type": "volume-level"}).status_code == 422


def test_health_and_metrics(client):
    assert client.get("/health").json() == {"status": "ok"}
    ready = client.get("/health/ready").json()
    assert ready["redis"] is False
    assert ready["circuits"] == {"ai": "closed"}

    client.get("/api/leaderboard")
    snapshot = client.get("/metrics").json()
    assert snapshot["circuits"] == {"ai": {"state": "closed", "failures": 0}}
    counters = snapshot["counters"]
    assert counters["http.status.200"] >= 2


def test_interview_call_needs_existing_interview(client, user_factory):
    _, headers = user_factory()
    response = client.post(
        "/api/voice/calls", headers=headers,
        json={"type": "interview", "interviewId": "no-such-interview"},
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Interview not found"
