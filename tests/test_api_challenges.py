from types import SimpleNamespace

from careerpilot.routes import challenges as challenges_route

PROFILE = {"skills": ["Python", "SQL"], "experience": "2 years", "preferred_roles": ["Backend Developer"]}

GENERATED = {
    "title": "Rate Limiter",
    "description": "Implement a token bucket.\nInput: a list of timestamps.",
    "difficulty": "Intermediate",
    "techStack": ["Python"],
    "estimatedTime": 45,
    "points": 250,
}


def _review(score):
    return {"score": score, "strengths": ["Readable"], "improvements": [], "suggestions": ["Add tests"]}


def _create(client, headers, fake_ai, **overrides):
    fake_ai.objects.append({**GENERATED, **overrides})
    response = client.post("/api/challenges/generate", headers=headers)
    assert response.status_code == 201
    return response.json()["challenge"]


def test_disabled_feature_hides_routes(client, user_factory, monkeypatch):
    _, headers = user_factory(**PROFILE)
    monkeypatch.setattr(
        challenges_route, "get_settings", lambda: SimpleNamespace(enable_technical_challenges=False)
    )
    assert client.get("/api/challenges", headers=headers).status_code == 404


def test_generate_from_profile(client, user_factory, fake_ai):
    _, headers = user_factory(**PROFILE)
    challenge = _create(client, headers, fake_ai)

    assert challenge["difficulty"] == "intermediate"
    assert challenge["points"] == 100
    assert challenge["status"] == "not_started"
    assert "Skills: Python, SQL" in fake_ai.prompts[0]


def test_generate_avoids_recent_titles(client, user_factory, fake_ai):
    _, headers = user_factory(**PROFILE)
    _create(client, headers, fake_ai)
    _create(client, headers, fake_ai, title="Graph Walker")

    assert "- Rate Limiter" in fake_ai.prompts[1]
    assert "- Implement a token bucket." in fake_ai.prompts[1]


def test_generate_with_body_profile(client, user_factory, fake_ai):
    _, headers = user_factory()
    fake_ai.objects.append(GENERATED)
    body = {"userData": {"skills": ["Go"], "experience": "5 years", "preferredRoles": ["SRE"]}}
    response = client.post("/api/challenges/generate", headers=headers, json=body)
    assert response.status_code == 201
    assert "Skills: Go" in fake_ai.prompts[0]


def test_generate_requires_profile(client, user_factory, fake_ai):
    _, headers = user_factory()
    response = client.post("/api/challenges/generate", headers=headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Please complete your profile to generate technical challenges"


def test_list_with_filters(client, user_factory, fake_ai):
    _, headers = user_factory(**PROFILE)
    _create(client, headers, fake_ai)
    _create(client, headers, fake_ai, title="SQL Window", difficulty="beginner", techStack=["SQL"])

    everything = client.get("/api/challenges", headers=headers).json()
    assert everything["total"] == 2
    assert everything["challenges"][0]["title"] == "SQL Window"

    beginner = client.get("/api/challenges?difficulty=beginner", headers=headers).json()
    assert [c["title"] for c in beginner["challenges"]] == ["SQL Window"]

    python = client.get("/api/challenges?techStack=Python", headers=headers).json()
    assert [c["title"] for c in python["challenges"]] == ["Rate Limiter"]


def test_failing_then_passing_submission(client, user_factory, fake_ai):
    _, headers = user_factory(**PROFILE)
    challenge = _create(client, headers, fake_ai)
    url = f"/api/challenges/{challenge['id']}"

    fake_ai.objects.append(_review(40))
    first = client.post(f"{url}/submit", headers=headers, json={"solution": "def f(): pass"}).json()
    assert first["success"] is True
    assert first["feedback"]["score"] == 40
    assert client.get(url, headers=headers).json()["status"] == "in_progress"

    fake_ai.objects.append(_review(85))
    client.post(f"{url}/submit", headers=headers, json={"solution": "def f(): return 1"})

    detail = client.get(url, headers=headers).json()
    assert detail["status"] == "completed"
    assert detail["completedAt"] is not None
    assert [s["status"] for s in detail["submissions"]] == ["completed", "in_progress"]


def test_submission_to_someone_elses_challenge(client, user_factory, fake_ai):
    _, owner = user_factory(**PROFILE)
    _, intruder = user_factory(email="eve@example.com", name="Eve")
    challenge = _create(client, owner, fake_ai)

    response = client.post(
        f"/api/challenges/{challenge['id']}/submit", headers=intruder, json={"solution": "x"}
    )
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Challenge not found"}


def test_reading_someone_elses_challenge(client, user_factory, fake_ai):
    _, owner = user_factory(**PROFILE)
    _, intruder = user_factory(email="eve@example.com", name="Eve")
    challenge = _create(client, owner, fake_ai)

    assert client.get(f"/api/challenges/{challenge['id']}", headers=owner).status_code == 200
    assert client.get(f"/api/challenges/{challenge['id']}", headers=intruder).status_code == 404


def test_review_failure(client, user_factory, fake_ai):
    _, headers = user_factory(**PROFILE)
    challenge = _create(client, headers, fake_ai)
    fake_ai.objects.append(RuntimeError("provider down"))

    response = client.post(f"/api/challenges/{challenge['id']}/submit", headers=headers, json={"solution": "x"})
    assert response.status_code == 502
    assert response.json()["error"] == "Failed to submit solution. Please try again."
    assert client.get(f"/api/challenges/{challenge['id']}", headers=headers).json()["status"] == "not_started"


def test_unknown_challenge(client, user_factory):
    _, headers = user_factory()
    assert client.get("/api/challenges/missing", headers=headers).status_code == 404


def test_execute_python(client, user_factory):
    _, headers = user_factory()
    response = client.post(
        "/api/challenges/execute", headers=headers, json={"code": "print(sum([1, 2, 3]))", "language": "python"}
    )
    assert response.status_code == 200
    assert response.json()["output"] == "6"
    assert response.json()["error"] is None
