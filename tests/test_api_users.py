from datetime import datetime, timedelta

from tests.factories import create_interview, feedback_reply, run


class TestAuth:
    def test_register_returns_key_once(self, client):
        response = client.post("/api/auth/register", json={"name": "Ada", "email": "Ada@Example.com"})
        assert response.status_code == 201
        body = response.json()
        assert body["user"]["email"] == "ada@example.com"
        assert body["api_key"]

        me = client.get("/api/auth/me", headers={"X-API-Key": body["api_key"]})
        assert me.status_code == 200
        assert me.json()["id"] == body["user"]["id"]
        assert me.json()["lastLogin"] is not None

    def test_duplicate_email_rejected(self, client):
        client.post("/api/auth/register", json={"name": "Ada", "email": "ada@example.com"})
        response = client.post("/api/auth/register", json={"name": "Ada", "email": "ADA@example.com"})
        assert response.status_code == 400
        assert response.json()["detail"] == "User already exists. Please sign in instead."

    def test_register_rate_limited(self, client):
        for n in range(5):
            client.post("/api/auth/register", json={"name": "U", "email": f"u{n}@example.com"})
        response = client.post("/api/auth/register", json={"name": "U", "email": "u6@example.com"})
        assert response.status_code == 429

    def test_missing_and_invalid_keys(self, client):
        assert client.get("/api/auth/me").status_code == 401
        assert client.get("/api/auth/me", headers={"X-API-Key": "not-a-real-key"}).status_code == 401

    def test_disabled_account(self, client, user_factory):
        _, headers = user_factory(is_active=False)
        assert client.get("/api/auth/me", headers=headers).status_code == 403

    def test_rotate_key_invalidates_old_key(self, client, user_factory):
        _, headers = user_factory()
        response = client.post("/api/auth/rotate-key", headers=headers)
        assert response.status_code == 200
        new_key = response.json()["new_api_key"]

        assert client.get("/api/auth/me", headers=headers).status_code == 401
        assert client.get("/api/auth/me", headers={"X-API-Key": new_key}).status_code == 200

    def test_correlation_id_echoed(self, client):
        response = client.get("/health", headers={"X-Correlation-ID": "trace-123"})
        assert response.headers["X-Correlation-ID"] == "trace-123"


class TestProfile:
    def test_public_profile_hides_email(self, client, user_factory):
        user_id, _ = user_factory(experience_points=1600)
        body = client.get(f"/api/users/{user_id}").json()
        assert "email" not in body
        assert body["name"] == "Ada"
        assert body["level"] == 2

    def test_unknown_user(self, client):
        assert client.get("/api/users/nope").status_code == 404

    def test_update_profile(self, client, user_factory):
        _, headers = user_factory()
        response = client.put(
            "/api/profile",
            headers=headers,
            json={"skills": [" React ", "", "TypeScript"], "experience": "3 years", "preferredRoles": ["Frontend"]},
        )
        assert response.status_code == 200
        user = response.json()["user"]
        assert user["skills"] == ["React", "TypeScript"]
        assert user["experience"] == "3 years"
        assert user["name"] == "Ada"

    def test_leaderboard_orders_by_xp(self, client, user_factory):
        user_factory(email="low@example.com", name="Low", experience_points=100)
        user_factory(email="high@example.com", name="High", experience_points=5000, badges=[{"id": "badge-1"}])
        user_factory(email="off@example.com", name="Off", experience_points=9000, is_active=False)

        board = client.get("/api/leaderboard").json()["leaderboard"]

        assert [e["name"] for e in board] == ["High", "Low"]
        assert board[0]["rank"] == 1
        assert board[0]["badges"] == 1
        assert board[0]["level"] == 4

    def test_progress_and_badge_sync(self, client, user_factory, fake_ai):
        user_id, headers = user_factory()
        interview_id = run(create_interview(user_id))
        fake_ai.objects.append(feedback_reply(100))
        client.post(
            "/api/feedback",
            headers=headers,
            json={"interview_id": interview_id, "transcript": [{"role": "user", "content": "Hi"}]},
        )

        progress = client.get("/api/profile/progress", headers=headers).json()
        assert progress["completedInterviews"] == 1
        assert progress["averageScore"] == 100.0
        assert progress["streak"] == 1

        synced = client.post("/api/profile/sync-badges", headers=headers).json()
        assert {b["id"] for b in synced["newBadges"]} == {"badge-1", "badge-5", "badge-7"}
        assert synced["progress"]["experiencePoints"] > 0

        again = client.post("/api/profile/sync-badges", headers=headers).json()
        assert again["newBadges"] == []

        board = client.get("/api/leaderboard").json()["leaderboard"]
        assert board[0]["experiencePoints"] == synced["progress"]["experiencePoints"]

    def test_analytics_empty_for_new_user(self, client, user_factory):
        _, headers = user_factory()
        body = client.get("/api/profile/analytics", headers=headers).json()
        assert body["totalInterviews"] == 0
        assert body["interviewHistory"] == []

    def test_analytics_with_history(self, client, user_factory, fake_ai):
        user_id, headers = user_factory()
        interview_id = run(create_interview(user_id, techstack=["React", "Redux"]))
        fake_ai.objects.append(feedback_reply(60))
        client.post(
            "/api/feedback",
            headers=headers,
            json={"interview_id": interview_id, "transcript": [{"role": "user", "content": "Hi"}]},
        )

        body = client.get("/api/profile/analytics", headers=headers).json()
        assert body["totalInterviews"] == 1
        assert body["averageScore"] == 60
        assert body["techStackFrequency"] == [{"name": "React", "count": 1}, {"name": "Redux", "count": 1}]
        assert body["skillData"][0]["value"] == 60


class TestProductFeedback:
    def test_submit_and_list(self, client, user_factory):
        _, headers = user_factory()
        response = client.post(
            "/api/user-feedback",
            headers=headers,
            json={"type": "bug", "title": "Mic stops", "description": "The call drops after a minute"},
        )
        assert response.status_code == 201
        assert response.json()["feedback"]["status"] == "open"

        listed = client.get("/api/user-feedback", headers=headers).json()["feedback"]
        assert [f["title"] for f in listed] == ["Mic stops"]

    def test_rejects_unknown_type(self, client, user_factory):
        _, headers = user_factory()
        response = client.post(
            "/api/user-feedback",
            headers=headers,
            json={"type": "praise", "title": "Nice", "description": "Great"},
        )
        assert response.status_code == 422


def test_last_login_is_not_rewritten_on_every_request(client, user_factory):
    from careerpilot.database import AsyncSessionLocal
    from careerpilot.models.user import User

    recent = datetime.utcnow() - timedelta(minutes=1)
    user_id, headers = user_factory(last_login=recent)
    client.get("/api/auth/me", headers=headers)

    async def load():
        async with AsyncSessionLocal() as session:
            return await session.get(User, user_id)

    assert run(load()).last_login == recent
