"""
API Endpoint Tests

Tests for the FastAPI endpoints and the error envelope, with provider
replies served by the fake server.

Test Categories:
1. TestInfoEndpoints - /, /health, /config, /status
2. TestChatEndpoint - Raw dispatch and session round trip
3. TestTaskEndpoints - Task endpoints
4. TestScoreEndpoints - Scoring helpers
5. TestErrorHandling - Dispatcher errors mapped to HTTP
"""

from fixtures import (
    APTITUDE_OUTPUT,
    FEEDBACK_OUTPUT,
    RESUME_OUTPUT,
    FakeServer,
    gemini_error,
    gemini_reply,
)


class TestInfoEndpoints:
    """Tests for service information endpoints."""

    def test_root(self, test_client):
        response = test_client.get("/")

        assert response.status_code == 200
        assert response.json()["name"] == "Interview Coach"

    def test_health_single_key_is_degraded(self, test_client):
        """One key means no failover."""
        response = test_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "degraded"
        assert data["service"] == "interview-coach"
        names = {c["name"] for c in data["components"]}
        assert names == {"proxy", "general_keys", "document_keys"}

    def test_health_without_transport_is_unhealthy(self, use_keys, test_client):
        use_keys()

        assert test_client.get("/health").json()["status"] == "unhealthy"

    def test_config_hides_keys(self, test_client):
        response = test_client.get("/config")

        assert response.status_code == 200
        assert "test-key-not-real" not in response.text
        assert response.json()["api_keys_configured"] == {"general": 1, "document": 1}

    def test_status(self, use_keys, test_client):
        use_keys("k0", "k1", "k2")

        data = test_client.get("/status").json()

        assert data["keys_configured"] == 3
        assert data["failover"] is True
        assert data["proxy_configured"] is False


class TestChatEndpoint:
    """Tests for POST /chat."""

    def test_chat_returns_text_and_session(self, use_keys, test_client, fake_server: FakeServer):
        use_keys("k0", "k1", "k2")
        fake_server.gemini = [gemini_reply("hello")]

        response = test_client.post(
            "/chat",
            json={
                "messages": [
                    {"role": "system", "content": "Be terse."},
                    {"role": "user", "content": "Hi"},
                ],
                "max_tokens": 50,
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["text"] == "hello"
        assert data["transport"] == "gemini"
        assert data["key_index"] == 1
        assert data["session"] == {"key_indexes": {"general": 1}}

    def test_session_is_honored(self, use_keys, test_client, fake_server: FakeServer):
        use_keys("k0", "k1", "k2")
        fake_server.gemini = [gemini_reply("hello")]

        test_client.post(
            "/chat",
            json={
                "messages": [{"role": "user", "content": "Hi"}],
                "session": {"key_indexes": {"general": 2}},
            },
        )

        assert fake_server.keys_used() == ["k2"]

    def test_empty_messages_is_translation_error(self, test_client):
        response = test_client.post("/chat", json={"messages": []})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "TRANSLATION_ERROR"

    def test_bad_temperature_is_validation_error(self, test_client):
        response = test_client.post(
            "/chat",
            json={"messages": [{"role": "user", "content": "Hi"}], "temperature": 3},
        )

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["field"] == "body.temperature"


class TestTaskEndpoints:
    """Tests for the task endpoints."""

    def test_aptitude_questions(self, test_client, fake_server: FakeServer):
        fake_server.gemini = [gemini_reply(APTITUDE_OUTPUT)]

        response = test_client.post(
            "/aptitude/questions", json={"company": "Google", "role": "SRE"}
        )

        assert response.status_code == 200
        data = response.json()
        assert len(data["questions"]) == 2
        assert data["session"]["key_indexes"] == {"general": 0}

    def test_coding_evaluate(self, test_client, fake_server: FakeServer):
        fake_server.gemini = [gemini_reply('{"is_correct": true, "feedback": "ok"}')]

        response = test_client.post(
            "/coding/evaluate",
            json={
                "title": "Add",
                "description": "Add two numbers",
                "test_cases": [{"input": "1 2", "expected_output": "3"}],
                "code": "def add(a, b): return a + b",
            },
        )

        assert response.status_code == 200
        assert response.json()["evaluation"]["score"] == 100

    def test_interview_reply(self, test_client, fake_server: FakeServer):
        fake_server.gemini = [gemini_reply("Tell me about a hard bug you fixed.")]

        response = test_client.post(
            "/interview/reply",
            json={
                "company": "Google",
                "role": "SRE",
                "message": "I enjoy debugging",
                "history": [
                    {"role": "assistant", "content": "Hi!"},
                    {"role": "user", "content": "Hello"},
                    {"role": "assistant", "content": "Why Google?"},
                ],
                "resume": "5 years of Go",
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["reply"] == "Tell me about a hard bug you fixed."
        assert data["stage"] == "BEHAVIORAL QUESTIONS"
        text = FakeServer.body(fake_server.gemini_calls[0])["contents"][-1]["parts"][0]["text"]
        assert "Resume Summary: 5 years of Go" in text

    def test_resume_analyze(self, test_client, fake_server: FakeServer):
        fake_server.gemini = [gemini_reply(RESUME_OUTPUT)]

        response = test_client.post("/resume/analyze", json={"text": "Jane Doe, engineer"})

        assert response.status_code == 200
        assert response.json()["analysis"]["companies"] == ["Acme"]

    def test_resume_whitespace_rejected(self, test_client):
        response = test_client.post("/resume/analyze", json={"text": "   "})

        assert response.status_code == 422

    def test_final_feedback(self, test_client, fake_server: FakeServer):
        fake_server.gemini = [gemini_reply(FEEDBACK_OUTPUT)]

        response = test_client.post(
            "/feedback/final",
            json={
                "company": "Google",
                "role": "SRE",
                "scores": {"aptitude": 80, "coding": 67, "interview": 72},
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["feedback"]["overall_score"] == 73
        assert data["badge"] == "Good"

    def test_final_feedback_degraded(self, test_client, fake_server: FakeServer):
        """Provider failure still returns 200 with the basic report."""
        fake_server.gemini = [gemini_error(503, "The model is overloaded.", "UNAVAILABLE")]

        response = test_client.post(
            "/feedback/final",
            json={
                "company": "Google",
                "role": "SRE",
                "scores": {"aptitude": 90, "coding": 90, "interview": 90},
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["feedback"]["degraded"] is True
        assert data["badge"] == "Excellent"


class TestScoreEndpoints:
    """Tests for the scoring endpoints."""

    def test_aptitude_score(self, test_client):
        response = test_client.post(
            "/scores/aptitude",
            json={"correct_answers": ["A", "B"], "selected_answers": {"0": "A) 4"}},
        )

        assert response.json() == {"score": 50, "badge": "Needs Improvement"}

    def test_coding_score(self, test_client):
        response = test_client.post("/scores/coding", json={"results": [True, True, True]})

        assert response.json() == {"score": 100, "badge": "Excellent"}

    def test_interview_score(self, test_client):
        response = test_client.post(
            "/scores/interview", json={"user_replies": [" ".join(["word"] * 15)] * 5}
        )

        assert response.json() == {"score": 80, "badge": "Very Good"}


class TestErrorHandling:
    """Dispatcher errors mapped to statuses and the error envelope."""

    def test_quota_exhausted_is_429_with_retry_after(self, test_client, fake_server: FakeServer):
        fake_server.gemini = [gemini_error(429, "Quota exceeded. Please retry in 7s.")]

        response = test_client.post(
            "/aptitude/questions", json={"company": "Google", "role": "SRE"}
        )

        assert response.status_code == 429
        error = response.json()["error"]
        assert error["code"] == "RATE_LIMITED"
        assert error["retry_after_seconds"] == 8.0
        assert response.headers["retry-after"] == "8"

    def test_network_failure_is_503(self, test_client, fake_server: FakeServer):
        fake_server.gemini = [gemini_error(503, "Service Unavailable")]

        response = test_client.post("/coding/problems", json={"company": "Google", "role": "SRE"})

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "SERVICE_UNAVAILABLE"

    def test_not_configured_is_503(self, use_keys, test_client):
        use_keys()

        response = test_client.post("/coding/problems", json={"company": "Google", "role": "SRE"})

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "NOT_CONFIGURED"

    def test_terminal_provider_error_is_502(self, test_client, fake_server: FakeServer):
        fake_server.gemini = [gemini_error(400, "Invalid JSON payload received.")]

        response = test_client.post("/chat", json={"messages": [{"role": "user", "content": "x"}]})

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "PROVIDER_ERROR"

    def test_unparseable_output_is_502(self, test_client, fake_server: FakeServer):
        fake_server.gemini = [gemini_reply("no json, sorry")]

        response = test_client.post("/resume/analyze", json={"text": "Jane"})

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "PARSE_ERROR"

    def test_missing_text_is_502(self, test_client, fake_server: FakeServer):
        fake_server.gemini = [gemini_reply("")]

        response = test_client.post("/chat", json={"messages": [{"role": "user", "content": "x"}]})

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "RESPONSE_SHAPE_ERROR"
