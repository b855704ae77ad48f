"""
Tests for the HTTP routes, driven through FastAPI's TestClient.
"""

from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from petpulse.app import create_app
from petpulse.errors import MalformedOutput, UpstreamUnavailable
from tests.conftest import FakeGateway, make_issue, make_plan


@pytest.fixture
def client_factory(settings):
    def factory(*responses, app_settings=None):
        gateway = FakeGateway(*responses)
        app = create_app(app_settings or settings, gateway=gateway)
        return TestClient(app), gateway

    return factory


class TestTipsRoute:
    def test_success(self, client_factory):
        raw = {
            "title": "What might be going on",
            "intro": "Some possibilities.",
            "disclaimer": "Not a diagnosis.",
            "issues": [make_issue(3), make_issue(1), make_issue(2)],
        }
        client, _ = client_factory(raw)

        response = client.post("/tips", json={"profile": {"species": "dog", "ageYears": 3}, "symptoms": "vomiting"})

        assert response.status_code == 200
        body = response.json()
        assert [issue["rank"] for issue in body["issues"]] == [1, 2, 3]
        assert set(body) == {"title", "intro", "issues", "disclaimer"}

    def test_missing_symptoms_is_400(self, client_factory):
        client, gateway = client_factory()
        response = client.post("/tips", json={"profile": {}, "symptoms": "   "})
        assert response.status_code == 400
        assert response.json() == {"error": "Missing symptoms"}
        assert gateway.calls == []

    def test_empty_body_is_400(self, client_factory):
        client, _ = client_factory()
        response = client.post("/tips", json={})
        assert response.status_code == 400

    def test_upstream_unavailable_is_503(self, client_factory):
        client, _ = client_factory(UpstreamUnavailable("Generative service unavailable"))
        response = client.post("/tips", json={"symptoms": "vomiting"})
        assert response.status_code == 503
        assert "error" in response.json()

    def test_malformed_output_is_502(self, client_factory):
        client, _ = client_factory(MalformedOutput("Generative service returned invalid JSON"))
        response = client.post("/tips", json={"symptoms": "vomiting"})
        assert response.status_code == 502


class TestConfirmRoute:
    def test_success(self, client_factory):
        raw = {
            "selected_issue_title": "Possible sprain",
            "questions": [
                {"id": "q1", "text": "Is the leg swollen?", "type": "yes_no", "options": []},
                {"id": "q2", "text": "Since when?", "type": "short_text", "options": []},
            ],
        }
        client, _ = client_factory(raw)

        response = client.post(
            "/confirm", json={"symptoms": "limping", "selected_issue_title": "Possible sprain"}
        )

        assert response.status_code == 200
        assert len(response.json()["questions"]) == 2

    def test_missing_issue_is_400(self, client_factory):
        client, _ = client_factory()
        response = client.post("/confirm", json={"symptoms": "limping"})
        assert response.status_code == 400


class TestPlanRoute:
    def test_round_two_upstream_failure_returns_safe_plan(self, client_factory):
        client, _ = client_factory(UpstreamUnavailable("down"))

        response = client.post(
            "/plan",
            json={"symptoms": "vomiting", "selected_issue_title": "Possible upset stomach", "round": 2},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["result_type"] == "PLAN"
        assert body["urgency"] == "MONITOR_24H"
        assert all(body[key] for key in ("why", "do_now", "avoid", "red_flags"))

    def test_round_one_need_more_info(self, client_factory):
        raw = {
            "result_type": "NEED_MORE_INFO",
            "reason": "Need frequency.",
            "questions": [{"id": "q1", "text": "How often?", "type": "short_text", "options": []}],
        }
        client, _ = client_factory(raw)

        response = client.post(
            "/plan",
            json={"symptoms": "vomiting", "selected_issue_title": "Possible upset stomach", "round": 1},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["result_type"] == "NEED_MORE_INFO"
        assert body["selected_issue_title"] == "Possible upset stomach"

    def test_plan_passes_through(self, client_factory):
        client, _ = client_factory(make_plan())
        response = client.post(
            "/plan", json={"symptoms": "vomiting", "selected_issue_title": "Possible upset stomach"}
        )
        assert response.status_code == 200
        assert response.json()["urgency"] == "HOME"

    def test_invalid_round_is_400(self, client_factory):
        client, _ = client_factory()
        response = client.post(
            "/plan", json={"symptoms": "vomiting", "selected_issue_title": "Possible upset stomach", "round": 3}
        )
        assert response.status_code == 400
        assert response.json() == {"error": "round must be 1 or 2"}


class TestAppPlumbing:
    def test_health(self, client_factory):
        client, _ = client_factory()
        assert client.get("/health").json() == {"status": "ok"}

    def test_oversized_body_is_413(self, client_factory, settings):
        client, gateway = client_factory(app_settings=replace(settings, max_body_bytes=100))
        response = client.post("/tips", json={"symptoms": "x" * 500})
        assert response.status_code == 413
        assert gateway.calls == []

    def test_oversized_chunked_body_is_413(self, client_factory, settings):
        client, gateway = client_factory(app_settings=replace(settings, max_body_bytes=100))
        chunks = iter([b'{"symptoms": "', b"x" * 500, b'"}'])
        response = client.post("/tips", content=chunks, headers={"Content-Type": "application/json"})
        assert response.status_code == 413
        assert gateway.calls == []

    def test_small_chunked_body_reaches_the_route(self, client_factory, settings):
        client, gateway = client_factory(app_settings=replace(settings, max_body_bytes=100))
        chunks = iter([b'{"symptoms": ', b'"   "}'])
        response = client.post("/tips", content=chunks, headers={"Content-Type": "application/json"})
        assert response.status_code == 400
        assert response.json() == {"error": "Missing symptoms"}
        assert gateway.calls == []

    def test_missing_api_key_fails_at_startup(self, settings):
        with pytest.raises(ValueError):
            create_app(replace(settings, gemini_api_key=""))
