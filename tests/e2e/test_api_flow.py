"""
End-to-End Tests for the REST API

Runs the FastAPI app in-process with a memory-backed tutor and the mock
completion client.
"""

import pytest
import sys
import os

from fastapi.testclient import TestClient

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "sveti_tutor", "src"))
sys.path.insert(0, os.path.join(project_root, "backend"))

from main import app, get_tutor
from sveti_tutor.completion_client import MockCompletionClient
from sveti_tutor.config import TutorSettings
from sveti_tutor.personalization_gate import CLARIFYING_QUESTION
from sveti_tutor.storage import InMemoryStorage
from sveti_tutor.tutor import SvetiTutor


async def no_sleep(seconds):
    return None


class TestApiFlow:

    @pytest.fixture
    def tutor(self):
        return SvetiTutor(
            storage=InMemoryStorage(),
            client=MockCompletionClient(),
            settings=TutorSettings(storage_backend="memory"),
            sleep=no_sleep
        )

    @pytest.fixture
    def client(self, tutor):
        app.dependency_overrides[get_tutor] = lambda: tutor
        yield TestClient(app)
        app.dependency_overrides.clear()

    def test_health(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_catalogue(self, client):
        subjects = client.get("/api/subjects").json()["subjects"]
        styles = client.get("/api/learning-styles").json()["learning_styles"]

        assert [s["id"] for s in subjects] == ["algebra", "ela"]
        assert len(styles) == 5
        assert {"id", "name", "description", "prompt_modifier"} <= set(styles[0])

    def test_chat_and_history(self, client):
        response = client.post("/api/chat", json={"content": "How do I solve 2x + 3 = 7?"})

        assert response.status_code == 200
        body = response.json()
        assert body["subject"] == "algebra"
        assert body["action"] == "pass_through"
        assert body["error"] is False
        assert body["is_loading"] is False
        assert body["user_message"]["content"] == "How do I solve 2x + 3 = 7?"
        assert len(body["replies"]) == 1
        assert "displayTime" in body["replies"][0]

        history = client.get("/api/conversations/algebra").json()
        assert len(history["messages"]) == 2
        assert history["suggest_clear"] is False

    def test_third_message_gets_clarifying_question(self, client):
        for text in ("one", "two"):
            client.post("/api/chat", json={"content": text})
        body = client.post("/api/chat", json={"content": "three"}).json()

        assert body["action"] == "ask"
        assert body["replies"][0]["content"] == CLARIFYING_QUESTION

        state = client.get("/api/state").json()
        assert state["personalization"]["stage"] == "awaiting_reply"

    def test_chat_switches_subject(self, client, tutor):
        body = client.post("/api/chat", json={"content": "Check my grammar", "subject": "english"}).json()

        assert body["subject"] == "ela"
        assert tutor.subject == "ela"
        assert client.get("/api/conversations/algebra").json()["messages"] == []

    def test_unknown_subject(self, client):
        assert client.get("/api/conversations/chemistry").status_code == 404
        assert client.post("/api/chat", json={"content": "hi", "subject": "chemistry"}).status_code == 404

    def test_learning_style(self, client):
        response = client.put("/api/learning-style", json={"learning_style": "examples"})
        assert response.status_code == 200
        assert client.get("/api/state").json()["learning_style"] == "examples"

        assert client.put("/api/learning-style", json={"learning_style": "telepathy"}).status_code == 422

    def test_clear_conversation(self, client):
        client.post("/api/chat", json={"content": "hello"})

        response = client.delete("/api/conversations/algebra")

        assert response.status_code == 200
        assert client.get("/api/conversations/algebra").json()["messages"] == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
