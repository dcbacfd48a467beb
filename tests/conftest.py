import copy
import json

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from relatify.completion_client import CompletionClient, get_completion_client
from relatify.db import Base, get_db
from relatify.main import app
from relatify.preferences import preference_cache

SAMPLE_EXPLANATION = {
    "simple": "Plants turn light, water and carbon dioxide into sugar and oxygen.",
    "analogy": "Like a kitchen where sunlight is the stove and glucose is the dish.",
    "stepByStep": [
        "Leaves absorb sunlight with chlorophyll.",
        "Roots pull in water.",
        "Carbon dioxide enters through stomata.",
        "The plant builds glucose and releases oxygen.",
    ],
    "visualModel": "Picture a leaf as a tiny solar-powered factory.",
    "deeperDive": "Light reactions happen in the thylakoids; the Calvin cycle fixes carbon.",
    "realWorld": ["Crop farming", "Greenhouses", "Oxygen in the air we breathe"],
    "practiceQuestions": [
        "Why do plants need sunlight?",
        "Where does the oxygen come from?",
        "What happens at night?",
    ],
    "quiz": [
        {"question": "What gas do plants absorb?", "options": ["A. O2", "B. CO2", "C. N2", "D. He"], "correctAnswer": 1},
        {"question": "Where does it happen?", "options": ["A. Roots", "B. Stem", "C. Chloroplasts", "D. Flowers"], "correctAnswer": 2},
        {"question": "What is produced?", "options": ["A. Glucose", "B. Salt", "C. Iron", "D. Protein"], "correctAnswer": 0},
    ],
}


class FakeAI:
    """Stands in for the chat-completion endpoint via httpx.MockTransport."""

    def __init__(self):
        self.requests = []
        self._responses = []

    def reply(self, content, status=200):
        self._responses.append(httpx.Response(status, json={"choices": [{"message": {"role": "assistant", "content": content}}]}))

    def reply_json(self, obj):
        self.reply(json.dumps(obj))

    def reply_raw(self, response):
        self._responses.append(response)

    def fail(self, status=500, text="upstream exploded"):
        self._responses.append(httpx.Response(status, text=text))

    def handler(self, request):
        self.requests.append(request)
        if self._responses:
            return self._responses.pop(0)
        return httpx.Response(200, json={"choices": [{"message": {"content": json.dumps(SAMPLE_EXPLANATION)}}]})

    @property
    def payloads(self):
        return [json.loads(r.content) for r in self.requests]

    def make_client(self):
        return CompletionClient(
            api_key="test-key",
            base_url="https://ai.test/v1",
            model="test-model",
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture
def sample_explanation():
    return copy.deepcopy(SAMPLE_EXPLANATION)


@pytest.fixture
def fake_ai():
    return FakeAI()


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def _clear_preference_cache():
    preference_cache.clear()
    yield
    preference_cache.clear()


@pytest.fixture
def client(session_factory, fake_ai):
    def override_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    async def override_completion_client():
        ai = fake_ai.make_client()
        try:
            yield ai
        finally:
            await ai.aclose()

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_completion_client] = override_completion_client
    yield TestClient(app)
    app.dependency_overrides.clear()


def register(client, email="learner@example.com", password="secret123", username=None):
    body = {"email": email, "password": password}
    if username:
        body["username"] = username
    resp = client.post("/auth/register", json=body)
    assert resp.status_code == 201, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def onboard(client, headers, interests=("Cooking",), learning_style=None):
    resp = client.post(
        "/onboarding/complete",
        json={"interests": list(interests), "learning_style": learning_style},
        headers=headers,
    )
    assert resp.status_code == 200, resp.text
    return resp


@pytest.fixture
def auth_headers(client):
    return register(client)


@pytest.fixture
def ready_headers(client, auth_headers):
    onboard(client, auth_headers)
    return auth_headers
