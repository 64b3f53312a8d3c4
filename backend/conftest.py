import os
import sys
from datetime import datetime
from pathlib import Path
from types import SimpleNamespace

# Configuration is read at import time, so the environment is seeded before any app import
os.environ.setdefault("GEMINI_API_KEY", "test_gemini_key")
os.environ.setdefault("JWT_SECRET_KEY", "test_jwt_secret")
os.environ.setdefault("ADMIN_EMAILS", "admin@example.com")
os.environ.setdefault("REVENUECAT_WEBHOOK_SECRET", "test_webhook_secret")
os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017/veritas_test")

sys.path.insert(0, str(Path(__file__).parent))

import mongomock
import pytest
from fastapi.testclient import TestClient

from app.core import dependencies
from app.core.exceptions import UpstreamUnavailable
from app.repository.fact_check_repository import FactCheckRepository
from app.repository.settings_repository import SettingsRepository
from app.repository.user_repository import UserRepository
from app.services.gemini_service import ReasoningReply
from app.services.source_attributor import Citation

FALSE_CLAIM_REPLY = (
    "FALSE\n"
    "CONFIDENCE: 92\n"
    "This claim is fabricated.\n"
    "\n"
    "Detailed refutation text.\n"
    "\n"
    "SOURCES_DETAILS:\n"
    "- https://news.example/x : News Example | Confirms fabrication"
)


class FakeReasoningService:
    """Stands in for GeminiService: returns a canned reply or raises."""

    def __init__(self, text=FALSE_CLAIM_REPLY, citations=None, error=None):
        self.text = text
        self.citations = citations if citations is not None else [Citation(url="https://news.example/x", title="news.example")]
        self.error = error
        self.requests = []

    def generate(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return ReasoningReply(text=self.text, citations=list(self.citations))


@pytest.fixture
def mongo_db():
    return mongomock.MongoClient()["veritas_test"]


@pytest.fixture
def user_repository(mongo_db):
    repository = UserRepository(mongo_db["users"])
    repository.ensure_indexes()
    return repository


@pytest.fixture
def settings_repository(mongo_db):
    return SettingsRepository(mongo_db["settings"])


@pytest.fixture
def fact_check_repository(mongo_db):
    return FactCheckRepository(mongo_db["fact_checks"])


@pytest.fixture
def fake_reasoning():
    return FakeReasoningService()


@pytest.fixture
def failing_reasoning():
    return FakeReasoningService(error=UpstreamUnavailable("timeout"))


@pytest.fixture
def fixed_now():
    return datetime(2025, 3, 14, 15, 30, 0)


@pytest.fixture
def test_client(user_repository, settings_repository, fact_check_repository, fake_reasoning):
    """TestClient wired to mongomock collections and a fake reasoning service."""
    import main

    overrides = {
        dependencies.get_user_repository: lambda: user_repository,
        dependencies.get_settings_repository: lambda: settings_repository,
        dependencies.get_fact_check_repository: lambda: fact_check_repository,
        dependencies.get_reasoning_service: lambda: fake_reasoning,
    }
    main.app.dependency_overrides.update(overrides)
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


@pytest.fixture
def make_user(user_repository):
    """Create a user and return (user_id, auth headers)."""
    token_service = dependencies.get_token_service()

    def _make_user(email="reader@example.com", name="Reader", **fields):
        user_doc = user_repository.create_user(name=name, email=email, password_hash="x")
        if fields:
            user_repository.collection.update_one({"_id": user_doc["_id"]}, {"$set": fields})
        user_id = str(user_doc["_id"])
        token = token_service.create_access_token(user_id, email)
        return user_id, {"Authorization": f"Bearer {token}"}

    return _make_user


@pytest.fixture
def sample_grounding_response():
    """Shape of a google-genai response carrying grounding chunks."""
    chunks = [
        SimpleNamespace(web=SimpleNamespace(uri="https://vertexaisearch.cloud.google.com/grounding-api-redirect/abc", title="reuters.com")),
        SimpleNamespace(web=None),
        SimpleNamespace(web=SimpleNamespace(uri="https://apnews.com/article/1", title=None)),
    ]
    candidate = SimpleNamespace(grounding_metadata=SimpleNamespace(grounding_chunks=chunks))
    return SimpleNamespace(text=FALSE_CLAIM_REPLY, candidates=[candidate])
