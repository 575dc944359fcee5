"""Shared test fixtures and configuration for pytest."""

from typing import Any, List, Optional

import pytest
from fastapi.testclient import TestClient

from study_companion.config import Settings
from study_companion.main import create_app
from study_companion.models.schemas import StudyPlan
from study_companion.services.database_service import DatabaseService
from study_companion.services.llm_service import LLMService
from study_companion.services.storage_backend import MemoryStorageBackend
from study_companion.services.study_storage import StudyStorage


class FakeMessage:
    def __init__(self, content: Any):
        self.content = content


class FakeChatModel:
    """Stands in for the Gemini chat model; records prompts and replays a canned reply."""

    def __init__(self, reply: Any = "Generated content", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.prompts: List[str] = []

    def invoke(self, prompt: str) -> FakeMessage:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return FakeMessage(self.reply)


@pytest.fixture
def settings(tmp_path, monkeypatch) -> Settings:
    """Settings isolated from the developer's environment."""
    for name in ("GEMINI_API_KEY", "GOOGLE_API_KEY", "SENTRY_DSN", "STORAGE_BACKEND", "DATABASE_URL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'test.db'}")
    return Settings()


@pytest.fixture
def fake_llm() -> FakeChatModel:
    return FakeChatModel()


@pytest.fixture
def llm_service(fake_llm: FakeChatModel) -> LLMService:
    return LLMService(api_key="test-key", llm=fake_llm)


@pytest.fixture
def storage() -> StudyStorage:
    return StudyStorage(MemoryStorageBackend())


@pytest.fixture
def database(settings: Settings) -> DatabaseService:
    db = DatabaseService(settings.database_url)
    yield db
    db.dispose()


@pytest.fixture
def sample_plan() -> StudyPlan:
    return StudyPlan(subject="Chemistry", topics=["Atoms", "Bonds", "Reactions"], exam_date_time="2030-06-01T09:00:00")


@pytest.fixture
def client(settings, llm_service, storage, database) -> TestClient:
    """Test client with a configured (fake) model."""
    app = create_app(settings=settings, llm_service=llm_service, storage=storage, database=database)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def unconfigured_client(settings, storage, database) -> TestClient:
    """Test client with no Gemini key configured."""
    app = create_app(settings=settings, storage=storage, database=database)
    with TestClient(app) as test_client:
        yield test_client
