import os
import sys
import types

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Configure before the app module reads its settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("LLM_API_KEY", "test-key")

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../backend")))
from main import app
from database import Base, get_db
from deps import get_identity_provider, get_llm_provider
from errors import UpstreamError


class FakeLLM:
    """Stands in for the model provider; records every call it receives."""

    def __init__(self):
        self.calls = []
        self.fail = False

    async def generate(self, prompt, history):
        self.calls.append({"prompt": prompt, "history": [dict(m) for m in history]})
        if self.fail:
            raise UpstreamError("The AI provider is unavailable")
        return f"Answer to: {prompt}"


@pytest.fixture
def engine():
    # StaticPool keeps one in-memory database alive across sessions
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def db_session(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def test_app(engine, fake_llm):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_llm_provider] = lambda: fake_llm
    try:
        yield app
    finally:
        app.dependency_overrides.clear()


def bearer(user_id: str, email: str | None = None) -> dict:
    user = types.SimpleNamespace(id=user_id, email=email or f"{user_id}@example.com")
    return {"Authorization": f"Bearer {get_identity_provider().issue_token(user)}"}
