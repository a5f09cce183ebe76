"""
Test configuration and fixtures.
Settings are read from the environment at import time, so the test
environment is pinned before anything from guruchat is imported.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["OPENAI_API_KEY"] = "test-openai-key"
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import re

import pytest
from langchain_core.messages import AIMessageChunk
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from guruchat.db import Base, get_db, get_session_factory
from guruchat.deps import get_chat_model
from guruchat.models import User, Guru
from guruchat.auth import get_password_hash

# Test database URL (in-memory SQLite)
SQLALCHEMY_DATABASE_URL = "sqlite://"

# Create test engine
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Create test session
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

DEFAULT_REPLY = "Hello there, seeker. Ask me anything."


class FakeStreamingChatModel:
    """Stands in for ChatOpenAI: records every call and streams a canned reply word by word."""

    def __init__(self, reply: str = DEFAULT_REPLY, fail_after: int = None):
        self.reply = reply
        self.fail_after = fail_after
        self.calls = []

    async def astream(self, messages, **kwargs):
        self.calls.append(messages)
        for index, token in enumerate(re.findall(r"\S+\s*", self.reply)):
            if self.fail_after is not None and index >= self.fail_after:
                raise RuntimeError("provider connection reset")
            yield AIMessageChunk(content=token)


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def fake_model():
    return FakeStreamingChatModel()


@pytest.fixture(scope="function")
def client(db_session, fake_model):
    """Create a test client with database and model overrides."""
    from fastapi.testclient import TestClient
    from guruchat.main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal
    app.dependency_overrides[get_chat_model] = lambda: fake_model
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def user(db_session):
    """Create a registered user for testing."""
    user = User(
        email="alice@test.com",
        name="Alice Test",
        password_hash=get_password_hash("password123"),
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def other_user(db_session):
    user = User(
        email="bob@test.com",
        name="Bob Test",
        password_hash=get_password_hash("password456"),
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def guru(db_session):
    guru = Guru(
        name="Simon Sinek",
        description="Curious and inspiring, focusing on leadership and purpose.",
        system_prompt="You are Simon Sinek. Start with why.",
    )
    db_session.add(guru)
    db_session.commit()
    db_session.refresh(guru)
    return guru


@pytest.fixture
def second_guru(db_session):
    guru = Guru(
        name="Jocko Willink",
        description="Direct and disciplined, focusing on leadership and discipline.",
        system_prompt="You are Jocko Willink. Discipline equals freedom.",
    )
    db_session.add(guru)
    db_session.commit()
    db_session.refresh(guru)
    return guru


@pytest.fixture
def auth_client(client, user):
    """Test client carrying alice's session cookie."""
    response = client.post(
        "/api/auth/login",
        json={"email": "alice@test.com", "password": "password123"}
    )
    assert response.status_code == 200
    return client
