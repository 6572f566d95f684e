"""Test fixtures for the Baptism Gallery API tests."""
import os
import sys
from datetime import datetime, timedelta
from unittest.mock import MagicMock

# Settings are read at import time, so point them at throwaway values first.
os.environ["DATABASE_URL"] = os.environ.get("TEST_DATABASE_URL", "sqlite://")
os.environ.setdefault("AI_GATEWAY_API_KEY", "test-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text
from sqlalchemy.orm import sessionmaker

# Add repo root to path so imports work
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import Base, engine, get_db, get_session_factory
from dependencies import get_gateway, get_storage_client
from models import Event, MediaRecord, User


def chat_text(content):
    """A chat-completion body whose message carries plain text."""
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def chat_tool(arguments: str, name: str = "analyze_baptism_photo"):
    """A chat-completion body whose message carries one tool call."""
    return {
        "choices": [{
            "message": {
                "role": "assistant",
                "content": None,
                "tool_calls": [{
                    "id": "call_1",
                    "type": "function",
                    "function": {"name": name, "arguments": arguments},
                }],
            }
        }]
    }


class FakeGateway:
    """Scripted stand-in for AIGateway: pops one queued response per chat() call."""

    def __init__(self):
        self.responses = []
        self.calls = []

    def queue(self, *responses):
        self.responses.extend(responses)

    async def chat(self, messages, tools=None, tool_choice=None):
        self.calls.append({"messages": messages, "tools": tools, "tool_choice": tool_choice})
        if not self.responses:
            raise AssertionError("FakeGateway received an unexpected call")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture(scope="session")
def db_engine():
    """Create the schema on the in-memory test database."""
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="session")
def TestingSessionLocal(db_engine):
    """Shared session factory for the test database."""
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(autouse=True)
def clean_tables(db_engine):
    """Truncate all tables between tests for isolation."""
    yield
    with db_engine.connect() as conn:
        conn.execute(text("DELETE FROM photos"))
        conn.execute(text("DELETE FROM events"))
        conn.execute(text("DELETE FROM users"))
        conn.commit()


@pytest.fixture
def db_session(TestingSessionLocal):
    """Create a test database session."""
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def mock_minio():
    """Mock MinIO client that records calls."""
    mock_client = MagicMock()
    mock_client.put_object = MagicMock(return_value=None)
    mock_client.remove_object = MagicMock(return_value=None)
    mock_client.bucket_exists = MagicMock(return_value=True)
    return mock_client


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def app(TestingSessionLocal, mock_minio, fake_gateway):
    """Create a FastAPI test app with overridden dependencies."""

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    from main import app as fastapi_app

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal
    fastapi_app.dependency_overrides[get_storage_client] = lambda: mock_minio
    fastapi_app.dependency_overrides[get_gateway] = lambda: fake_gateway
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """Create a test HTTP client."""
    return TestClient(app)


@pytest.fixture
def admin_user(db_session):
    """Insert an admin user and return the User object."""
    from auth import hash_password
    user = User(
        username="test-admin",
        password_hash=hash_password("testpass"),
        display_name="Test Admin",
        role="admin",
        is_active=True,
        created_at=datetime.utcnow(),
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def admin_client(app, admin_user):
    """TestClient with an admin auth cookie set."""
    from auth import create_access_token
    token = create_access_token({"sub": admin_user.username})
    c = TestClient(app)
    c.cookies.set("access_token", token)
    return c


@pytest.fixture
def event(db_session):
    """Insert one event."""
    e = Event(
        title="Batizado da Maria",
        description="Cerimônia na igreja matriz",
        event_date=datetime(2024, 5, 12).date(),
        location="Igreja Matriz",
    )
    db_session.add(e)
    db_session.commit()
    db_session.refresh(e)
    return e


@pytest.fixture
def insert_media(db_session):
    """Factory that inserts MediaRecord rows; later calls get later upload times."""
    base_time = datetime(2024, 1, 1, 12, 0, 0)
    counter = {"n": 0}

    def _insert(media_id=None, description="Foto de batizado", tags=None,
                media_type="photo", event_id=None, order_index=0, url=None):
        counter["n"] += 1
        record = MediaRecord(
            event_id=event_id,
            url=url or f"http://localhost:9000/baptism-photos/evt/{counter['n']}.jpg",
            media_type=media_type,
            description=description,
            ai_description=description,
            tags=["batizado"] if tags is None else tags,
            order_index=order_index,
            uploaded_at=base_time + timedelta(minutes=counter["n"]),
        )
        if media_id:
            record.id = media_id
        db_session.add(record)
        db_session.commit()
        db_session.refresh(record)
        return record

    return _insert
