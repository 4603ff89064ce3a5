import os

# Must be set before storedesk modules read their configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import storedesk.db as db
from storedesk.auth import hash_password
from storedesk.main import app
from storedesk.models import Base, Staff, Store, User
from storedesk.rate_limit import limiter

# Test owner credentials
OWNER_EMAIL = "owner@example.com"
OWNER_PASSWORD = "ownerpass123"
STRANGER_EMAIL = "stranger@example.com"
STRANGER_PASSWORD = "strangerpass123"
STORELESS_EMAIL = "nostore@example.com"
STORELESS_PASSWORD = "nostorepass123"

# Low iteration count keeps per-request auth cheap in tests
TEST_HASH_ITERATIONS = 1000


@pytest.fixture(autouse=True)
def no_openai(monkeypatch):
    """LLM tiers stay off unless a test opts in by mocking llm_client."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)


@pytest.fixture
def session_factory():
    """In-memory SQLite database shared by the app and the test.

    Uses StaticPool so all connections share the same in-memory database.
    Seeds an owner with a store and a staff record, a second owner with
    their own store, and a user who owns no store.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    # Patch the db module used by the app
    db.engine = engine
    db.SessionLocal = TestingSessionLocal

    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    owner = User(email=OWNER_EMAIL, name="Owner", password_hash=hash_password(OWNER_PASSWORD, iterations=TEST_HASH_ITERATIONS))
    stranger = User(email=STRANGER_EMAIL, name="Stranger", password_hash=hash_password(STRANGER_PASSWORD, iterations=TEST_HASH_ITERATIONS))
    storeless = User(email=STORELESS_EMAIL, name="Nobody", password_hash=hash_password(STORELESS_PASSWORD, iterations=TEST_HASH_ITERATIONS))
    session.add_all([owner, stranger, storeless])
    session.flush()

    session.add(Store(id="store-1", owner_id=owner.id, name="Test Shop", chatbot_settings={}, shipping_settings={}))
    session.add(Store(id="store-2", owner_id=stranger.id, name="Other Shop", chatbot_settings={}, shipping_settings={}))
    session.add(Staff(id="staff-1", store_id="store-1", user_id=owner.id, name="Bold", role="manager"))
    session.commit()
    session.close()

    yield TestingSessionLocal

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    """A session on the test database for arranging data and checking results."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    """Shared FastAPI TestClient bound to the in-memory database."""
    def override_get_db():
        db_sess = session_factory()
        try:
            yield db_sess
        finally:
            db_sess.close()

    app.dependency_overrides[db.get_db] = override_get_db
    limiter.enabled = False

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def owner_auth():
    """HTTP Basic Auth tuple for the owner of store-1."""
    return (OWNER_EMAIL, OWNER_PASSWORD)


@pytest.fixture
def stranger_auth():
    """HTTP Basic Auth tuple for the owner of store-2."""
    return (STRANGER_EMAIL, STRANGER_PASSWORD)


@pytest.fixture
def storeless_auth():
    """HTTP Basic Auth tuple for a user who owns no store."""
    return (STORELESS_EMAIL, STORELESS_PASSWORD)
