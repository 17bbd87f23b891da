"""Shared fixtures: in-memory SQLite, fake provider adapters, TestClient with overrides."""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import Settings, get_settings
from app.database import Base, enable_sqlite_foreign_keys, get_db
import app.models  # noqa: F401 - register all models with Base
from app.models.user import User
from app.services.chat_router import ChatRouter
from app.services.model_registry import Provider
from tests.fakes import FakeAdapter

# StaticPool: every connection shares the same in-memory DB
TEST_ENGINE = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(TEST_ENGINE)
TestSession = sessionmaker(bind=TEST_ENGINE, autoflush=False, expire_on_commit=False)


@pytest.fixture(autouse=True)
def _setup_db():
    """Create all tables before each test, drop after."""
    Base.metadata.create_all(bind=TEST_ENGINE)
    yield
    Base.metadata.drop_all(bind=TEST_ENGINE)


@pytest.fixture
def db():
    session = TestSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def user(db):
    u = User(id="user_alice", email="alice@example.com", name="Alice")
    db.add(u)
    db.commit()
    return u


@pytest.fixture
def other_user(db):
    u = User(id="user_bob", email="bob@example.com", name="Bob")
    db.add(u)
    db.commit()
    return u


@pytest.fixture
def anthropic_adapter():
    return FakeAdapter(Provider.ANTHROPIC)


@pytest.fixture
def openai_adapter():
    return FakeAdapter(Provider.OPENAI)


@pytest.fixture
def chat_router(anthropic_adapter, openai_adapter):
    return ChatRouter({Provider.ANTHROPIC: anthropic_adapter, Provider.OPENAI: openai_adapter})


@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        allow_unauthenticated=True,
        dev_user_id="user_alice",
        auth_jwt_secret="test-secret",
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret="whsec_test",
        stripe_price_pro="price_pro",
    )


@pytest.fixture
def app(db, chat_router, test_settings):
    from app.main import app as _app
    from app.routers.chat import get_chat_router

    def _override_get_db():
        yield db

    _app.dependency_overrides[get_db] = _override_get_db
    _app.dependency_overrides[get_chat_router] = lambda: chat_router
    _app.dependency_overrides[get_settings] = lambda: test_settings
    yield _app
    _app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)
