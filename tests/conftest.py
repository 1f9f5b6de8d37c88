"""
CiviSure - Test Configuration and Fixtures

Provides async database sessions, test clients for anonymous, citizen and
admin callers, and a stand-in for the legal assistant.
"""

import os
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment BEFORE importing app code
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["DEBUG"] = "true"
os.environ["UPLOAD_DIR"] = str(Path(__file__).parent / "test_uploads")
os.environ["ANTHROPIC_API_KEY"] = ""

from civisure.database import Base, get_db, enable_sqlite_foreign_keys
from civisure.main import app
from civisure.models import User, UserRole, Lawyer
from civisure.assistant import LegalAssistant, AssistantReply, get_assistant
from civisure.auth import hash_password, SESSION_COOKIE_NAME
from civisure.rate_limit import rate_limit_store


TEST_PASSWORD = "TestPassword123"

# Cheap hashes keep the suite fast; verify_password reads the cost from the hash
TEST_HASH_ITERATIONS = 1000


@pytest_asyncio.fixture
async def db():
    """Provide a test database session with fresh tables for each test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        echo=False,
    )
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


def make_client() -> AsyncClient:
    transport = ASGITransport(app=app)
    return AsyncClient(transport=transport, base_url="http://test")


@pytest_asyncio.fixture
async def client(db):
    """Provide an async HTTP test client bound to the test database."""
    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    rate_limit_store.reset()

    async with make_client() as ac:
        yield ac

    app.dependency_overrides.clear()
    rate_limit_store.reset()


async def create_user(db, email, full_name, role=UserRole.USER, phone=None) -> User:
    user = User(
        email=email,
        password_hash=hash_password(TEST_PASSWORD, iterations=TEST_HASH_ITERATIONS),
        full_name=full_name,
        phone=phone,
        role=role,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def login_as(client: AsyncClient, email: str, password: str = TEST_PASSWORD):
    """Log a client in and keep its session cookie."""
    response = await client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    client.cookies.set(SESSION_COOKIE_NAME, response.cookies[SESSION_COOKIE_NAME])
    return response


@pytest_asyncio.fixture
async def test_user(db):
    """A regular citizen account."""
    return await create_user(db, "testuser@example.com", "Test User", phone="+27 82 555 0101")


@pytest_asyncio.fixture
async def admin_user(db):
    """An administrator account."""
    return await create_user(db, "admin@example.com", "Admin User", role=UserRole.ADMIN)


@pytest_asyncio.fixture
async def auth_client(client, test_user):
    """Provide an authenticated test client (logged in as test_user)."""
    await login_as(client, test_user.email)
    return client


@pytest_asyncio.fixture
async def admin_client(client, admin_user):
    """A second client, logged in as admin_user, sharing the test database."""
    async with make_client() as ac:
        await login_as(ac, admin_user.email)
        yield ac


@pytest_asyncio.fixture
async def lawyer(db):
    """A directory entry with no reviews yet."""
    entry = Lawyer(
        full_name="Adv. Priya Naidoo",
        email="priya.naidoo@example.com",
        phone="+27 31 555 0199",
        specialization="Criminal Law",
        experience_years=12,
        education="LLB, University of KwaZulu-Natal",
        bar_registration="KZN/2012/0456",
        office_address="12 Smith Street",
        city="Durban",
        state="KwaZulu-Natal",
        bio="Defends victims of violent crime and police misconduct.",
        consultation_fee=500.0,
    )
    db.add(entry)
    await db.commit()
    await db.refresh(entry)
    return entry


class FakeAssistant(LegalAssistant):
    """Records the conversations it is sent and answers from a script."""

    def __init__(self, answer: str = "You have the right to remain silent."):
        super().__init__(api_key="test-key")
        self.answer = answer
        self.calls = []

    async def reply(self, messages):
        self.calls.append(messages)
        return AssistantReply(text=self.answer, conversation_id="msg_test_001")


@pytest.fixture
def fake_assistant():
    """Replace the Anthropic-backed assistant for the duration of a test."""
    assistant = FakeAssistant()
    app.dependency_overrides[get_assistant] = lambda: assistant
    yield assistant
    app.dependency_overrides.pop(get_assistant, None)


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    """Store evidence uploads in a per-test directory."""
    from civisure.config import settings
    upload_path = tmp_path / "uploads"
    upload_path.mkdir()
    monkeypatch.setattr(settings, "UPLOAD_DIR", upload_path)
    return upload_path
