"""
Test configuration and fixtures.
Uses a throwaway SQLite database (aiosqlite) per test.
"""
import os

# Set test environment before any imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["REDIS_URL"] = "redis://localhost:6379/0"
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["STORAGE_BACKEND"] = "local"

import pytest
from typing import AsyncGenerator, Optional
from unittest.mock import patch, MagicMock

from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from studio.ai.base import ImageProvider, ProviderError
from studio.config import settings
from studio.database import seed_default_model
from studio.models.base import Base
from studio.models.user import User
from studio.models.template import Template
from studio.models.ai_model import AIModel

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
GENERATED_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x01" * 64


class FakeImageProvider(ImageProvider):
    """Image provider stand-in that records calls and can be told to fail."""

    provider_name = "fake"

    def __init__(self, fail: bool = False, analysis: str = "Oval. Balanced proportions."):
        super().__init__("fake-model")
        self.fail = fail
        self.analysis = analysis
        self.calls = []
        self.reference_images = []

    async def generate_image(self, image_bytes: bytes, mime_type: str, prompt: str, reference_images=None) -> bytes:
        self.calls.append(prompt)
        self.reference_images.append(reference_images)
        if self.fail:
            raise ProviderError("upstream unavailable")
        return GENERATED_BYTES

    async def analyze_image(self, image_bytes: bytes, mime_type: str, prompt: str) -> str:
        self.calls.append(prompt)
        if self.fail:
            raise ProviderError("upstream unavailable")
        return self.analysis

    def is_configured(self) -> bool:
        return True


@pytest.fixture(autouse=True)
def media_root(tmp_path, monkeypatch):
    """Store generated and uploaded images under the test's tmp dir."""
    root = tmp_path / "media"
    monkeypatch.setattr(settings, "media_root", str(root))
    monkeypatch.setattr(settings, "storage_backend", "local")
    return root


@pytest.fixture(scope="function")
async def db_session(tmp_path) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for testing."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with session_maker() as session:
        await seed_default_model(session)
        yield session

    await engine.dispose()


async def _create_user(db_session: AsyncSession, username: str, xp: int, **kwargs) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        email_verified=True,
        xp=xp,
        **kwargs
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture(scope="function")
async def test_user(db_session: AsyncSession) -> User:
    """Create a test user with enough XP for a few generations."""
    return await _create_user(db_session, "tester", xp=10)


@pytest.fixture(scope="function")
async def test_user_no_xp(db_session: AsyncSession) -> User:
    """Create a test user with an empty balance."""
    return await _create_user(db_session, "broke", xp=0)


@pytest.fixture(scope="function")
async def admin_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "admin", xp=0, is_admin=True)


@pytest.fixture(scope="function")
async def test_template(db_session: AsyncSession) -> Template:
    """Create an active template with a hidden prompt."""
    template = Template(
        title="Cyberpunk Portrait!",
        description="Neon-lit city portrait",
        image_url="https://cdn.example.com/cyberpunk.png",
        ai_prompt="Turn the subject into a cyberpunk character",
        display_order=1,
        tags="neon, city, portrait",
    )
    db_session.add(template)
    await db_session.commit()
    await db_session.refresh(template)
    return template


@pytest.fixture(scope="function")
async def premium_model(db_session: AsyncSession) -> AIModel:
    model = AIModel(
        model_id="gpt-image-1",
        model_name="GPT Image",
        provider="openai",
        xp_cost=5,
        is_active=True,
        display_order=1,
    )
    db_session.add(model)
    await db_session.commit()
    await db_session.refresh(model)
    return model


def get_test_app(db_session: AsyncSession, user: Optional[User]) -> FastAPI:
    """Create a test FastAPI app with overridden dependencies."""
    from studio.main import app
    from studio.database import get_db
    from studio.auth.dependencies import get_current_user, get_optional_user

    user_id = user.id if user is not None else None

    async def override_get_db():
        yield db_session

    # Reload by id: a rollback inside a request expires the fixture instance
    async def override_get_current_user():
        return await db_session.get(User, user_id)

    async def override_get_optional_user():
        return await db_session.get(User, user_id)

    app.dependency_overrides[get_db] = override_get_db
    if user is not None:
        app.dependency_overrides[get_current_user] = override_get_current_user
        app.dependency_overrides[get_optional_user] = override_get_optional_user

    return app


@pytest.fixture(scope="function")
async def client(db_session: AsyncSession, test_user: User) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    app = get_test_app(db_session, test_user)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    # Clean up overrides
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client_no_xp(db_session: AsyncSession, test_user_no_xp: User) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for a user with no XP."""
    app = get_test_app(db_session, test_user_no_xp)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def admin_client(db_session: AsyncSession, admin_user: User) -> AsyncGenerator[AsyncClient, None]:
    app = get_test_app(db_session, admin_user)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def anon_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Client without a logged-in user; real auth dependencies apply."""
    app = get_test_app(db_session, None)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def fake_provider():
    """Patch the image provider used by generations."""
    provider = FakeImageProvider()
    with patch("studio.services.generation_service.get_image_provider", return_value=provider):
        yield provider


@pytest.fixture
def failing_provider():
    provider = FakeImageProvider(fail=True)
    with patch("studio.services.generation_service.get_image_provider", return_value=provider):
        yield provider


@pytest.fixture
def fake_vision():
    """Patch the vision provider used by face analysis and suggestions."""
    provider = FakeImageProvider()
    with patch("studio.services.vision_service.get_vision_provider", return_value=provider):
        yield provider


@pytest.fixture
def mock_email_task():
    """Mock Celery email tasks to avoid contacting the broker."""
    with patch("studio.api.auth.send_verification_email_task.delay") as mock:
        mock.return_value = MagicMock(id="mock-task-id")
        yield mock


def image_upload(name: str = "photo.png", content_type: str = "image/png", data: bytes = PNG_BYTES):
    """Multipart files= entry for an image field."""
    return {"image": (name, data, content_type)}
