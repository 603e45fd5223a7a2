import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import Any

# Configure the app for an isolated in-memory run before it is imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["AUTH_PROVIDER"] = "local"
os.environ["EMAIL_PROVIDER"] = "log"
os.environ["LOG_FORMAT"] = "console"
os.environ["ADMIN_EMAIL"] = "root-admin@medblog.org"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.security import create_access_token
from app.database import get_db
from app.main import app
from app.models import accounts, approval_requests, articles, metadata
from app.services.notification_service import TemplateKind

test_engine = create_async_engine(
    "sqlite+aiosqlite://",
    echo=False,
    poolclass=StaticPool,
    connect_args={"check_same_thread": False},
)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class RecordingNotifier:
    """Notifier double that records sends and can be told to fail."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.sent: list[tuple[str, TemplateKind, dict[str, Any]]] = []

    async def send(self, to_address: str, template_kind: TemplateKind, data: dict[str, Any]) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append((to_address, template_kind, data))


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession, notifier: RecordingNotifier
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    original_notifier = app.state.notifier
    app.state.notifier = notifier
    app.state.rate_limiter.reset()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
    app.state.notifier = original_notifier
    app.state.rate_limiter.reset()


AccountFactory = Callable[..., Awaitable[dict[str, Any]]]


@pytest.fixture
def make_account(db_session: AsyncSession) -> AccountFactory:
    """Insert an account row; pending professionals also get an open request."""

    async def factory(
        account_id: str,
        role: str | None = "patient",
        approval_status: str | None = "approved",
        email: str | None = None,
        created_at: datetime | None = None,
        **extra: Any,
    ) -> dict[str, Any]:
        now = created_at or datetime.now(UTC)
        values = {
            "id": account_id,
            "email": email or f"{account_id}@medblog.org",
            "display_name": extra.pop("display_name", account_id.title()),
            "role": role,
            "approval_status": approval_status,
            "gdpr_consent": True,
            "created_at": now,
            "updated_at": now,
            **extra,
        }
        await db_session.execute(insert(accounts).values(**values))
        if role == "professional" and approval_status == "pending":
            await db_session.execute(
                insert(approval_requests).values(account_id=account_id, submitted_at=now)
            )
        await db_session.commit()
        return values

    return factory


@pytest.fixture
def make_article(db_session: AsyncSession) -> Callable[..., Awaitable[None]]:
    async def factory(article_id: str, author_id: str | None, status: str = "published") -> None:
        await db_session.execute(
            insert(articles).values(
                id=article_id,
                title=f"Article {article_id}",
                author_id=author_id,
                author_name="Author",
                status=status,
                created_at=datetime.now(UTC),
            )
        )
        await db_session.commit()

    return factory


def token_for(account_id: str, email: str | None = None) -> str:
    """Mint an access token for the local identity provider."""
    return create_access_token(account_id, email, expires_delta=timedelta(minutes=30))


def bearer(account_id: str, email: str | None = None) -> dict[str, str]:
    return {"Authorization": f"Bearer {token_for(account_id, email)}"}


@pytest_asyncio.fixture
async def admin(make_account: AccountFactory) -> dict[str, Any]:
    return await make_account("a1", role="admin", approval_status="approved")


@pytest.fixture
def admin_headers(admin: dict[str, Any]) -> dict[str, str]:
    return bearer(admin["id"], admin["email"])


@pytest_asyncio.fixture
async def pending_professional(make_account: AccountFactory) -> dict[str, Any]:
    return await make_account(
        "u1",
        role="professional",
        approval_status="pending",
        professional_type="doctor",
        license_number="LIC-1001",
        specialization="Cardiology",
    )
