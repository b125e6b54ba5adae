import socket
import uuid
from collections.abc import AsyncGenerator, Iterator
from datetime import UTC, datetime, timedelta

import jwt
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import settings
from app.models.base import Base
from app.providers import factory
from app.providers.identity.mock_adapter import MockIdentityProvider

# Use separate test database
TEST_DATABASE_URL = settings.database_url.replace(
    settings.database_name, f"{settings.database_name}_test"
)

TEST_FUND_ID = uuid.UUID("00000000-0000-0000-0000-000000000010")
TEST_MANAGER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
TEST_APPLICATION_ID = uuid.UUID("00000000-0000-0000-0000-000000000020")

# Security: This is a test-only secret. Production uses a real secret from env.
TEST_AUTH_SECRET = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105  # gitleaks:allow


def create_test_jwt(
    user_id: uuid.UUID = TEST_MANAGER_ID,
    *,
    secret: str = TEST_AUTH_SECRET,
    audience: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed access token the way the identity provider does.

    Args:
        user_id: User UUID to encode in the sub claim.
        secret: Signing secret (must match settings.auth_secret in tests).
        audience: aud claim. Defaults to settings.auth_audience.
        expires_delta: Time until expiration. Defaults to 1 hour.

    Returns:
        Encoded JWT string.
    """
    now = datetime.now(UTC)
    payload = {
        "sub": str(user_id),
        "aud": audience or settings.auth_audience,
        "exp": now + (expires_delta or timedelta(hours=1)),
        "iat": now,
        "role": "authenticated",
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def _is_postgres_available() -> bool:
    """Check if PostgreSQL is accepting connections."""
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(1)
        result = sock.connect_ex((settings.database_host, settings.database_port))
        sock.close()
        return result == 0
    except OSError:
        return False


# Check once at module load time
_POSTGRES_AVAILABLE = _is_postgres_available()


def skip_if_no_postgres() -> None:
    """Skip test if PostgreSQL is not available."""
    if not _POSTGRES_AVAILABLE:
        pytest.skip(
            "PostgreSQL not available on port 5432. "
            "Start database with: docker compose up -d"
        )


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine.

    Skips test if PostgreSQL is not available (e.g., Docker not running).
    """
    skip_if_no_postgres()

    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.exec_driver_sql("CREATE EXTENSION IF NOT EXISTS pgcrypto")
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def test_fund(db_session: AsyncSession):
    """Fund that owns the test application and manager."""
    from app.models import Fund

    fund = Fund(id=TEST_FUND_ID, name="Acme Growth Fund I")
    db_session.add(fund)
    await db_session.flush()
    return fund


@pytest_asyncio.fixture
async def test_application(db_session: AsyncSession, test_fund):
    """Individual KYC application whose meeting is complete."""
    from app.models import KycApplication

    application = KycApplication(
        id=TEST_APPLICATION_ID,
        fund_id=test_fund.id,
        investor_category="individual",
        first_name="Ada",
        last_name="Lovelace",
        email="ada@example.com",
        status="meeting_complete",
    )
    db_session.add(application)
    await db_session.flush()
    await db_session.refresh(application)
    return application


@pytest.fixture
def mock_identity() -> Iterator[MockIdentityProvider]:
    """Mock identity provider injected into the factory singleton.

    Yields:
        MockIdentityProvider instance. Reset after the test.
    """
    mock = MockIdentityProvider()
    factory._identity_provider = mock

    yield mock

    factory.reset_providers()
