"""Pytest configuration and shared fixtures.

Unit tests run without a database: sessions are mocks and the recorder
writes through a mocked session factory. Tests marked ``integration``
use a real PostgreSQL database (``TEST_DATABASE_URL``) and are skipped
when it cannot be reached.
"""

import os
from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from stationtrack.config import settings
from stationtrack.core.audit.models import AuditEvent  # noqa: F401
from stationtrack.core.audit.recorder import AuditRecorder
from stationtrack.core.auth import create_access_token
from stationtrack.core.constants import ADMIN_ROLE, TECHNICIAN_ROLE
from stationtrack.core.database import Base, get_db
from stationtrack.main import create_app

# Import all models to ensure they're registered with Base.metadata
from stationtrack.modules.stations.models import Station  # noqa: F401
from stationtrack.modules.users.models import Role, User
from tests.factories.user import RoleFactory, UserFactory


TEST_DATABASE_URL = os.environ.get(
    "TEST_DATABASE_URL",
    settings.async_database_url.replace("/stationtrack", "/stationtrack_test"),
)


def bearer(user_id: UUID) -> dict[str, str]:
    """Authorization header carrying an access token for a user id."""
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


# ============================================================
# Unit fixtures
# ============================================================


@pytest.fixture
def mock_session() -> AsyncMock:
    """Create a mock database session."""
    session = AsyncMock()
    session.add = MagicMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    return session


@pytest.fixture
def session_factory(mock_session: AsyncMock) -> MagicMock:
    """Session factory whose sessions are ``mock_session``."""
    factory = MagicMock()
    factory.return_value.__aenter__.return_value = mock_session
    return factory


@pytest.fixture
async def recorder(session_factory: MagicMock) -> AsyncGenerator[AuditRecorder, None]:
    """Recorder writing through the mocked session factory."""
    recorder = AuditRecorder(session_factory, max_queue_size=10)
    yield recorder
    await recorder.stop()


# ============================================================
# Database fixtures
# ============================================================


@pytest.fixture
async def engine():
    """Create the test database schema, skipping when PostgreSQL is down."""
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=NullPool, echo=False)

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
    except (OSError, SQLAlchemyError) as e:
        await engine.dispose()
        pytest.skip(f"PostgreSQL unavailable: {e}")

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def db(engine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a transactional database session for tests.

    Business writes made through this session are rolled back after the
    test. Audit writes use their own sessions and are committed; the
    schema is dropped by ``engine``.
    """
    factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with engine.connect() as conn:
        await conn.begin()

        async with factory(bind=conn) as session:
            yield session

        await conn.rollback()


@pytest.fixture
async def db_recorder(engine) -> AsyncGenerator[AuditRecorder, None]:
    """Recorder writing to the test database."""
    recorder = AuditRecorder(async_sessionmaker(bind=engine, expire_on_commit=False))
    yield recorder
    await recorder.stop()


@pytest.fixture
async def app(db: AsyncSession, db_recorder: AuditRecorder):
    """Create test application instance."""
    application = create_app()
    application.state.audit_recorder = db_recorder

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db

    application.dependency_overrides[get_db] = override_get_db

    yield application

    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Provide async HTTP client for API testing."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


# ============================================================
# Role and User Fixtures
# ============================================================


@pytest.fixture
async def roles(db: AsyncSession) -> dict[str, Role]:
    """Create the admin and technician roles."""
    created = {
        name: RoleFactory.build(name=name) for name in (ADMIN_ROLE, TECHNICIAN_ROLE)
    }
    db.add_all(created.values())
    await db.flush()
    return created


@pytest.fixture
async def admin(db: AsyncSession, roles: dict[str, Role]) -> User:
    user = UserFactory.build(username="admin", first_name="Ada", last_name="Admin")
    user.role = roles[ADMIN_ROLE]
    db.add(user)
    await db.flush()
    return user


@pytest.fixture
async def technician(db: AsyncSession, roles: dict[str, Role]) -> User:
    user = UserFactory.build(username="tfield", first_name="Tom", last_name="Field")
    user.role = roles[TECHNICIAN_ROLE]
    db.add(user)
    await db.flush()
    return user
