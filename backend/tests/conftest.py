"""Shared fixtures: test database, seeded users, ASGI client, auth headers.

Endpoint tests run against ``<database_name>_test`` with a schema rebuilt
for every test. When PostgreSQL is not reachable those tests skip; the pure
unit tests never touch these fixtures.
"""

import socket
from collections.abc import AsyncGenerator, Iterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.auth import create_access_token, hash_password
from app.core.config import settings
from app.core.database import build_engine, get_db
from app.core.rate_limiting import limiter
from app.models import Base, User
from app.repositories.user_repository import UserRepository
from app.services.authorization import Role

TEST_DATABASE_URL = settings.database_url.replace(
    settings.database_name, f"{settings.database_name}_test"
)

# Security: This is a test-only secret. Production uses a real secret from env.
TEST_AUTH_SECRET = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105  # gitleaks:allow

TEST_PASSWORD = "Str0ng!Passw0rd"  # nosec B105

# Shared family group for the parent / young driver fixtures
TEST_FAMILY_GROUP = "00000000-0000-0000-0000-0000000000f1"


def _postgres_reachable() -> bool:
    address = (settings.database_host, settings.database_port)
    try:
        with socket.create_connection(address, timeout=1):
            return True
    except OSError:
        return False


_POSTGRES_REACHABLE = _postgres_reachable()


def _bearer(user: User, *roles: str) -> dict[str, str]:
    token = create_access_token(
        user_id=str(user.id),
        username=user.username,
        roles=frozenset(roles) if roles else user.role_names,
    )
    return {"Authorization": f"Bearer {token}"}


# =============================================================================
# Database
# =============================================================================


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory over a freshly created test schema."""
    if not _POSTGRES_REACHABLE:
        pytest.skip(
            f"PostgreSQL not reachable on "
            f"{settings.database_host}:{settings.database_port}"
        )

    engine = build_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# =============================================================================
# Users
# =============================================================================


async def _make_user(
    db: AsyncSession,
    username: str,
    role: str,
    family_group_id: str | None = None,
) -> User:
    """Persist a user whose password is TEST_PASSWORD.

    Without ``family_group_id`` the user gets a family group of their own,
    as at registration.
    """
    user = await UserRepository.create(
        db,
        username=username,
        email=f"{username}@example.com",
        password_hash=hash_password(TEST_PASSWORD),
        roles=[role],
        family_group_id=family_group_id,
    )
    await db.commit()
    return user


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "admin", Role.ADMIN)


@pytest_asyncio.fixture
async def fleet_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "fleetuser", Role.FLEET_USER)


@pytest_asyncio.fixture
async def other_fleet_user(db_session: AsyncSession) -> User:
    """Second fleet user in a family of their own (cross-tenant checks)."""
    return await _make_user(db_session, "otherfleet", Role.FLEET_USER)


@pytest_asyncio.fixture
async def parent_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "parent", Role.PARENT, TEST_FAMILY_GROUP)


@pytest_asyncio.fixture
async def young_driver(db_session: AsyncSession) -> User:
    return await _make_user(
        db_session, "youngdriver", Role.YOUNG_DRIVER, TEST_FAMILY_GROUP
    )


@pytest_asyncio.fixture
async def music_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "musicuser", Role.MUSIC_USER)


@pytest_asyncio.fixture
async def other_music_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "othermusic", Role.MUSIC_USER)


# =============================================================================
# API client
# =============================================================================


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient, None]:
    """Anonymous ASGI client; pass ``headers=bearer(user)`` to authenticate.

    ``get_db`` is overridden to open sessions on the test database with the
    same commit-or-rollback handling as production.
    """
    from app.main import app

    async def test_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            else:
                await session.commit()

    app.dependency_overrides[get_db] = test_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def bearer():
    """Header factory: ``bearer(user)`` or ``bearer(user, *roles)``.

    Roles default to the user's stored roles.
    """
    return _bearer


# =============================================================================
# Autouse Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def auth_settings() -> Iterator[None]:
    """Sign tokens with the test secret; allow the refresh cookie over http."""
    original = (settings.auth_secret, settings.refresh_cookie_secure)
    settings.auth_secret = SecretStr(TEST_AUTH_SECRET)
    settings.refresh_cookie_secure = False
    yield
    settings.auth_secret, settings.refresh_cookie_secure = original


@pytest.fixture(autouse=True)
def disable_rate_limiting() -> Iterator[None]:
    """Turn the limiter off; login and register limits would trip otherwise."""
    original = limiter.enabled
    limiter.enabled = False
    yield
    limiter.enabled = original
