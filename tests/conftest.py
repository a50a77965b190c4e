"""Shared test fixtures — async DB, client, auth helpers, factories.

Reusable across all test modules (auth, users, attendance, leave, assets, ...).
Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Set test JWT_SECRET before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")

import uuid
from datetime import date, datetime, timedelta, timezone
from typing import AsyncGenerator
from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from backoffice.common.constants import OrgUnitType, UserRole, UserStatus
from backoffice.config import settings
from backoffice.database import Base, get_db
from backoffice.main import create_app

# Import ALL model modules so every table is registered on Base.metadata
import backoffice.announcements.models  # noqa: F401
import backoffice.assets.models  # noqa: F401
import backoffice.attendance.models  # noqa: F401
import backoffice.auth.models  # noqa: F401
import backoffice.common.audit  # noqa: F401
import backoffice.leave.models  # noqa: F401
import backoffice.notifications.models  # noqa: F401
import backoffice.payroll.models  # noqa: F401
import backoffice.saas.models  # noqa: F401
import backoffice.tenants.models  # noqa: F401
import backoffice.users.models  # noqa: F401
import backoffice.workflow.models  # noqa: F401

# ── SQLite compat: compile PG-specific types to TEXT/BLOB ───────────

from sqlalchemy.dialects.postgresql import INET, JSONB, UUID as PG_UUID
from sqlalchemy.ext.compiler import compiles


@compiles(JSONB, "sqlite")
def _jsonb_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(INET, "sqlite")
def _inet_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(PG_UUID, "sqlite")
def _uuid_sqlite(element, compiler, **kw):
    return "CHAR(36)"


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Register PG-compatible functions for SQLite
@event.listens_for(engine.sync_engine, "connect")
def _register_sqlite_functions(dbapi_conn, connection_record):
    """Register NOW() and uuid_generate_v4() as SQLite custom functions."""
    dbapi_conn.create_function(
        "NOW", 0, lambda: datetime.now(timezone.utc).isoformat(),
    )
    dbapi_conn.create_function(
        "uuid_generate_v4", 0, lambda: str(uuid.uuid4()),
    )

TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    from backoffice.common.rate_limit import limiter

    limiter.reset()
    yield


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    """Create a fresh app instance with DB dependency overridden."""
    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


# ── Model factories ─────────────────────────────────────────────────

def _make_tenant(*, name: str = "Sakura Logistics") -> dict:
    return dict(
        id=uuid.uuid4(),
        name=name,
        timezone="Asia/Tokyo",
        closing_day="end",
        week_start_day=1,
        is_active=True,
    )


def _make_unit(
    *,
    tenant_id: uuid.UUID,
    name: str = "Operations",
    parent_id: uuid.UUID | None = None,
    level: int = 0,
    unit_type: OrgUnitType = OrgUnitType.department,
) -> dict:
    return dict(
        id=uuid.uuid4(),
        tenant_id=tenant_id,
        name=name,
        parent_id=parent_id,
        level=level,
        unit_type=unit_type,
        is_active=True,
    )


def _make_user(
    *,
    tenant_id: uuid.UUID,
    email: str = "taro.yamada@sakura.example.com",
    name: str = "Taro Yamada",
    role: UserRole = UserRole.employee,
    unit_id: uuid.UUID | None = None,
    status: UserStatus = UserStatus.active,
) -> dict:
    return dict(
        id=uuid.uuid4(),
        tenant_id=tenant_id,
        email=email,
        name=name,
        role=role,
        status=status,
        unit_id=unit_id,
        employee_number=f"E-{uuid.uuid4().hex[:6].upper()}",
        hire_date=date(2022, 4, 1),
        timezone="Asia/Tokyo",
    )


async def seed_tenant(db: AsyncSession, **kwargs):
    from backoffice.tenants.models import Tenant

    tenant = Tenant(**_make_tenant(**kwargs))
    db.add(tenant)
    await db.flush()
    return tenant


async def seed_unit(db: AsyncSession, tenant_id: uuid.UUID, **kwargs):
    from backoffice.tenants.models import OrgUnit

    unit = OrgUnit(**_make_unit(tenant_id=tenant_id, **kwargs))
    db.add(unit)
    await db.flush()
    return unit


async def seed_user(db: AsyncSession, tenant_id: uuid.UUID, **kwargs):
    from backoffice.users.models import User

    user = User(**_make_user(tenant_id=tenant_id, **kwargs))
    db.add(user)
    await db.flush()
    return user


@pytest.fixture
async def tenant(db):
    t = await seed_tenant(db)
    await db.commit()
    return t


@pytest.fixture
async def other_tenant(db):
    t = await seed_tenant(db, name="Umeda Trading")
    await db.commit()
    return t


@pytest.fixture
async def unit(db, tenant):
    u = await seed_unit(db, tenant.id)
    await db.commit()
    return u


@pytest.fixture
async def employee(db, tenant, unit):
    u = await seed_user(db, tenant.id, unit_id=unit.id)
    await db.commit()
    return u


@pytest.fixture
async def manager(db, tenant, unit):
    u = await seed_user(
        db, tenant.id, email="hanako.sato@sakura.example.com", name="Hanako Sato",
        role=UserRole.manager, unit_id=unit.id,
    )
    await db.commit()
    return u


@pytest.fixture
async def hr_user(db, tenant):
    u = await seed_user(
        db, tenant.id, email="jiro.suzuki@sakura.example.com", name="Jiro Suzuki",
        role=UserRole.hr,
    )
    await db.commit()
    return u


@pytest.fixture
async def admin_user(db, tenant):
    u = await seed_user(
        db, tenant.id, email="admin@sakura.example.com", name="Keiko Admin",
        role=UserRole.admin,
    )
    await db.commit()
    return u


@pytest.fixture
async def outsider(db, other_tenant):
    """Admin of a different tenant."""
    u = await seed_user(
        db, other_tenant.id, email="admin@umeda.example.com", name="Umeda Admin",
        role=UserRole.admin,
    )
    await db.commit()
    return u


# ── Auth helpers ────────────────────────────────────────────────────

def create_access_token(
    user_id: uuid.UUID,
    role: UserRole = UserRole.employee,
    expired: bool = False,
) -> str:
    """Generate a JWT access token for testing."""
    if expired:
        exp = datetime.now(timezone.utc) - timedelta(hours=1)
    else:
        exp = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS)
    payload = {
        "sub": str(user_id),
        "role": role.value,
        "type": "access",
        "jti": uuid.uuid4().hex,
        "exp": exp,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def create_refresh_token(
    user_id: uuid.UUID,
    expired: bool = False,
) -> str:
    """Generate a JWT refresh token for testing (with unique jti)."""
    if expired:
        exp = datetime.now(timezone.utc) - timedelta(days=1)
    else:
        exp = datetime.now(timezone.utc) + timedelta(days=7)
    payload = {
        "sub": str(user_id),
        "type": "refresh",
        "jti": uuid.uuid4().hex,
        "exp": exp,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


async def login(db: AsyncSession, user) -> dict[str, str]:
    """Persist a session for *user* and return Bearer auth headers."""
    from backoffice.auth.dependencies import hash_token
    from backoffice.auth.models import UserSession

    token = create_access_token(user.id, user.role)
    db.add(
        UserSession(
            id=uuid.uuid4(),
            user_id=user.id,
            token_hash=hash_token(token),
            expires_at=datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS),
            is_revoked=False,
            created_at=datetime.now(timezone.utc),
        )
    )
    await db.commit()
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def auth_headers(db, employee) -> dict[str, str]:
    """Bearer headers for the plain employee."""
    return await login(db, employee)


@pytest.fixture
async def manager_headers(db, manager) -> dict[str, str]:
    return await login(db, manager)


@pytest.fixture
async def hr_headers(db, hr_user) -> dict[str, str]:
    return await login(db, hr_user)


@pytest.fixture
async def admin_headers(db, admin_user) -> dict[str, str]:
    return await login(db, admin_user)


@pytest.fixture
async def outsider_headers(db, outsider) -> dict[str, str]:
    return await login(db, outsider)


@pytest.fixture
def mock_google_oauth():
    """Patch verify_google_token to return a fake Google account."""

    def _mock(email: str = "taro.yamada@sakura.example.com", name: str = "Taro Yamada"):
        google_info = {
            "email": email,
            "name": name,
            "picture": "https://lh3.googleusercontent.com/fake",
            "google_id": f"google-{uuid.uuid4().hex[:12]}",
        }
        return patch(
            "backoffice.auth.router.verify_google_token",
            new_callable=AsyncMock,
            return_value=google_info,
        )

    return _mock
