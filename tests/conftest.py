"""
Pytest Configuration and Fixtures
Shared fixtures and configuration for all tests
"""

import base64
import json
import os
from typing import AsyncGenerator, Dict, Optional

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "development"
os.environ["ALLOW_ANONYMOUS"] = "false"
os.environ["ADMIN_USER_IDS"] = "bootstrap-admin"
os.environ["RATE_LIMIT_ENABLED"] = "true"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from chartshare.db import models  # noqa: F401
from chartshare.db.base import Base, new_id
from chartshare.db.models import Chart, ChartPermission, GlobalRoleAssignment


# ============================================
# PYTEST CONFIGURATION
# ============================================

def pytest_collection_modifyitems(config, items):
    """Add markers based on test file path"""
    for item in items:
        if "/unit/" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


# ============================================
# DATABASE FIXTURES
# ============================================

@pytest_asyncio.fixture
async def engine(tmp_path):
    """
    File-backed SQLite engine, one database per test

    NullPool gives every session its own connection, so concurrent sessions
    really contend for the database.
    """
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'chartshare.db'}",
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ============================================
# DATA FIXTURES
# ============================================

@pytest.fixture
def chart_factory(db):
    """Create and commit a chart, optionally with per-chart entries {user_id: role}"""

    async def create(
        owner_id: str = "owner-1",
        name: str = "Org Chart",
        permissions: Optional[Dict[str, str]] = None,
    ) -> Chart:
        chart = Chart(
            id=new_id(),
            owner_id=owner_id,
            name=name,
            data={"nodes": [{"id": "root", "name": "CEO"}]},
        )
        for user_id, role in (permissions or {}).items():
            chart.permissions.append(
                ChartPermission(id=new_id(), user_id=user_id, role=role, granted_by=owner_id)
            )
        db.add(chart)
        await db.commit()
        return chart

    return create


@pytest.fixture
def global_role_factory(db):
    """Persist a global role assignment"""

    async def create(user_id: str, role: str, granted_by: str = "bootstrap-admin") -> GlobalRoleAssignment:
        assignment = GlobalRoleAssignment(user_id=user_id, role=role, granted_by=granted_by)
        db.add(assignment)
        await db.commit()
        return assignment

    return create


# ============================================
# API FIXTURES
# ============================================

def principal_headers(user_id: str, email: Optional[str] = None) -> Dict[str, str]:
    """x-ms-client-principal header as the identity platform would send it"""
    payload = {
        "userId": user_id,
        "userDetails": email or f"{user_id}@example.com",
        "identityProvider": "aad",
        "userRoles": ["anonymous", "authenticated"],
    }
    encoded = base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")
    return {"x-ms-client-principal": encoded}


@pytest_asyncio.fixture
async def client(session_factory, monkeypatch) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app, with sessions from the test database"""
    from chartshare.db import session as db_session
    from chartshare.db.session import get_db_session
    from chartshare.main import app

    async def override_get_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    monkeypatch.setattr(db_session, "async_session_maker", session_factory)
    app.dependency_overrides[get_db_session] = override_get_db_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
