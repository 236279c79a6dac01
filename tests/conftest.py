"""
Pytest configuration and shared fixtures.

Service tests run against an in-memory SQLite database built from the ORM
metadata.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import portfolio_crm.models  # noqa: F401
from portfolio_crm.db.base import Base
from portfolio_crm.models.enums import OrganizationKind
from portfolio_crm.schemas.organization import OrganizationDraft
from portfolio_crm.services.organization_service import OrganizationService


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests, no external deps")


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def create_org(session_factory):
    """Create one organization in its own transaction; returns ``(organization, job)``."""

    async def _create(kind: OrganizationKind, queue_research: bool = False, **fields):
        async with session_factory() as db:
            async with db.begin():
                return await OrganizationService(db).create_organization(
                    kind,
                    OrganizationDraft(**fields),
                    queue_research=queue_research,
                )

    return _create
