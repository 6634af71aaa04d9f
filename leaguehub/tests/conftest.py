"""
Shared pytest configuration for leaguehub tests.

Runs against an in-memory SQLite database by default. A real database can be
used by setting TEST_DATABASE_URL.

SAFETY: any TEST_DATABASE_URL whose database name does not contain "test" is
refused, so a misconfigured environment can never drop a real database.
"""

import itertools
import os

# Must be set before leaguehub.api.routes is imported (rate limiter is a no-op in tests)
os.environ.setdefault("ENV", "test")

import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402

from leaguehub.database.db import Base, build_engine  # noqa: E402
from leaguehub.database.models import (  # noqa: E402
    League,
    LeagueMember,
    LeagueMemberRole,
    LeagueVisibility,
    User,
)

SQLITE_MEMORY_URL = "sqlite+aiosqlite:///:memory:"


def _resolve_test_database_url() -> str:
    """Return the test database URL, refusing anything that is not a test database."""
    url = os.getenv("TEST_DATABASE_URL", SQLITE_MEMORY_URL)
    if url == SQLITE_MEMORY_URL:
        return url

    db_name = url.rsplit("/", 1)[-1].split("?")[0]
    if "test" not in db_name.lower():
        raise RuntimeError(
            f"\n{'=' * 70}\n"
            f"  SAFETY: Refusing to run tests against database '{db_name}'.\n"
            f"  The database name must contain 'test' to prevent accidental\n"
            f"  data loss in development or production databases.\n\n"
            f"  Fix: unset TEST_DATABASE_URL to use in-memory SQLite, or point it\n"
            f"  at a dedicated database such as .../{db_name}_test\n"
            f"{'=' * 70}"
        )
    return url


TEST_DATABASE_URL = _resolve_test_database_url()


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Fresh schema per test."""
    engine = build_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine):
    """Session configured like the application's (no autoflush, no expire on commit)."""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with async_session_maker() as session:
        yield session
        await session.rollback()


class Factory:
    """Direct ORM inserts for test setup; bypasses service-level checks."""

    _counter = itertools.count(1)

    def __init__(self, session: AsyncSession):
        self.session = session

    async def user(self, name: str = None, is_admin: bool = False) -> User:
        n = next(self._counter)
        user = User(
            name=name or f"User {n}",
            username=f"user{n}",
            email=f"user{n}@example.com",
            is_admin=is_admin,
        )
        self.session.add(user)
        await self.session.flush()
        return user

    async def league(
        self,
        owner: User = None,
        name: str = None,
        visibility: LeagueVisibility = LeagueVisibility.PRIVATE,
        description: str = "A test league",
    ) -> League:
        league = League(
            name=name or f"League {next(self._counter)}",
            description=description,
            visibility=visibility.value,
        )
        self.session.add(league)
        await self.session.flush()
        if owner is not None:
            await self.member(league, owner, LeagueMemberRole.EXECUTIVE)
        return league

    async def member(
        self, league: League, user: User, role: LeagueMemberRole = LeagueMemberRole.MEMBER
    ) -> LeagueMember:
        membership = LeagueMember(league_id=league.id, user_id=user.id, role=role.value)
        self.session.add(membership)
        await self.session.flush()
        return membership


@pytest_asyncio.fixture
async def factory(db_session):
    return Factory(db_session)


@pytest_asyncio.fixture
async def league_with_roles(factory):
    """A private league with one executive, one manager and two members."""
    executive = await factory.user("Erin Executive")
    manager = await factory.user("Manny Manager")
    member = await factory.user("Mel Member")
    other = await factory.user("Oscar Other")
    league = await factory.league(owner=executive, name="Tuesday Chess")
    await factory.member(league, manager, LeagueMemberRole.MANAGER)
    await factory.member(league, member)
    await factory.member(league, other)
    return {
        "league": league,
        "executive": executive,
        "manager": manager,
        "member": member,
        "other": other,
    }
