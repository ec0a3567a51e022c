import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from typing import AsyncGenerator, Callable, Dict, Optional, Sequence
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from datetime import datetime

from homeplanner.main import app
from homeplanner.models.base import Base
from homeplanner.db.database import get_db
from homeplanner.core.config import settings
from homeplanner.core.logging import setup_test_logging
from homeplanner.core.security import create_access_token
from homeplanner.models import (
    User, Family, FamilyMember, Child, Event, EventParticipant, EventType, FamilyRole, ParticipantType
)
from homeplanner.schemas.event import ParticipantReference

setup_test_logging()


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Create a fresh database with all tables for every test."""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False}
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_maker(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Get async database session for tests."""
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def test_app(session_maker) -> AsyncGenerator[FastAPI, None]:
    """Point the application at the test database."""
    settings.TESTING = True

    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
        follow_redirects=True
    ) as ac:
        yield ac


# --- Seed data ---
# Seeded rows are written through their own sessions so the returned objects
# stay detached and loaded, whatever the session under test rolls back.
async def _seed(session_maker, *rows):
    async with session_maker() as session:
        session.add_all(rows)
        await session.commit()
    return rows[0]


@pytest_asyncio.fixture
async def family(session_maker) -> Family:
    return await _seed(session_maker, Family(name="Test Family"))


@pytest_asyncio.fixture
async def parent(session_maker, family: Family) -> User:
    """Family admin."""
    user = await _seed(session_maker, User(email="parent@example.com", full_name="Pat Parent"))
    await _seed(session_maker, FamilyMember(family_id=family.id, user_id=user.id, role=FamilyRole.ADMIN))
    return user


@pytest_asyncio.fixture
async def co_parent(session_maker, family: Family) -> User:
    user = await _seed(session_maker, User(email="coparent@example.com", full_name="Sam Parent"))
    await _seed(session_maker, FamilyMember(family_id=family.id, user_id=user.id, role=FamilyRole.MEMBER))
    return user


@pytest_asyncio.fixture
async def outsider(session_maker) -> User:
    """A user belonging to no family."""
    return await _seed(session_maker, User(email="outsider@example.com", full_name="Olly Outsider"))


@pytest_asyncio.fixture
async def child(session_maker, family: Family) -> Child:
    return await _seed(session_maker, Child(family_id=family.id, name="Kim"))


@pytest_asyncio.fixture
async def other_family(session_maker) -> Family:
    return await _seed(session_maker, Family(name="Other Family"))


@pytest_asyncio.fixture
async def parent_token(parent: User) -> str:
    return create_access_token({"sub": parent.id})


@pytest_asyncio.fixture
async def co_parent_token(co_parent: User) -> str:
    return create_access_token({"sub": co_parent.id})


@pytest_asyncio.fixture
async def outsider_token(outsider: User) -> str:
    return create_access_token({"sub": outsider.id})


@pytest.fixture
def auth_headers() -> Callable[[str], Dict[str, str]]:
    def _headers(token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest_asyncio.fixture
async def event_factory(session_maker, family: Family) -> Callable:
    """Insert events directly, bypassing the scheduling rules."""
    async def _create(
        title: str,
        start_time: datetime,
        end_time: datetime,
        event_type: EventType = EventType.ELASTIC,
        participants: Sequence[ParticipantReference] = (),
        recurrence_pattern: Optional[dict] = None,
        is_synced: bool = False,
        family_id: Optional[str] = None
    ) -> Event:
        event = await _seed(session_maker, Event(
            family_id=family_id or family.id,
            title=title,
            start_time=start_time,
            end_time=end_time,
            event_type=event_type,
            recurrence_pattern=recurrence_pattern,
            is_synced=is_synced,
            external_calendar_id="google-primary" if is_synced else None
        ))
        if participants:
            await _seed(session_maker, *[
                EventParticipant(
                    event_id=event.id,
                    participant_type=ref.type,
                    user_id=ref.id if ref.type == ParticipantType.USER else None,
                    child_id=ref.id if ref.type == ParticipantType.CHILD else None
                )
                for ref in participants
            ])
        return event
    return _create
