"""
CampusHub - Test Configuration and Fixtures
"""
import os
from datetime import datetime, timedelta
from typing import AsyncGenerator

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession
from faker import Faker

# Set testing environment before the app reads its settings
os.environ['ENVIRONMENT'] = 'testing'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test.db'
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['LOG_LEVEL'] = 'WARNING'

from campushub.main import app
from campushub.constants.constants import EventCategory, UserRole
from campushub.core.database import DatabaseSessionManager, aget_db
from campushub.core.security import create_jwt_token
from campushub.models.user import User
from campushub.services.ApprovalWorkflow import ApprovalWorkflow
from campushub.services.InventoryService import InventoryService

fake = Faker()

# Every test schedules on this (future) day
BASE_DAY = datetime(2030, 3, 4)


@pytest.fixture
def at():
    """at(14) -> 14:00 on the test day; at(9, 30, day=1) -> next day 09:30."""
    def _at(hour: int, minute: int = 0, day: int = 0) -> datetime:
        return BASE_DAY + timedelta(days=day, hours=hour, minutes=minute)
    return _at


@pytest.fixture
async def manager(tmp_path) -> AsyncGenerator[DatabaseSessionManager, None]:
    """A fresh SQLite file database per test"""
    manager = DatabaseSessionManager(f"sqlite+aiosqlite:///{tmp_path / 'campushub.db'}")
    await manager.init()
    yield manager
    await manager.close()


@pytest.fixture
def session_factory(manager):
    """Independent sessions, for concurrent requests"""
    return manager.session_factory


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(manager) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override"""
    async def override_aget_db():
        async with manager.get_session() as session:
            yield session

    app.dependency_overrides[aget_db] = override_aget_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    """Create a committed user, detached so later rollbacks leave it readable"""
    async def _make_user(role: UserRole = UserRole.student, **overrides) -> User:
        data = {
            "email": fake.unique.email(),
            "first_name": fake.first_name(),
            "last_name": fake.last_name(),
            "role": role,
        }
        data.update(overrides)
        user = User(**data)
        db.add(user)
        await db.commit()
        db.expunge(user)
        return user
    return _make_user


@pytest.fixture
def auth_headers():
    def _auth_headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_jwt_token({'sub': user.user_id})}"}
    return _auth_headers


@pytest.fixture
def make_event(db, make_user, at):
    """Create an event through the workflow; HOD organizers get it approved straight away"""
    async def _make_event(organizer: User = None, **overrides):
        organizer = organizer or await make_user(UserRole.hod)
        data = {
            "title": fake.sentence(nb_words=4),
            "category": EventCategory.technical,
            "start_date": at(10),
            "end_date": at(12),
            "location": None,
        }
        data.update(overrides)
        event = await ApprovalWorkflow(db).create_event(data, organizer)
        db.expunge(event)
        return event
    return _make_event


@pytest.fixture
def make_venue(db, make_user):
    async def _make_venue(**overrides):
        staff = await make_user(UserRole.technical_staff)
        data = {"name": f"{fake.last_name()} Hall {fake.uuid4()[:8]}", "capacity": 100}
        data.update(overrides)
        venue = await InventoryService(db).create_venue(data, staff)
        db.expunge(venue)
        return venue
    return _make_venue


@pytest.fixture
def make_equipment(db, make_user):
    async def _make_equipment(**overrides):
        staff = await make_user(UserRole.technical_staff)
        data = {"name": "Wireless Microphone", "equipment_type": "audio", "quantity": 10}
        data.update(overrides)
        equipment = await InventoryService(db).create_equipment(data, staff)
        db.expunge(equipment)
        return equipment
    return _make_equipment
