"""
Shared fixtures for the assignment test suite.

Every test gets a fresh in-memory SQLite database.
"""
from datetime import datetime, timedelta
from typing import AsyncGenerator, List

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

from hackhub.database import build_engine, build_sessionmaker
from hackhub.orm.base import Base
from hackhub.orm.hackathon import Hackathon, HackathonStatus
from hackhub.orm.task import Task
from hackhub.orm.user import User, UserRole

# Test database setup
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    engine = build_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    async_session = build_sessionmaker(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def now() -> datetime:
    return datetime.utcnow()


async def make_user(
    db: AsyncSession,
    email: str,
    role: UserRole = UserRole.participant,
    skills: List[str] = None,
    verified: bool = True,
    active: bool = True,
) -> User:
    user = User(
        email=email,
        full_name=email.split("@")[0].title(),
        role=role,
        skills=skills or [],
        is_email_verified=verified,
        is_active=active,
    )
    db.add(user)
    await db.commit()
    return user


async def make_hackathon(
    db: AsyncSession,
    creator: User,
    now: datetime,
    tasks_per_participant: int = 1,
    status: HackathonStatus = HackathonStatus.active,
    window_open: bool = True,
) -> Hackathon:
    if window_open:
        assign_start = now - timedelta(days=1)
    else:
        assign_start = now + timedelta(days=1)
    hackathon = Hackathon(
        title="Spring Hack",
        description="Build something",
        start_date=assign_start - timedelta(days=1),
        end_date=assign_start + timedelta(days=10),
        assignment_start_date=assign_start,
        assignment_end_date=assign_start + timedelta(days=2),
        submission_deadline=assign_start + timedelta(days=5),
        status=status,
        tasks_per_participant=tasks_per_participant,
        created_by=creator.id,
    )
    db.add(hackathon)
    await db.commit()
    return hackathon


async def make_task(db: AsyncSession, hackathon: Hackathon, title: str, tags: List[str] = None) -> Task:
    task = Task(
        hackathon_id=hackathon.id,
        title=title,
        description=f"{title} description",
        tags=tags or [],
    )
    db.add(task)
    await db.commit()
    return task


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "admin@test.com", role=UserRole.admin)


@pytest_asyncio.fixture
async def judge_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "judge@test.com", role=UserRole.judge)


@pytest_asyncio.fixture
async def participants(db_session: AsyncSession) -> List[User]:
    """Three verified participants with distinct skill sets."""
    return [
        await make_user(db_session, "alice@test.com", skills=["react", "node"]),
        await make_user(db_session, "bob@test.com", skills=["python", "ml"]),
        await make_user(db_session, "carol@test.com", skills=["css"]),
    ]


@pytest_asyncio.fixture
async def hackathon(db_session: AsyncSession, admin_user: User, now: datetime) -> Hackathon:
    return await make_hackathon(db_session, admin_user, now)


@pytest_asyncio.fixture
async def tasks(db_session: AsyncSession, hackathon: Hackathon) -> List[Task]:
    return [
        await make_task(db_session, hackathon, "Frontend", tags=["react", "css"]),
        await make_task(db_session, hackathon, "Backend", tags=["node", "react"]),
        await make_task(db_session, hackathon, "Model", tags=["python", "ml"]),
    ]


class RecordingNotifier:
    """Collects notices instead of sending them."""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    async def send_task_assigned_notice(self, participant, task, hackathon, method):
        if self.fail:
            raise RuntimeError("mail relay down")
        self.sent.append((participant.id, task.id, method))
        return True


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
