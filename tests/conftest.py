"""
Pytest configuration and fixtures for practice engine tests.
"""
import sys
import os
from datetime import timedelta

import pytest
import pytest_asyncio

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Keep the application engine off the working directory
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import NullPool, StaticPool

from models.base import Base, utcnow
from models.user import User  # noqa: F401
from models.taxonomy import Branch, Subject, Topic  # noqa: F401
from models.question import Question, QuestionTopic
from models.progress import StudentProgress  # noqa: F401
from models.session import PracticeSession  # noqa: F401
from models.enums import QuestionStatus


async def add_questions(
    db,
    count: int = 1,
    branch_id: int = 1,
    subject_id: int = 10,
    topic_ids=(100,),
    difficulty: float = 0.5,
    status: QuestionStatus = QuestionStatus.APPROVED,
    correct_index: int = 0,
    age_days: float = 0,
):
    """Insert `count` questions sharing the given attributes and return them."""
    created_at = utcnow() - timedelta(days=age_days)
    questions = []
    for _ in range(count):
        q = Question(
            branch_id=branch_id,
            subject_id=subject_id,
            status=status.value,
            stem="Which option is correct?",
            options=["A", "B", "C", "D"],
            correct_index=correct_index,
            difficulty=difficulty,
            attempt_count=0,
            correct_count=0,
            avg_time_sec=0.0,
            created_at=created_at,
            updated_at=created_at,
        )
        q.topics = [QuestionTopic(topic_id=t, position=i) for i, t in enumerate(topic_ids)]
        questions.append(q)
    db.add_all(questions)
    await db.commit()
    return questions


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def file_session_factory(tmp_path):
    """
    Sessions on a SQLite file, each with a connection of its own, so that
    concurrent writers really contend for the database lock.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'practice.db'}",
        connect_args={"timeout": 30},
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    await engine.dispose()


@pytest.fixture
def question_factory(db_session):
    async def create(count: int = 1, **attrs):
        return await add_questions(db_session, count, **attrs)

    return create


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTP client bound to the app, backed by the test database and no Redis."""
    from httpx import AsyncClient, ASGITransport
    from api.main import app
    from db.session import get_db, get_redis

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = lambda: None
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    from api.main import sign_token

    def make(user_ref: str = "student-1"):
        return {"X-Auth-Token": sign_token(user_ref)}

    return make
