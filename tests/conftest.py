"""
Test configuration for expert interview tests.

Every test gets its own in-memory SQLite database; the application's get_db
dependency is overridden to use it.
"""
# Set test environment variables BEFORE any imports that might use them
import os
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["TESTING"] = "true"
os.environ["LOG_TO_FILE"] = "false"
os.environ["ENVIRONMENT"] = "test"
os.environ["OPENAI_API_KEY"] = ""
os.environ["APP_URL"] = "http://testserver"

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from expert_interviews.db.base_class import Base
from expert_interviews.db.session import get_db
from expert_interviews.models import models  # noqa: F401
from expert_interviews.models.models import PreferredAnswer
from expert_interviews.crud.crud_interview_link import interview_link_crud
from expert_interviews.crud.crud_project import project_crud
from expert_interviews.schemas.interview import AnswerSubmit
from expert_interviews.schemas.interview_link import InterviewLinkCreate
from expert_interviews.schemas.project import ProjectCreate
from expert_interviews.services import interview_service
from expert_interviews.services.csv_service import import_questions_csv

SAMPLE_CSV = (
    "questionId,questionText,answerA,answerB\n"
    "q1,What is a race condition?,Two threads racing,A timing bug on shared state\n"
    "q2,\"What does \"\"idempotent\"\" mean?\",\"Same result, every time\",Fast\n"
    "q3,Define latency,Delay,Throughput\n"
)


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database with all tables."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def project(db):
    """Project with the sample questions imported."""
    created = await project_crud.create(db, obj_in=ProjectCreate(name="LLM answers"))
    await db.commit()
    await import_questions_csv(db, project_id=created.id, csv_content=SAMPLE_CSV, filename="sample.csv")
    return created


@pytest_asyncio.fixture
async def link(db, project):
    created = await interview_link_crud.create(
        db,
        obj_in=InterviewLinkCreate(name="Expert 1", interview_name="Dr. Ada", row_quota=2),
        project_id=project.id,
    )
    await db.commit()
    return created


@pytest_asyncio.fixture
async def expired_link(db, project):
    created = await interview_link_crud.create(
        db,
        obj_in=InterviewLinkCreate(
            name="Old link",
            interview_name="Dr. Late",
            expiry_date=datetime.now(timezone.utc) - timedelta(days=1),
        ),
        project_id=project.id,
    )
    await db.commit()
    return created


@pytest_asyncio.fixture
async def completed_session(db, link):
    """Completed session with two answered questions."""
    started = await interview_service.start_session(db, link.id)
    session_id = started.session.id
    await interview_service.submit_answer(
        db, session_id,
        AnswerSubmit(question_id="q1", preferred_answer=PreferredAnswer.B,
                     transcript="user: B names shared state\nassistant: Why?\nA is vague"),
    )
    await interview_service.submit_answer(
        db, session_id,
        AnswerSubmit(question_id="q2", preferred_answer=PreferredAnswer.A,
                     transcript=[{"role": "user", "content": "A is correct"}]),
    )
    return await interview_service.complete_session(db, session_id)


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTP client for the main API bound to the test database."""
    from expert_interviews.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    with patch("expert_interviews.api.routes.interviews.trigger_analysis", new_callable=AsyncMock) as trigger:
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http_client:
            http_client.trigger_analysis = trigger
            yield http_client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def analysis_client(session_factory):
    """HTTP client for the analysis server bound to the test database."""
    from expert_interviews.analysis_server import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client
    app.dependency_overrides.clear()
