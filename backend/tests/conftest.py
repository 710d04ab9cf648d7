"""
ERPlay - Test Configuration and Fixtures
"""
import os
import tempfile
from datetime import datetime, timedelta
from typing import AsyncGenerator, List, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession
from faker import Faker

# Set testing environment before the app reads its settings
os.environ['TESTING'] = 'true'
os.environ['ENVIRONMENT'] = 'test'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test_erplay.db'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['JWT_REFRESH_SECRET_KEY'] = 'test-jwt-refresh-secret-for-testing'
os.environ['JWT_RESET_SECRET_KEY'] = 'test-jwt-reset-secret-for-testing'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['UPLOAD_DIR'] = tempfile.mkdtemp(prefix='erplay-uploads-')
os.environ['SMTP_HOST'] = ''
os.environ['SUPERVISOR_NOTIFY_EMAIL'] = ''

from erplay.main import app
from erplay.core.database import Base, get_db, get_engine, get_session_local
from erplay.core.security import get_password_hash, create_access_token
from erplay.models import (
    Diagram,
    Option,
    Question,
    QuestionSource,
    ReviewStatus,
    TestMode,
    TestResult,
    TestSession,
    User,
    UserRole,
)

fake = Faker()

PASSWORD = 'testpassword123'

# Smallest valid PNG signature plus padding; content is never decoded
PNG_BYTES = b'\x89PNG\r\n\x1a\n' + b'\x00' * 64


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh tables for every test"""
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with get_session_local()() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Test client sharing the test database session"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


async def create_user(db: AsyncSession, role: UserRole = UserRole.ALUMNO, email: Optional[str] = None) -> User:
    user = User(
        name=fake.first_name(),
        last_name=fake.last_name(),
        email=(email or fake.unique.email()).lower(),
        password_hash=get_password_hash(PASSWORD),
        role=role,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def headers_for(user: User) -> dict:
    token = create_access_token({'sub': str(user.id), 'role': user.role.value})
    return {'Authorization': f'Bearer {token}'}


@pytest_asyncio.fixture
async def student(db_session: AsyncSession) -> User:
    return await create_user(db_session, UserRole.ALUMNO)


@pytest_asyncio.fixture
async def supervisor(db_session: AsyncSession) -> User:
    return await create_user(db_session, UserRole.SUPERVISOR)


@pytest.fixture
def student_headers(student: User) -> dict:
    return headers_for(student)


@pytest.fixture
def supervisor_headers(supervisor: User) -> dict:
    return headers_for(supervisor)


async def create_diagram(
    db: AsyncSession,
    title: Optional[str] = None,
    questions: int = 3,
    status: ReviewStatus = ReviewStatus.APPROVED,
    creator: Optional[User] = None,
) -> Diagram:
    """Diagram with `questions` questions of four options, the first option correct"""
    diagram = Diagram(
        title=title or f"{fake.word().title()} schema {fake.unique.random_int(1, 99999)}",
        filename='diagram.png',
        path='/uploads/diagrams/diagram.png',
    )
    db.add(diagram)
    await db.flush()

    for i in range(questions):
        question = Question(
            prompt=f"Question {i + 1} about {diagram.title}?",
            hint=f"Hint {i + 1}",
            correct_option_index=0,
            status=status,
            source=QuestionSource.CATALOG,
            diagram_id=diagram.id,
            creator_id=creator.id if creator else None,
        )
        question.options = [Option(text=f"Option {chr(65 + j)}", order_index=j) for j in range(4)]
        db.add(question)

    await db.commit()
    await db.refresh(diagram)
    return diagram


async def approved_questions(db: AsyncSession, diagram: Diagram) -> List[Question]:
    from sqlalchemy import select
    from sqlalchemy.orm import selectinload

    result = await db.execute(
        select(Question)
        .options(selectinload(Question.options))
        .where(Question.diagram_id == diagram.id)
        .order_by(Question.prompt)
    )
    return list(result.scalars().all())


async def record_session(
    db: AsyncSession,
    user: User,
    diagram: Diagram,
    mode: TestMode,
    answers: List[Optional[int]],
    questions: Optional[List[Question]] = None,
    created_at: Optional[datetime] = None,
    completed: bool = True,
    time_spent: int = 10,
    used_hint: bool = False,
) -> TestSession:
    """Finished session whose i-th result answers option answers[i]; option 0 is correct"""
    created_at = created_at or datetime.utcnow()
    questions = questions or await approved_questions(db, diagram)
    correct = len([a for a in answers if a == 0])
    incorrect = len([a for a in answers if a is not None and a != 0])

    session = TestSession(
        user_id=user.id,
        diagram_id=diagram.id,
        mode=mode,
        total_questions=len(answers),
        correct_count=correct if completed else 0,
        incorrect_count=incorrect if completed else 0,
        score=round(correct / len(answers) * 10, 2) if completed and mode == TestMode.EXAM else None,
        created_at=created_at,
        completed_at=created_at + timedelta(minutes=5) if completed else None,
        duration_seconds=300 if completed else None,
    )
    db.add(session)
    await db.flush()

    for i, answer in enumerate(answers):
        q = questions[i % len(questions)]
        db.add(TestResult(
            session_id=session.id,
            question_id=q.id,
            order_index=i,
            prompt_snapshot=q.prompt,
            options_snapshot=q.option_texts,
            correct_index_at_test=0,
            selected_index=answer,
            used_hint=used_hint,
            revealed_answer=False,
            attempts_count=1 if answer is not None else 0,
            time_spent_seconds=time_spent,
            is_correct=None if answer is None else answer == 0,
            created_at=created_at,
        ))
    await db.commit()
    return session


# ==================== Factory fixtures ====================

@pytest.fixture
def make_user(db_session: AsyncSession):
    async def _make(role: UserRole = UserRole.ALUMNO, email: Optional[str] = None) -> User:
        return await create_user(db_session, role, email)
    return _make


@pytest.fixture
def make_diagram(db_session: AsyncSession):
    async def _make(**kwargs) -> Diagram:
        return await create_diagram(db_session, **kwargs)
    return _make


@pytest.fixture
def make_session(db_session: AsyncSession):
    async def _make(user: User, diagram: Diagram, mode: TestMode, answers, **kwargs) -> TestSession:
        return await record_session(db_session, user, diagram, mode, answers, **kwargs)
    return _make


@pytest.fixture
def auth_headers():
    """Builds Authorization headers for any user"""
    return headers_for


@pytest.fixture
def png_upload():
    """Multipart `files` entry for a diagram image"""
    return {'image': ('diagram.png', PNG_BYTES, 'image/png')}
