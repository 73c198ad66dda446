import uuid
from collections.abc import AsyncGenerator, Iterator
from datetime import UTC, date, datetime, time, timedelta

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from talent_pipeline.core.auth import Role, SessionContext
from talent_pipeline.core.config import settings
from talent_pipeline.core.file_validation import Attachment
from talent_pipeline.models import Base
from talent_pipeline.services import object_store, transition_engine
from talent_pipeline.services.handoff_dispatcher import (
    HandoffDispatcher,
    handoff_dispatcher,
)
from talent_pipeline.services.object_store import (
    InMemoryObjectStore,
    ObjectStoreError,
)
from talent_pipeline.services.record_locks import record_locks

# Test user IDs (consistent across tests for predictable ownership checks)
TEST_USER_ID = "00000000-0000-0000-0000-000000000001"
OTHER_USER_ID = "00000000-0000-0000-0000-000000000002"
DELIVERY_USER_ID = "00000000-0000-0000-0000-000000000010"
SALES_USER_ID = "00000000-0000-0000-0000-000000000020"
ADMIN_USER_ID = "00000000-0000-0000-0000-000000000030"

# Security: This is a test-only secret. Production uses a real secret from env.
TEST_AUTH_SECRET = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105

# Ready-for-deployment threshold used by test dispatchers
TEST_THRESHOLD = 6

# Minimal files that libmagic identifies by signature
PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n%%EOF\n"
PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n"
    b"\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00"
    b"\x1f\x15\xc4\x89"
)
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00"
TEXT_BYTES = b"plain text pretending to be something else\n"

MOCK_DATE = date(2026, 3, 2)
MOCK_TIME = time(10, 30)


def create_test_jwt(
    user_id: str = TEST_USER_ID,
    role: str = "EMPLOYEE",
    *,
    secret: str = TEST_AUTH_SECRET,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed JWT for test authentication.

    Args:
        user_id: Account ID to encode in the sub claim.
        role: Raw role claim (any alias normalize_role accepts).
        secret: Signing secret (must match settings.auth_secret in tests).
        expires_delta: Time until expiration. Defaults to 1 hour.

    Returns:
        Encoded JWT string.
    """
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "role": role,
        "aud": "talent-pipeline",
        "iss": "talent-pipeline",
        "exp": now + (expires_delta or timedelta(hours=1)),
        "iat": now,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(role: str, user_id: str = TEST_USER_ID) -> dict[str, str]:
    """Authorization header for one role."""
    return {"Authorization": f"Bearer {create_test_jwt(user_id, role)}"}


def pdf_attachment(filename: str = "resume.pdf") -> Attachment:
    return Attachment(
        filename=filename, content_type="application/pdf", content=PDF_BYTES
    )


def png_attachment(filename: str = "notes.png") -> Attachment:
    return Attachment(
        filename=filename, content_type="image/png", content=PNG_BYTES
    )


def jpeg_attachment(filename: str = "whiteboard.jpg") -> Attachment:
    return Attachment(
        filename=filename, content_type="image/jpeg", content=JPEG_BYTES
    )


class FailingObjectStore(InMemoryObjectStore):
    """Store that accepts a fixed number of writes, then fails."""

    def __init__(self, fail_after: int = 0) -> None:
        super().__init__()
        self.fail_after = fail_after
        self.puts = 0

    async def put(self, content: bytes, mime_type: str, filename: str) -> str:
        if self.puts >= self.fail_after:
            raise ObjectStoreError("store offline")
        self.puts += 1
        return await super().put(content, mime_type, filename)


# =============================================================================
# Database
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path):
    """Create a file-backed SQLite engine with the full schema.

    A file (not :memory:) lets concurrent sessions use separate connections.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/pipeline.db")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


# =============================================================================
# Collaborators
# =============================================================================


@pytest.fixture(autouse=True)
def reset_pipeline_state() -> Iterator[None]:
    """Clear process-wide locks, views and stored objects between tests."""
    record_locks.clear()
    handoff_dispatcher.reset()
    object_store._default_store = InMemoryObjectStore()
    yield
    record_locks.clear()
    handoff_dispatcher.reset()


@pytest.fixture
def store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def dispatcher() -> HandoffDispatcher:
    return HandoffDispatcher(threshold=TEST_THRESHOLD)


@pytest.fixture
def employee() -> SessionContext:
    return SessionContext(role=Role.EMPLOYEE, user_id=TEST_USER_ID)


@pytest.fixture
def other_employee() -> SessionContext:
    return SessionContext(role=Role.EMPLOYEE, user_id=OTHER_USER_ID)


@pytest.fixture
def delivery() -> SessionContext:
    return SessionContext(role=Role.DELIVERY, user_id=DELIVERY_USER_ID)


@pytest.fixture
def sales() -> SessionContext:
    return SessionContext(role=Role.SALES, user_id=SALES_USER_ID)


@pytest.fixture
def admin() -> SessionContext:
    return SessionContext(role=Role.ADMIN, user_id=ADMIN_USER_ID)


# =============================================================================
# API Test Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client in hosted mode (bearer JWT auth).

    Sets up:
    - Test database connection via dependency override
    - JWT auth with test secret
    - httpx.AsyncClient with ASGI transport

    Requests pass their own Authorization header (see auth_headers).
    """
    from talent_pipeline.core.database import get_db
    from talent_pipeline.main import app

    # Override get_db to use test database
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    # Enable JWT auth with test secret
    original_auth_enabled = settings.auth_enabled
    original_auth_secret = settings.auth_secret
    settings.auth_enabled = True
    settings.auth_secret = SecretStr(TEST_AUTH_SECRET)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    # Cleanup
    settings.auth_enabled = original_auth_enabled
    settings.auth_secret = original_auth_secret
    app.dependency_overrides.clear()


# =============================================================================
# Pipeline driver
# =============================================================================


class PipelineDriver:
    """Drives candidates through the pipeline with sensible defaults.

    Each method runs one transition with the matching role and returns the
    TransitionResult, so tests only spell out the fields they care about.
    """

    def __init__(
        self,
        db: AsyncSession,
        store: InMemoryObjectStore,
        dispatcher: HandoffDispatcher,
    ) -> None:
        self.db = db
        self.store = store
        self.dispatcher = dispatcher
        self.employee = SessionContext(role=Role.EMPLOYEE, user_id=TEST_USER_ID)
        self.delivery = SessionContext(role=Role.DELIVERY, user_id=DELIVERY_USER_ID)
        self.sales = SessionContext(role=Role.SALES, user_id=SALES_USER_ID)

    async def register(
        self,
        emp_id: str = "E1001",
        *,
        full_name: str = "Asha Rao",
        technology: str = "Python",
        resource_type: str = "OM",
    ):
        return await transition_engine.register_candidate(
            self.db,
            self.employee,
            emp_id=emp_id,
            full_name=full_name,
            technology=technology,
            resource_type=resource_type,
            dispatcher=self.dispatcher,
        )

    async def submit_resume(self, candidate_id: uuid.UUID):
        return await transition_engine.submit_resume(
            self.db,
            self.employee,
            candidate_id=candidate_id,
            resume=pdf_attachment(),
            store=self.store,
            dispatcher=self.dispatcher,
        )

    async def schedule_mock(
        self,
        candidate_id: uuid.UUID,
        *,
        interview_date: date = MOCK_DATE,
        interview_time: time = MOCK_TIME,
        attachments: tuple[Attachment, ...] = (),
    ):
        return await transition_engine.schedule_mock(
            self.db,
            self.delivery,
            candidate_id=candidate_id,
            interview_date=interview_date,
            interview_time=interview_time,
            interviewer_id="INT-7",
            attachments=attachments,
            store=self.store,
            dispatcher=self.dispatcher,
        )

    async def complete_mock(
        self,
        mock_id: uuid.UUID,
        *,
        technical_score: int = 7,
        communication_score: int = 8,
        sent_to_sales: bool = False,
    ):
        return await transition_engine.submit_mock_feedback(
            self.db,
            self.delivery,
            mock_id=mock_id,
            technical_feedback="Solid fundamentals",
            communication_feedback="Clear and concise",
            technical_score=technical_score,
            communication_score=communication_score,
            sent_to_sales=sent_to_sales,
            store=self.store,
            dispatcher=self.dispatcher,
        )

    async def send_to_sales(self, mock_id: uuid.UUID):
        return await transition_engine.send_to_sales(
            self.db, self.delivery, mock_id=mock_id, dispatcher=self.dispatcher
        )

    async def schedule_client(
        self,
        candidate_id: uuid.UUID,
        *,
        level: int = 1,
        client: str = "Acme Corp",
        interview_date: date = MOCK_DATE,
    ):
        return await transition_engine.schedule_client_interview(
            self.db,
            self.sales,
            candidate_id=candidate_id,
            client=client,
            interview_date=interview_date,
            interview_time=MOCK_TIME,
            level=level,
            job_description_title="Backend Engineer",
            meeting_link="https://meet.example.com/abc",
            interviewer_email="panel@acme.example.com",
            attachment=pdf_attachment("jd.pdf"),
            store=self.store,
            dispatcher=self.dispatcher,
        )

    async def record_client_result(
        self,
        interview_id: uuid.UUID,
        *,
        result: str = "selected",
        deployed_status: bool = False,
    ):
        return await transition_engine.update_client_interview(
            self.db,
            self.sales,
            interview_id=interview_id,
            result=result,
            feedback="Good cultural fit",
            technical_score="8.5",
            communication_score="7.0",
            deployed_status=deployed_status,
            store=self.store,
            dispatcher=self.dispatcher,
        )

    async def to_sales_queue(self, emp_id: str = "E1001", **scores: int):
        """Register, submit a resume, complete a mock and send it to sales."""
        registered = await self.register(emp_id)
        candidate_id = registered.record_id
        await self.submit_resume(candidate_id)
        mock = await self.schedule_mock(candidate_id)
        await self.complete_mock(mock.record_id, **scores)
        return await self.send_to_sales(mock.record_id)


@pytest.fixture
def driver(db_session, store, dispatcher) -> PipelineDriver:
    return PipelineDriver(db_session, store, dispatcher)
