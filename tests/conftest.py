from collections.abc import AsyncGenerator

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.core.database.base import Base
from src.core.database import get_db
from src.integrations.sheets import SheetsNotifier, get_notifier
from src.main import app
from src.modules.students.schemas import StudentCreate
from src.modules.students.service import StudentService

# Test database URL (in-memory SQLite for speed, or use test PostgreSQL)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

SHEETS_TEST_URL = "https://sheets.test/exec"

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)
test_async_session = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test and drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get test database session."""
    async with test_async_session() as session:
        yield session


@pytest.fixture
def sheets_requests() -> list[httpx.Request]:
    """Requests the notifier sent during a test."""
    return []


@pytest.fixture
def notifier(sheets_requests: list[httpx.Request]) -> SheetsNotifier:
    """Notifier pointed at a mock transport that accepts everything."""

    def handler(request: httpx.Request) -> httpx.Response:
        sheets_requests.append(request)
        return httpx.Response(200, json={"status": "success"})

    return SheetsNotifier(url=SHEETS_TEST_URL, transport=httpx.MockTransport(handler))


@pytest.fixture
async def client(
    db_session: AsyncSession, notifier: SheetsNotifier
) -> AsyncGenerator[AsyncClient, None]:
    """Get test HTTP client with overridden database and notifier dependencies."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


def _student_form(**overrides) -> dict:
    payload = {
        "last_name": "Karimov",
        "first_name": "Aziz",
        "middle_name": "Bakhtiyorovich",
        "email": "aziz.karimov@example.com",
        "phone1": "+998901234567",
        "education_level": "BACHELOR",
        "tariff": "STANDART",
        "language_certificate": "IELTS",
        "hear_about_us": "Instagram",
        "university1": "Seoul National University",
        "university2": "Yonsei University",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def student_form():
    """Factory for registration form bodies with sensible defaults."""
    return _student_form


@pytest.fixture
def make_student(db_session: AsyncSession):
    """Factory registering a student through the service."""

    async def _make(**overrides):
        service = StudentService(db_session)
        return await service.create_student(StudentCreate(**_student_form(**overrides)))

    return _make
