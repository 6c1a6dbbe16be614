"""Pytest fixtures for the reference verification tests."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["EMAIL_SERVER"] = ""

from datetime import datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from core.get_db import Base
from email_notify.notification_gateway import NotificationGateway
from models import models  # noqa: F401
from models.enums import ReferenceType
from repos.tenant_repo import TenantRepo
from schemas.schema import ReferenceProvider, ReferenceRequestCreate


class FrozenClock:
    """Callable clock the services read instead of the wall clock."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingGateway(NotificationGateway):
    def __init__(self, succeed: bool = True, raise_error: bool = False):
        self.succeed = succeed
        self.raise_error = raise_error
        self.sent: list[tuple] = []

    async def send(self, kind, payload) -> bool:
        self.sent.append((kind, payload))
        if self.raise_error:
            raise RuntimeError("smtp relay unreachable")
        return self.succeed

    def kinds(self) -> list:
        return [kind for kind, _ in self.sent]

    def last(self, kind) -> dict:
        for sent_kind, payload in reversed(self.sent):
            if sent_kind == kind:
                return payload
        raise AssertionError(f"no {kind} notification recorded")


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
async def engine():
    """In-memory SQLite shared across sessions through a single connection."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# =============================================================================
# Domain helpers
# =============================================================================


@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 3, 2, 9, 0, 0))


@pytest.fixture
def gateway():
    return RecordingGateway()


@pytest.fixture
async def tenant(db):
    return await TenantRepo(db).create(
        {
            "first_name": "Amina",
            "last_name": "Wanjiru",
            "email": "amina.wanjiru@example.com",
            "phone_number": "+254712345678",
        }
    )


def make_request(
    reference_type: ReferenceType = ReferenceType.PREVIOUS_LANDLORD,
    email: str = "landlord@example.com",
) -> ReferenceRequestCreate:
    return ReferenceRequestCreate(
        reference_type=reference_type,
        reference_provider=ReferenceProvider(
            name="Joseph Otieno",
            email=email,
            phone="+254700111222",
            relationship="Landlord 2021-2024",
        ),
    )
