"""
Pytest fixtures for testing
"""
import uuid
from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine, JSON
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from sqlalchemy.dialects.postgresql import JSONB

from app.config import Settings
from app.application.whatsapp_client import MessageSender, SendOutcome
from app.infrastructure.db.session import Base
from app.infrastructure.db.models import Branch, GymSettings, Member, Subscription

# 09:30 IST on 2026-03-10
FIXED_NOW = datetime(2026, 3, 10, 4, 0, tzinfo=timezone.utc)
TODAY = date(2026, 3, 10)


@pytest.fixture
def db_engine():
    """Create in-memory SQLite engine for tests, with JSONB→JSON mapping."""
    # StaticPool + check_same_thread: TestClient runs sync routes in a worker thread
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    # SQLite doesn't support JSONB, remap to JSON for tests
    for table in Base.metadata.tables.values():
        for col in table.columns:
            if isinstance(col.type, JSONB):
                col.type = JSON()
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Session:
    """Create database session for tests"""
    SessionLocal = sessionmaker(bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def settings():
    """Settings with provider credentials, isolated from .env"""
    return Settings(
        DATABASE_URL="sqlite:///:memory:",
        PERISKOPE_API_KEY="test-key",
        PERISKOPE_PHONE="919000000000",
        ADMIN_WHATSAPP_NUMBER="",
        _env_file=None,
    )


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


class FakeSender(MessageSender):
    """Records every call; numbers in fail_phones get a provider error."""

    def __init__(self):
        self.calls: list[tuple[str, str]] = []
        self.fail_phones: set[str] = set()
        self.raise_phones: set[str] = set()

    def send(self, phone: str, message: str) -> SendOutcome:
        self.calls.append((phone, message))
        if phone in self.raise_phones:
            raise ConnectionError(f"connection reset for {phone}")
        if phone in self.fail_phones:
            return SendOutcome(ok=False, status_code=500, error="HTTP 500: provider error")
        return SendOutcome(ok=True, status_code=200)

    def phones(self) -> list[str]:
        return [phone for phone, _ in self.calls]


@pytest.fixture
def sender():
    return FakeSender()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

@pytest.fixture
def make_branch(db_session):
    def _make(name="Dinhata", enabled=True, auto_send=None, with_settings=True, gym_name=None) -> Branch:
        branch = Branch(id=uuid.uuid4(), name=name)
        db_session.add(branch)
        db_session.flush()
        if with_settings:
            db_session.add(GymSettings(
                branch_id=branch.id,
                whatsapp_enabled=enabled,
                whatsapp_auto_send=auto_send,
                gym_name=gym_name,
            ))
        db_session.commit()
        return branch
    return _make


@pytest.fixture
def make_member(db_session):
    def _make(branch, name="Aarav", phone="9876543210", days=0, status="active", sub_branch=None) -> Member:
        """Member with one subscription ending `days` from TODAY."""
        member = Member(id=uuid.uuid4(), name=name, phone=phone, branch_id=branch.id)
        db_session.add(member)
        db_session.flush()
        end = TODAY + timedelta(days=days)
        db_session.add(Subscription(
            id=uuid.uuid4(),
            member_id=member.id,
            start_date=end - timedelta(days=30),
            end_date=end,
            status=status,
            branch_id=sub_branch.id if sub_branch is not None else None,
        ))
        db_session.commit()
        return member
    return _make
