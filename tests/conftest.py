from datetime import datetime, timedelta, timezone

import pytest

from bookkeeper.data.base import build_engine
from bookkeeper.data.repositories.record_store import RecordStore
from bookkeeper.domain.models import Session
from bookkeeper.domain.services import expense_service, income_service


@pytest.fixture
def store():
    store = RecordStore(build_engine("sqlite://"))
    store.create_tables()
    return store


def _session(user_id, username, is_admin):
    return Session(
        id=f"session-{user_id}",
        user_id=user_id,
        username=username,
        is_admin=is_admin,
        created_at=datetime.now(timezone.utc).isoformat(),
    )


@pytest.fixture
def admin():
    return _session("u-admin", "admin", True)


@pytest.fixture
def alice():
    return _session("u-alice", "alice", False)


@pytest.fixture
def bob():
    return _session("u-bob", "bob", False)


@pytest.fixture
def clock(monkeypatch):
    """Deterministic creation times: each record is one minute newer."""
    ticks = {"now": datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)}

    def fake_now():
        ticks["now"] += timedelta(minutes=1)
        return ticks["now"]

    monkeypatch.setattr(expense_service, "utcnow", fake_now)
    monkeypatch.setattr(income_service, "utcnow", fake_now)
    return ticks
