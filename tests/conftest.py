"""
Shared pytest fixtures for Work Diary tests.
"""
import uuid
from datetime import date, datetime
from typing import Optional
from unittest.mock import AsyncMock

import httpx
import pytest
from mongomock_motor import AsyncMongoMockClient

from workdiary.mirror import LocalMirror
from workdiary.models import DiaryEntry, DiaryPage, UserRef
from workdiary.server import app, get_db
from workdiary.status import Notice
from workdiary.synchronizer import Synchronizer

PASSWORD = "secret123"


# --- Model builders ---

ALICE = UserRef(id="user-alice", name="Alice", email="alice@example.com")
BOB = UserRef(id="user-bob", name="Bob", email="bob@example.com")


def make_entry(
    entry_id: str = "entry-1",
    user: UserRef = ALICE,
    content: str = "Shipped the release",
    day: Optional[date] = None,
    updated_at: Optional[datetime] = None,
    **fields,
) -> DiaryEntry:
    stamp = updated_at or datetime(2026, 10, 19, 9, 0, 0)
    return DiaryEntry(
        id=entry_id,
        user=user,
        content=content,
        date=day or date.today(),
        created_at=datetime(2026, 10, 19, 8, 0, 0),
        updated_at=stamp,
        **fields,
    )


class FakeClock:
    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


# --- In-process API server ---

@pytest.fixture
def db():
    return AsyncMongoMockClient()["work_diary_test"]


@pytest.fixture
def api(db):
    app.dependency_overrides[get_db] = lambda: db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def http(api):
    transport = httpx.ASGITransport(app=api)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver/api") as client:
        yield client


@pytest.fixture
def register(http):
    """Register a fresh user; returns (auth headers, user dict)."""

    async def _register(name: str = "Alice"):
        email = f"{name.lower()}-{uuid.uuid4().hex[:8]}@example.com"
        response = await http.post(
            "/users/register", json={"name": name, "email": email, "password": PASSWORD}
        )
        assert response.status_code == 200, response.text
        body = response.json()
        return {"Authorization": f"Bearer {body['token']}"}, body["user"]

    return _register


# --- Client-side components with a mocked Remote Store ---

@pytest.fixture
def remote():
    """Remote Store double; every call is an AsyncMock."""
    store = AsyncMock()
    store.user = ALICE
    store.list_diaries = AsyncMock(return_value=DiaryPage(diaries=[], total_pages=1, current_page=1))
    return store


@pytest.fixture
def mirror():
    return LocalMirror()


@pytest.fixture
def status(clock):
    return Notice(clock=clock)


@pytest.fixture
def synchronizer(remote, mirror, status):
    return Synchronizer(remote, mirror, status=status)
