"""Pytest configuration and fixtures."""

import os

# Settings has required fields; give the test process a complete environment
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client-id.apps.googleusercontent.com")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "test")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test")
os.environ.setdefault("AWS_S3_BUCKET", "calcify-test")
os.environ.setdefault("AWS_S3_REGION", "us-east-2")

from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient

from calcify.api.deps import get_current_user
from calcify.db.models import User
from calcify.db.session import get_db
from calcify.main import app


class FakeResult:
    """Just enough of sqlalchemy's Result for the queries under test."""

    def __init__(self, rows):
        self._rows = list(rows)

    def scalar_one_or_none(self):
        return self._rows[0] if self._rows else None

    def scalars(self):
        return _Scalars(self._rows)


class _Scalars:
    def __init__(self, rows):
        self._rows = rows

    def __iter__(self):
        return iter(self._rows)

    def all(self):
        return list(self._rows)


class FakeSession:
    """
    In-memory stand-in for AsyncSession.

    execute() pops queued results in order; add/flush/refresh fill in the
    defaults the database would.
    """

    def __init__(self, results=None, fail_on_commit: Exception | None = None):
        self.results = list(results or [])
        self.added = []
        self.deleted = []
        self.executed = []
        self.commits = 0
        self.rollbacks = 0
        self.fail_on_commit = fail_on_commit

    def queue(self, *rows):
        self.results.append(FakeResult(rows))

    async def execute(self, statement):
        self.executed.append(statement)
        if self.results:
            return self.results.pop(0)
        return FakeResult([])

    def add(self, obj):
        self.added.append(obj)

    def add_all(self, objs):
        self.added.extend(objs)

    async def delete(self, obj):
        self.deleted.append(obj)

    async def flush(self):
        for obj in self.added:
            _fill_defaults(obj)

    async def commit(self):
        if self.fail_on_commit is not None:
            raise self.fail_on_commit
        self.commits += 1

    async def rollback(self):
        self.rollbacks += 1

    async def refresh(self, obj):
        _fill_defaults(obj)


def _fill_defaults(obj):
    now = datetime.now(timezone.utc)
    if hasattr(obj, "id") and getattr(obj, "id", None) is None:
        obj.id = uuid4()
    for column in ("created_at", "updated_at", "rendered_at"):
        if hasattr(type(obj), column) and getattr(obj, column, None) is None:
            setattr(obj, column, now)


@pytest.fixture
def user() -> User:
    now = datetime(2025, 9, 1, 12, 0, tzinfo=timezone.utc)
    return User(id=uuid4(), email="learner@example.com", name="Test Learner", created_at=now, updated_at=now)


@pytest.fixture
def fake_db() -> FakeSession:
    return FakeSession()


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
async def authed_client(user, fake_db) -> AsyncGenerator[AsyncClient, None]:
    """Client whose requests run as `user` against `fake_db`."""

    async def _db():
        yield fake_db

    app.dependency_overrides[get_current_user] = lambda: user
    app.dependency_overrides[get_db] = _db
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
