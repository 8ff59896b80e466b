from datetime import datetime, timezone
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from main import create_app
from sidebuilds.auth import User, get_authorized_user, get_optional_user

USER_ID = "user-1"
OTHER_USER_ID = "user-2"
NOW = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)

DB_MODULES = [
    "sidebuilds.apis.activity",
    "sidebuilds.apis.marketplace",
    "sidebuilds.apis.metrics",
    "sidebuilds.apis.projects",
    "sidebuilds.apis.users",
]


class FakeTransaction:
    def __init__(self, conn):
        self.conn = conn

    async def __aenter__(self):
        self.conn.transactions += 1
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeConnection:
    """Stands in for an asyncpg connection.

    Queries are matched against registered handlers by method and a SQL
    substring; the first match wins. A handler result may be a callable,
    which receives the query arguments.
    """

    def __init__(self):
        self.handlers = []
        self.calls = []
        self.closed = False
        self.transactions = 0

    def on(self, method, fragment, result):
        self.handlers.append((method, fragment, result))

    def queries(self, method=None):
        return [q for m, q, _ in self.calls if method is None or m == method]

    def calls_matching(self, fragment):
        return [(m, q, args) for m, q, args in self.calls if fragment in q]

    async def _dispatch(self, method, query, args, default):
        normalized = " ".join(query.split())
        self.calls.append((method, normalized, args))
        for handler_method, fragment, result in self.handlers:
            if handler_method == method and fragment in normalized:
                if isinstance(result, Exception):
                    raise result
                return result(*args) if callable(result) else result
        return default

    async def fetch(self, query, *args):
        return await self._dispatch("fetch", query, args, [])

    async def fetchrow(self, query, *args):
        return await self._dispatch("fetchrow", query, args, None)

    async def fetchval(self, query, *args):
        return await self._dispatch("fetchval", query, args, None)

    async def execute(self, query, *args):
        return await self._dispatch("execute", query, args, "OK")

    def transaction(self):
        return FakeTransaction(self)

    async def close(self):
        self.closed = True


def make_project(**overrides):
    project = {
        "id": uuid4(),
        "user_id": USER_ID,
        "name": "Side Project",
        "description": "A small SaaS",
        "stage": "mvp",
        "status": "active",
        "is_public": False,
        "for_sale": False,
        "asking_price": None,
        "domain_name": None,
        "repo_url": None,
        "live_url": None,
        "image_url": None,
        "created_at": NOW,
        "updated_at": NOW,
    }
    project.update(overrides)
    return project


@pytest.fixture
def db(monkeypatch):
    conn = FakeConnection()

    async def fake_get_db_connection():
        return conn

    for module in DB_MODULES:
        monkeypatch.setattr(f"{module}.get_db_connection", fake_get_db_connection)
    return conn


@pytest.fixture
def app():
    app = create_app()
    user = User(sub=USER_ID, email="maker@example.com", user_metadata={"full_name": "Indie Maker"})
    app.dependency_overrides[get_authorized_user] = lambda: user
    app.dependency_overrides[get_optional_user] = lambda: user
    return app


@pytest.fixture
def client(app, db):
    return TestClient(app)


@pytest.fixture
def anonymous_client(db):
    return TestClient(create_app())
