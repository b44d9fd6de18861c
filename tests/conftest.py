from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from app import create_app
from database import DatabaseManager
from security import SecurityManager
from sessions import SessionManager
from threads import ThreadManager
from users import UserManager

# PBKDF2 at production strength is too slow to run for every fixture
TEST_ROUNDS = 1000
TEST_SECRET = "test-secret"


class FakeClock:
    """Returns strictly increasing times, one minute apart"""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now += timedelta(minutes=1)
        return current


@pytest.fixture
async def database(tmp_path):
    db = DatabaseManager(str(tmp_path / "forum.db"))
    await db.connect()
    yield db
    await db.close()


@pytest.fixture
def security():
    return SecurityManager(TEST_SECRET, rounds=TEST_ROUNDS)


@pytest.fixture
def users(database, security):
    return UserManager(database, security)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def threads(database, clock):
    return ThreadManager(database, clock=clock)


@pytest.fixture
def sessions(database, security):
    return SessionManager(database, security)


@pytest.fixture
async def forum_id(database):
    doc_id, _, _ = await database.create({"_id": "f1", "type": "forum", "name": "General"})
    return doc_id


@pytest.fixture
def app(tmp_path):
    return create_app(
        db_path=str(tmp_path / "app.db"),
        secret_key=TEST_SECRET,
        password_rounds=TEST_ROUNDS,
        default_forums=["General", "Off Topic"],
        allowed_hosts=["testserver"],
    )


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
