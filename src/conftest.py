"""Pytest configuration and shared fixtures."""

import copy
import datetime
import threading
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
from local_store import LocalStore
from main import app
from reconciliation import SyncService
from remote_store import get_remote_store
from typedefs import ExerciseLog, SetEntry, WorkoutSession

TEST_UID = "test_firebase_uid_123"


class FakeRemoteStore:
    """In-memory stand-in for the Firestore document store."""

    def __init__(self):
        self.documents = {}
        self.upserts = []  # (path, document) in call order
        self.fail_fetch = False
        self.fail_upsert = False

    def fetch(self, path):
        if self.fail_fetch:
            raise ConnectionError("remote unreachable")
        document = self.documents.get(tuple(path))
        return copy.deepcopy(document) if document is not None else None

    def upsert(self, path, document):
        if self.fail_upsert:
            raise PermissionError("permission denied")
        self.upserts.append((tuple(path), copy.deepcopy(document)))
        self.documents.setdefault(tuple(path), {}).update(copy.deepcopy(document))


class DeferredScheduler:
    """Collects scheduled tasks so tests can run them later, or never."""

    def __init__(self):
        self.tasks = []

    def __call__(self, func, *args, **kwargs):
        self.tasks.append((func, args, kwargs))

    def run_all(self):
        tasks, self.tasks = self.tasks, []
        for func, args, kwargs in tasks:
            func(*args, **kwargs)


@pytest.fixture
def test_engine():
    """Create a fresh in-memory SQLite database for each test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(test_engine):
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=test_engine
    )
    session = TestingSessionLocal()

    yield session

    session.close()


@pytest.fixture
def file_session_factory(tmp_path):
    """Session factory on a SQLite file, for tests that need one connection per thread."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'fitlog.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)

    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)

    engine.dispose()


def run_in_threads(worker, count: int = 2) -> None:
    """Run worker(index) on ``count`` threads and re-raise the first failure."""
    errors = []

    def target(index):
        try:
            worker(index)
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=target, args=(i,)) for i in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    if errors:
        raise errors[0]


@pytest.fixture
def store(db_session) -> LocalStore:
    return LocalStore(db_session)


@pytest.fixture
def remote() -> FakeRemoteStore:
    return FakeRemoteStore()


@pytest.fixture
def sync(store, remote) -> SyncService:
    """Sync service that performs pushes immediately."""
    return SyncService(store, remote)


# Record builders


def at_noon(day: datetime.date) -> datetime.datetime:
    return datetime.datetime.combine(day, datetime.time(12, 0))


def make_session(
    session_id: str,
    day: datetime.date | None = None,
    name: str = "Push Day",
    exercises: list[ExerciseLog] | None = None,
) -> WorkoutSession:
    return WorkoutSession(
        id=session_id,
        date=at_noon(day or datetime.date.today()),
        name=name,
        exercises=exercises or [],
    )


def make_exercise(
    name: str,
    sets: list[tuple[int | None, float | None]],
    completed: bool = True,
    exercise_id: str | None = None,
) -> ExerciseLog:
    return ExerciseLog(
        id=exercise_id or f"{name}-{len(sets)}",
        name=name,
        sets=[SetEntry(reps=reps, weight=weight) for reps, weight in sets],
        is_completed=completed,
    )


# Authentication fixtures


@pytest.fixture
def mock_firebase_auth():
    """Mock Firebase auth for testing."""
    with patch("auth.get_firebase_auth") as mock:
        mock_auth = MagicMock()
        mock_auth.verify_id_token.return_value = {
            "uid": TEST_UID,
            "email": "test@example.com",
            "email_verified": True,
        }
        mock.return_value = mock_auth
        yield mock_auth


@pytest.fixture
def auth_headers(mock_firebase_auth) -> dict:
    return {"Authorization": "Bearer test-token"}


@pytest.fixture
def client(db_session, remote):
    """Create test client with database and remote store overrides."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_remote_store] = lambda: remote

    test_client = TestClient(app)
    yield test_client

    app.dependency_overrides.clear()
