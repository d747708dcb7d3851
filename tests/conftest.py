# tests/conftest.py

import os
from datetime import timedelta

# Keep the app's module-level engine off disk; set before todo_api is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from todo_api.core.security import create_access_token
from todo_api.db.session import create_db_and_tables, get_session
from todo_api.main import create_app
from todo_api.models.task import utcnow
from todo_api.models.user import User
from todo_api.services.locking import OwnerLockRegistry
from todo_api.services.task_store import TaskStore


def make_user(engine, email: str, name: str = "Test User") -> User:
    with Session(engine) as session:
        user = User(email=email, password_hash="not-a-real-hash", name=name)
        session.add(user)
        session.commit()
        session.refresh(user)
        return user


def future(days: int = 1):
    return utcnow() + timedelta(days=days)


def task_orders(store: TaskStore, owner_id) -> list:
    """Stored order values for one owner, in display order."""
    return [task.order for task in store._order_rows(owner_id)]


def is_dense(orders) -> bool:
    values = sorted(orders)
    return values == list(range(len(values)))


@pytest.fixture()
def engine():
    """Shared in-memory database; StaticPool keeps one connection alive for the test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def owner(engine) -> User:
    return make_user(engine, "alice@example.com", "Alice")


@pytest.fixture()
def other_owner(engine) -> User:
    return make_user(engine, "bob@example.com", "Bob")


@pytest.fixture()
def session(engine, owner, other_owner):
    with Session(engine) as session:
        yield session


@pytest.fixture()
def store(session) -> TaskStore:
    return TaskStore(session, locks=OwnerLockRegistry(), lock_timeout=1.0)


@pytest.fixture()
def client(engine):
    app = create_app()

    def override_get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    with TestClient(app) as test_client:
        yield test_client


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def alice_headers(owner) -> dict:
    return auth_headers(owner)


@pytest.fixture()
def bob_headers(other_owner) -> dict:
    return auth_headers(other_owner)
