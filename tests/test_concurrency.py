# tests/test_concurrency.py

import random
import threading
import uuid

import pytest
from sqlmodel import Session

from conftest import is_dense, make_user, task_orders
from todo_api.core.errors import StoreUnavailable
from todo_api.db.session import build_engine, create_db_and_tables
from todo_api.services.locking import OwnerLockRegistry
from todo_api.services.task_store import TaskStore


def test_lock_wait_is_bounded() -> None:
    locks = OwnerLockRegistry()
    owner_id = uuid.uuid4()
    held = threading.Event()
    release = threading.Event()

    def holder():
        with locks.hold(owner_id, timeout=1.0):
            held.set()
            release.wait(5)

    thread = threading.Thread(target=holder)
    thread.start()
    try:
        assert held.wait(5)
        with pytest.raises(StoreUnavailable):
            with locks.hold(owner_id, timeout=0.05):
                pass
        # A different owner is never blocked
        with locks.hold(uuid.uuid4(), timeout=0.05):
            pass
    finally:
        release.set()
        thread.join()


def test_lock_is_released_after_errors() -> None:
    locks = OwnerLockRegistry()
    owner_id = uuid.uuid4()

    with pytest.raises(RuntimeError):
        with locks.hold(owner_id, timeout=0.1):
            raise RuntimeError("boom")

    with locks.hold(owner_id, timeout=0.1):
        pass


def test_idle_owner_locks_are_evicted() -> None:
    locks = OwnerLockRegistry()
    owner_id = uuid.uuid4()

    with locks.hold(owner_id, timeout=0.1):
        assert len(locks) == 1
    assert len(locks) == 0

    with pytest.raises(RuntimeError):
        with locks.hold(owner_id, timeout=0.1):
            raise RuntimeError("boom")
    assert len(locks) == 0


def test_timed_out_waiter_leaves_holder_entry_in_place() -> None:
    locks = OwnerLockRegistry()
    owner_id = uuid.uuid4()

    with locks.hold(owner_id, timeout=0.1):
        with pytest.raises(StoreUnavailable):
            with locks.hold(owner_id, timeout=0.01):
                pass
        assert len(locks) == 1
    assert len(locks) == 0


def test_concurrent_moves_keep_orders_dense(tmp_path) -> None:
    engine = build_engine(f"sqlite:///{tmp_path / 'tasks.db'}", timeout=10.0)
    create_db_and_tables(engine)
    owner = make_user(engine, "carol@example.com", "Carol")
    locks = OwnerLockRegistry()

    with Session(engine) as session:
        store = TaskStore(session, locks=locks, lock_timeout=10.0)
        task_ids = [store.create(owner.id, {"title": f"T{i}"}).id for i in range(8)]

    errors = []

    def worker(seed: int):
        rng = random.Random(seed)
        try:
            for _ in range(10):
                with Session(engine) as session:
                    store = TaskStore(session, locks=locks, lock_timeout=10.0)
                    if rng.random() < 0.2:
                        ids = list(task_ids)
                        rng.shuffle(ids)
                        store.reorder_all(owner.id, ids)
                    else:
                        store.move_task(owner.id, rng.choice(task_ids), rng.randint(-1, 9))
        except Exception as exc:  # surfaced through the assertion below
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(seed,)) for seed in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    with Session(engine) as session:
        orders = task_orders(TaskStore(session, locks=locks), owner.id)
    assert len(orders) == 8
    assert is_dense(orders)
    engine.dispose()
