from __future__ import annotations

import threading
from typing import Any

import pendulum
import pytest

from gigscreening.core import LifecycleMachine
from gigscreening.errors import AlreadyFinalized, InvalidTransition, NotFound, StaleState
from gigscreening.schemas import Submission, WorkerProfile, WorkerStatus
from gigscreening.store import InMemoryStore


def build_worker(**kwargs: Any) -> WorkerProfile:
    defaults: dict[str, Any] = {
        "worker_id": "W-001",
        "application_approved": True,
        "worker_status": WorkerStatus.SCREENING_UNLOCKED,
    }
    defaults.update(kwargs)
    return WorkerProfile(**defaults)


def build_submission(**kwargs: Any) -> Submission:
    defaults: dict[str, Any] = {
        "submission_id": "SUB-001",
        "worker_id": "W-001",
        "screening_id": "SCR-001",
        "submitted_at": pendulum.datetime(2024, 6, 1),
    }
    defaults.update(kwargs)
    return Submission(**defaults)


def test_commit_bumps_version():
    store = InMemoryStore(workers=[build_worker()])
    worker = store.get_worker("W-001")

    saved = store.commit(worker.model_copy(update={"attempt_count": 1}), expected_version=0)

    assert saved.version == 1
    assert store.get_worker("W-001").attempt_count == 1


def test_stale_writer_is_rejected():
    store = InMemoryStore(workers=[build_worker()])
    machine = LifecycleMachine()
    first = store.get_worker("W-001")
    second = store.get_worker("W-001")

    store.commit(machine.transition(first, WorkerStatus.TEST_SUBMITTED), expected_version=first.version)

    with pytest.raises(StaleState) as excinfo:
        store.commit(machine.transition(second, WorkerStatus.SUSPENDED), expected_version=second.version)

    assert isinstance(excinfo.value, InvalidTransition)
    assert store.get_worker("W-001").worker_status is WorkerStatus.TEST_SUBMITTED


def test_concurrent_commits_have_single_winner():
    store = InMemoryStore(workers=[build_worker()])
    machine = LifecycleMachine()
    snapshot = store.get_worker("W-001")
    barrier = threading.Barrier(8)
    outcomes: list[str] = []
    lock = threading.Lock()

    def attempt() -> None:
        updated = machine.transition(snapshot, WorkerStatus.TEST_SUBMITTED)
        barrier.wait()
        try:
            store.commit(updated, expected_version=snapshot.version)
            result = "won"
        except StaleState:
            result = "stale"
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=attempt) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert outcomes.count("won") == 1
    assert outcomes.count("stale") == 7
    assert store.get_worker("W-001").version == 1


def test_finalized_submission_cannot_be_overwritten():
    store = InMemoryStore(workers=[build_worker()])
    final = build_submission(submission_status="approved")
    store.commit(store.get_worker("W-001"), expected_version=0, submission=final)

    with pytest.raises(AlreadyFinalized):
        store.commit(
            store.get_worker("W-001"),
            expected_version=1,
            submission=final.model_copy(update={"submission_status": "rejected"}),
        )


def test_latest_submission_picks_most_recent():
    store = InMemoryStore(
        workers=[build_worker()],
        submissions=[
            build_submission(submission_id="SUB-1", submitted_at=pendulum.datetime(2024, 6, 1)),
            build_submission(submission_id="SUB-2", submitted_at=pendulum.datetime(2024, 6, 5)),
        ],
    )

    assert store.latest_submission("W-001", "SCR-001").submission_id == "SUB-2"
    with pytest.raises(NotFound):
        store.latest_submission("W-001", "SCR-404")


def test_missing_worker_raises_not_found():
    with pytest.raises(NotFound) as excinfo:
        InMemoryStore().get_worker("nobody")

    assert excinfo.value.to_dict()["error"] == "not_found"


def test_snapshot_round_trip_preserves_state():
    store = InMemoryStore(workers=[build_worker(attempt_count=1)], submissions=[build_submission()])

    restored = InMemoryStore.from_snapshot(store.snapshot())

    assert restored.get_worker("W-001").attempt_count == 1
    assert restored.get_submission("SUB-001").screening_id == "SCR-001"
