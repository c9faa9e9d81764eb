from __future__ import annotations

import threading

import pytest

from api.background import JobManager


def test_job_result_and_failure_are_recorded() -> None:
    manager = JobManager()
    ok = manager.create_job("sum", sum, args=([1, 2, 3],), metadata={"division": "D1"})
    bad = manager.create_job("boom", lambda: 1 / 0)

    done = manager.wait(ok, timeout=5)
    assert done.status == "completed"
    assert done.result == 6
    assert done.metadata == {"division": "D1"}

    failed = manager.wait(bad, timeout=5)
    assert failed.status == "failed"
    assert "division by zero" in failed.error


def test_finished_jobs_beyond_cap_are_forgotten() -> None:
    manager = JobManager(max_finished=2)
    job_ids = []
    for value in range(4):
        job_id = manager.create_job("echo", lambda v=value: v)
        manager.wait(job_id, timeout=5)
        job_ids.append(job_id)

    assert manager.get(job_ids[0]) is None
    assert manager.get(job_ids[1]) is None
    assert {record.job_id for record in manager.list()} == {job_ids[2], job_ids[3]}
    assert manager._threads == {}


def test_running_jobs_survive_pruning() -> None:
    manager = JobManager(max_finished=1)
    release = threading.Event()
    slow = manager.create_job("slow", release.wait, args=(5,))
    for _ in range(3):
        manager.wait(manager.create_job("quick", lambda: None), timeout=5)

    assert manager.get(slow) is not None
    assert len(manager.list()) == 2
    release.set()
    assert manager.wait(slow, timeout=5).status == "completed"


def test_retention_cap_must_be_positive() -> None:
    with pytest.raises(ValueError):
        JobManager(max_finished=0)
