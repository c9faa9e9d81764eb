"""In-memory job runner for long simulation and importance requests."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from threading import RLock, Thread
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

logger = logging.getLogger(__name__)

DEFAULT_MAX_FINISHED = 200


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class JobRecord:
    job_id: str
    job_type: str
    status: str
    created_at: datetime
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    result: Optional[Any] = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def finished(self) -> bool:
        return self.finished_at is not None

    def copy(self) -> "JobRecord":
        return replace(self, metadata=dict(self.metadata))


class JobManager:
    """Run engine calls on daemon threads and keep their outcome in memory.

    Only the ``max_finished`` most recently finished jobs are retained; older
    ones are forgotten whenever a job is submitted or waited on. Pending and
    running jobs are never dropped.
    """

    def __init__(self, max_finished: int = DEFAULT_MAX_FINISHED) -> None:
        if max_finished <= 0:
            raise ValueError(f"max_finished must be positive, got {max_finished}")
        self.max_finished = max_finished
        self._lock = RLock()
        self._jobs: Dict[str, JobRecord] = {}
        self._threads: Dict[str, Thread] = {}

    def _update(self, job_id: str, **fields: Any) -> None:
        with self._lock:
            record = self._jobs.get(job_id)
            if record is not None:
                for key, value in fields.items():
                    setattr(record, key, value)

    def _run(self, job_id: str, job_type: str, func: Callable[[], Any]) -> None:
        self._update(job_id, status="running", started_at=_utcnow())
        try:
            result = func()
        except Exception as exc:  # pragma: no cover - surfaced via API
            logger.exception("Job %s (%s) failed", job_id, job_type)
            self._update(job_id, status="failed", finished_at=_utcnow(), error=str(exc))
        else:
            self._update(job_id, status="completed", finished_at=_utcnow(), result=result)

    def prune(self) -> int:
        """Forget finished jobs beyond the retention cap; returns how many went."""

        with self._lock:
            for job_id in [j for j, record in self._jobs.items() if record.finished]:
                self._threads.pop(job_id, None)
            finished = sorted(
                (record for record in self._jobs.values() if record.finished),
                key=lambda record: record.finished_at,
            )
            stale = finished[: max(len(finished) - self.max_finished, 0)]
            for record in stale:
                del self._jobs[record.job_id]
        if stale:
            logger.debug("Dropped %d finished job(s)", len(stale))
        return len(stale)

    def create_job(
        self,
        job_type: str,
        func: Callable[..., Any],
        *,
        args: tuple[Any, ...] = (),
        kwargs: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        job_id = uuid4().hex
        call_kwargs = kwargs or {}
        thread = Thread(
            target=self._run,
            args=(job_id, job_type, lambda: func(*args, **call_kwargs)),
            name=f"job-{job_id}",
            daemon=True,
        )
        with self._lock:
            self._jobs[job_id] = JobRecord(
                job_id=job_id,
                job_type=job_type,
                status="pending",
                created_at=_utcnow(),
                metadata=metadata or {},
            )
            self._threads[job_id] = thread
        self.prune()
        thread.start()
        logger.info("Started %s job %s", job_type, job_id)
        return job_id

    def get(self, job_id: str) -> Optional[JobRecord]:
        with self._lock:
            record = self._jobs.get(job_id)
            return record.copy() if record is not None else None

    def list(self) -> List[JobRecord]:
        with self._lock:
            records = [record.copy() for record in self._jobs.values()]
        return sorted(records, key=lambda record: record.created_at, reverse=True)

    def wait(self, job_id: str, timeout: Optional[float] = None) -> Optional[JobRecord]:
        """Block until ``job_id`` finishes (used by the CLI and tests)."""

        with self._lock:
            thread = self._threads.get(job_id)
        if thread is not None:
            thread.join(timeout)
        record = self.get(job_id)
        self.prune()
        return record


job_manager = JobManager()
