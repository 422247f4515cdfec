"""
Upload job records and the JobStore port.

Why: The admission flow needs a persisted job per upload so that a later
ingestion step can pick up the object. The store is a narrow port so the flow
can be tested with the in-memory implementation below; Postgres lives in
`jobs_db.py`.

Lifecycle:
    uploading --> uploaded --> processing --> completed
        \\            \\             \\
         +-----------+-------------+--> error

Transitions only move forward; `completed` and `error` are terminal.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Protocol
import time
import uuid


STATUS_UPLOADING = "uploading"
STATUS_UPLOADED = "uploaded"
STATUS_PROCESSING = "processing"
STATUS_COMPLETED = "completed"
STATUS_ERROR = "error"

STAGE_AWAITING_UPLOAD = "awaiting_upload"

# Non-null placeholder until the real key is known (column is NOT NULL).
PENDING_STORAGE_KEY = "pending"

_FORWARD_TRANSITIONS = {
    STATUS_UPLOADING: frozenset({STATUS_UPLOADED, STATUS_ERROR}),
    STATUS_UPLOADED: frozenset({STATUS_PROCESSING, STATUS_ERROR}),
    STATUS_PROCESSING: frozenset({STATUS_COMPLETED, STATUS_ERROR}),
    STATUS_COMPLETED: frozenset(),
    STATUS_ERROR: frozenset(),
}

JOB_STATUSES = tuple(_FORWARD_TRANSITIONS)

UPDATABLE_FIELDS = frozenset(
    {
        "status",
        "stage",
        "storage_key",
        "original_filename",
        "content_type",
        "size_bytes",
        "last_error",
        "stage_error",
    }
)


class JobStoreError(Exception):
    """Raised when the backing store fails to create or update a job."""


class InvalidStatusTransition(ValueError):
    def __init__(self, current: str, new: str):
        super().__init__(f"invalid_status_transition:{current}->{new}")
        self.current = current
        self.new = new


def can_transition(current: str, new: str) -> bool:
    """Return True when moving a job from `current` to `new` is allowed.

    Re-asserting the same status is a no-op and therefore allowed.
    """
    if current == new:
        return True
    return new in _FORWARD_TRANSITIONS.get(current, frozenset())


@dataclass(frozen=True)
class UploadJob:
    id: str
    user_id: str
    status: str
    stage: str
    bucket: str
    storage_key: str
    original_filename: Optional[str] = None
    content_type: Optional[str] = None
    size_bytes: Optional[int] = None
    last_error: Optional[str] = None
    stage_error: Optional[str] = None
    created_at: Optional[int] = None


class JobStore(Protocol):
    def create(self, *, user_id: str, status: str, stage: str, bucket: str, storage_key: str) -> UploadJob: ...

    def update(self, *, job_id: str, user_id: str, fields: Dict[str, Any]) -> None: ...


class InMemoryJobStore:
    """Process-local job store for development and tests.

    Ids are generated by the store (never by callers), mirroring the
    database default on `media_jobs.id`.
    """

    def __init__(self) -> None:
        self._jobs: Dict[str, UploadJob] = {}

    def create(self, *, user_id: str, status: str, stage: str, bucket: str, storage_key: str) -> UploadJob:
        if not user_id:
            raise JobStoreError("user_id_required")
        job = UploadJob(
            id=str(uuid.uuid4()),
            user_id=user_id,
            status=status,
            stage=stage,
            bucket=bucket,
            storage_key=storage_key,
            created_at=int(time.time()),
        )
        self._jobs[job.id] = job
        return job

    def update(self, *, job_id: str, user_id: str, fields: Dict[str, Any]) -> None:
        job = self._jobs.get(job_id)
        # Scoped by owner: another user's job is indistinguishable from a missing one.
        if job is None or job.user_id != user_id:
            raise JobStoreError("job_not_found")
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise JobStoreError(f"unknown_fields:{','.join(sorted(unknown))}")
        new_status = fields.get("status")
        if new_status is not None and not can_transition(job.status, new_status):
            raise InvalidStatusTransition(job.status, new_status)
        self._jobs[job_id] = replace(job, **fields)

    def get(self, job_id: str) -> Optional[UploadJob]:
        return self._jobs.get(job_id)

    def all(self) -> list[UploadJob]:
        return list(self._jobs.values())


__all__ = [
    "InMemoryJobStore",
    "InvalidStatusTransition",
    "JOB_STATUSES",
    "JobStore",
    "JobStoreError",
    "PENDING_STORAGE_KEY",
    "STAGE_AWAITING_UPLOAD",
    "STATUS_COMPLETED",
    "STATUS_ERROR",
    "STATUS_PROCESSING",
    "STATUS_UPLOADED",
    "STATUS_UPLOADING",
    "UploadJob",
    "can_transition",
]
