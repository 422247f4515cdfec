"""
Upload admission use case: validate, register a job, hand out a presigned URL.

Why:
    Large media never passes through the API server. The client asks for an
    upload slot, receives a short-lived PUT URL bound to a tenant-scoped key,
    and uploads directly to object storage. A separate ingestion step later
    advances the job once the object exists.

Flow (each step may end the request):
    1. Schema validation -> UploadValidationError (400)
    2. Size ceiling -> UploadTooLargeError (413), before any job row exists
    3. Create job with placeholder key -> UploadJobError("create") (500)
    4. Derive jobs/{user}/{job}/original.{ext}
    5. Store real key + metadata; on failure mark job `error` -> UploadJobError("prepare")
    6. Presign PUT (TTL default 10 minutes); on failure mark job `error` -> UploadJobError("presign")

Every call creates a new job. Retries leave orphan jobs in `uploading` or
`error`; no object is ever written for them.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List
import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from proingup.storage.keys import extension_for, make_job_key, sanitize_filename
from proingup.storage.ports import ObjectStore
from .jobs import (
    PENDING_STORAGE_KEY,
    STAGE_AWAITING_UPLOAD,
    STATUS_ERROR,
    STATUS_UPLOADING,
    JobStore,
    UploadJob,
)


logger = logging.getLogger("proingup.uploads")


class UploadUrlRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    filename: str = Field(..., min_length=1, strict=True)
    content_type: str = Field(..., alias="contentType", min_length=1, strict=True)
    size_bytes: int = Field(..., alias="bytes", gt=0, strict=True)


class UploadValidationError(ValueError):
    def __init__(self, errors: List[Dict[str, str]]):
        super().__init__("invalid_input")
        self.errors = errors


class UploadTooLargeError(ValueError):
    def __init__(self, max_bytes: int):
        super().__init__("file_too_large")
        self.max_bytes = max_bytes


class UploadJobError(Exception):
    """Raised when the job could not be created, prepared or presigned.

    `stage` is one of "create", "prepare", "presign".
    """

    def __init__(self, stage: str):
        super().__init__(f"upload_job_{stage}_failed")
        self.stage = stage


@dataclass(frozen=True)
class UploadTicket:
    job_id: str
    key: str
    upload_url: str
    expires_at: datetime

    def as_payload(self) -> Dict[str, Any]:
        expires = self.expires_at.astimezone(timezone.utc).isoformat(timespec="milliseconds")
        return {
            "success": True,
            "jobId": self.job_id,
            "key": self.key,
            "uploadUrl": self.upload_url,
            "expiresAt": expires.replace("+00:00", "Z"),
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _validation_details(exc: ValidationError) -> List[Dict[str, str]]:
    details = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ())) or "body"
        details.append({"field": field, "message": str(err.get("msg", "invalid"))})
    return details


def parse_upload_request(payload: Any) -> UploadUrlRequest:
    if not isinstance(payload, dict):
        raise UploadValidationError([{"field": "body", "message": "Expected a JSON object"}])
    try:
        return UploadUrlRequest.model_validate(payload)
    except ValidationError as exc:
        raise UploadValidationError(_validation_details(exc)) from exc


class UploadAdmission:
    """Admit one upload for an authenticated user."""

    def __init__(
        self,
        *,
        jobs: JobStore,
        objects: ObjectStore,
        bucket: str,
        max_bytes: int,
        ttl_seconds: int,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._jobs = jobs
        self._objects = objects
        self._bucket = bucket
        self._max_bytes = max_bytes
        self._ttl_seconds = ttl_seconds
        self._now = now

    def admit(self, *, user_id: str, payload: Any) -> UploadTicket:
        request = parse_upload_request(payload)
        if request.size_bytes > self._max_bytes:
            raise UploadTooLargeError(self._max_bytes)

        try:
            job = self._jobs.create(
                user_id=user_id,
                status=STATUS_UPLOADING,
                stage=STAGE_AWAITING_UPLOAD,
                bucket=self._bucket,
                storage_key=PENDING_STORAGE_KEY,
            )
        except Exception as exc:
            logger.error("Failed creating upload job: %s", exc.__class__.__name__)
            raise UploadJobError("create") from exc
        if not job.id:
            raise UploadJobError("create")

        safe_name = sanitize_filename(request.filename)
        key = make_job_key(
            user_id=user_id,
            job_id=job.id,
            ext=extension_for(safe_name, request.content_type),
        )

        try:
            self._jobs.update(
                job_id=job.id,
                user_id=user_id,
                fields={
                    "storage_key": key,
                    "original_filename": safe_name,
                    "content_type": request.content_type,
                    "size_bytes": request.size_bytes,
                },
            )
        except Exception as exc:
            logger.error("Failed updating upload job %s with storage key: %s", job.id, exc.__class__.__name__)
            self._mark_failed(job, f"Failed to update storage key: {exc.__class__.__name__}")
            raise UploadJobError("prepare") from exc

        try:
            upload_url = self._objects.presign_put(
                key=key,
                content_type=request.content_type,
                expires_in=self._ttl_seconds,
            )
        except Exception as exc:
            logger.error("Failed presigning upload for job %s: %s", job.id, exc.__class__.__name__)
            self._mark_failed(job, f"Failed to presign upload: {exc.__class__.__name__}")
            raise UploadJobError("presign") from exc

        expires_at = self._now() + timedelta(seconds=self._ttl_seconds)
        logger.info("Upload admitted job=%s bytes=%s", job.id, request.size_bytes)
        return UploadTicket(job_id=job.id, key=key, upload_url=upload_url, expires_at=expires_at)

    def _mark_failed(self, job: UploadJob, reason: str) -> None:
        """Best effort: move the job to `error` so it never waits on a dead key."""
        try:
            self._jobs.update(
                job_id=job.id,
                user_id=job.user_id,
                fields={"status": STATUS_ERROR, "last_error": reason, "stage_error": reason},
            )
        except Exception as exc:
            logger.warning("Could not mark upload job %s as failed: %s", job.id, exc.__class__.__name__)


__all__ = [
    "UploadAdmission",
    "UploadJobError",
    "UploadTicket",
    "UploadTooLargeError",
    "UploadUrlRequest",
    "UploadValidationError",
    "parse_upload_request",
]
