"""
Upload URL API.

`POST /api/private/upload/get-signed-upload-url` with
`{filename, contentType, bytes}` returns a short-lived presigned PUT URL for
a new upload job owned by the caller.

Permissions: caller must be authenticated (session validated this request).
"""
from __future__ import annotations

from functools import partial
import logging

import anyio
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from proingup.storage.config import get_media_max_upload_bytes, get_upload_bucket, get_upload_url_ttl_seconds
from proingup.storage.ports import NullObjectStore, ObjectStore
from proingup.uploads.admission import (
    UploadAdmission,
    UploadJobError,
    UploadTooLargeError,
    UploadValidationError,
)
from proingup.uploads.jobs import InMemoryJobStore, JobStore


uploads_router = APIRouter(tags=["Uploads"])
logger = logging.getLogger("proingup.web.uploads")

JOB_STORE: JobStore = InMemoryJobStore()
STORAGE_ADAPTER: ObjectStore = NullObjectStore()


def set_job_store(store: JobStore) -> None:
    global JOB_STORE
    JOB_STORE = store


def set_storage_adapter(adapter: ObjectStore) -> None:
    global STORAGE_ADAPTER
    STORAGE_ADAPTER = adapter


def _private_error(body: dict, *, status_code: int) -> JSONResponse:
    return JSONResponse(body, status_code=status_code, headers={"Cache-Control": "private, no-store"})


def _current_user_id(request: Request) -> str | None:
    user = getattr(request.state, "user", None)
    user_id = getattr(user, "id", None)
    return str(user_id) if user_id else None


def _admission() -> UploadAdmission:
    if isinstance(STORAGE_ADAPTER, NullObjectStore):
        # Credentials may have been provisioned after startup.
        from proingup.web.storage_wiring import wire_r2_adapter_if_configured

        wire_r2_adapter_if_configured()
    return UploadAdmission(
        jobs=JOB_STORE,
        objects=STORAGE_ADAPTER,
        bucket=getattr(STORAGE_ADAPTER, "bucket", None) or get_upload_bucket(),
        max_bytes=get_media_max_upload_bytes(),
        ttl_seconds=get_upload_url_ttl_seconds(),
    )


@uploads_router.post("/api/private/upload/get-signed-upload-url")
async def get_signed_upload_url(request: Request):
    """
    Admit one upload and return `{success, jobId, key, uploadUrl, expiresAt}`.

    Errors: 401 unauthenticated, 400 invalid input, 413 too large, 500 when the
    job store or storage provider fails (details only in server logs).
    """
    user_id = _current_user_id(request)
    if not user_id:
        return _private_error({"success": False, "error": "Unauthorized"}, status_code=401)

    try:
        payload = await request.json()
    except ValueError:
        return _private_error(
            {"success": False, "error": "Invalid input", "details": [{"field": "body", "message": "Invalid JSON"}]},
            status_code=400,
        )

    admission = _admission()
    try:
        ticket = await anyio.to_thread.run_sync(partial(admission.admit, user_id=user_id, payload=payload))
    except UploadValidationError as exc:
        return _private_error({"success": False, "error": "Invalid input", "details": exc.errors}, status_code=400)
    except UploadTooLargeError as exc:
        return _private_error(
            {"success": False, "error": "File too large", "maxBytes": exc.max_bytes}, status_code=413
        )
    except UploadJobError as exc:
        logger.warning("Upload admission failed at stage=%s", exc.stage)
        return _private_error({"success": False, "error": "Failed to create upload"}, status_code=500)
    except Exception:
        logger.exception("Upload admission failed unexpectedly")
        return _private_error({"success": False, "error": "Internal server error"}, status_code=500)
    return JSONResponse(ticket.as_payload(), headers={"Cache-Control": "private, no-store"})
