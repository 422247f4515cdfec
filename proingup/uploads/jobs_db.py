"""
Database-backed JobStore for production use (Postgres/Supabase).

Security:
- Intended for a server-side login role; clients never reach `media_jobs`
  directly. Every update is scoped by both job id and owning user id so a
  job can never be touched on behalf of another user.
- `id` is generated by the database (`default gen_random_uuid()`).

Note: This module uses psycopg3. It is imported only when enabled via
`JOBS_BACKEND=db`. Tests use the in-memory store or a fake driver.
"""
from __future__ import annotations

from typing import Any, Dict
import os
import re

import psycopg

from .jobs import UPDATABLE_FIELDS, JobStoreError, UploadJob, JOB_STATUSES, can_transition


_TABLE_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}(?:\.[A-Za-z_][A-Za-z0-9_]{0,62})?$")

# Column names differ from the domain field names for historical reasons.
_COLUMNS = {
    "status": "status",
    "stage": "stage",
    "storage_key": "r2_key",
    "original_filename": "original_filename",
    "content_type": "original_content_type",
    "size_bytes": "original_size_bytes",
    "last_error": "last_error",
    "stage_error": "stage_error",
}


class DBJobStore:
    """Postgres-backed job store.

    Parameters
    ----------
    dsn:
        Psycopg3 connection string.
    table:
        Fully qualified table name. Defaults to `public.media_jobs`.
    """

    def __init__(self, dsn: str | None = None, table: str = "public.media_jobs") -> None:
        self._dsn = dsn or os.getenv("DATABASE_URL", "")
        if not self._dsn:
            raise RuntimeError("No database DSN provided for DBJobStore")
        if not _TABLE_RE.match(table or ""):
            raise ValueError("Invalid table name")
        self._table = table

    def create(self, *, user_id: str, status: str, stage: str, bucket: str, storage_key: str) -> UploadJob:
        try:
            with psycopg.connect(self._dsn, autocommit=True) as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        f"insert into {self._table} (user_id, status, stage, bucket, r2_key) "
                        f"values (%s, %s, %s, %s, %s) returning id",
                        (user_id, status, stage, bucket, storage_key),
                    )
                    row = cur.fetchone()
        except psycopg.Error as exc:
            raise JobStoreError(exc.__class__.__name__) from exc
        if not row or not row[0]:
            raise JobStoreError("job_id_missing")
        return UploadJob(
            id=str(row[0]),
            user_id=user_id,
            status=status,
            stage=stage,
            bucket=bucket,
            storage_key=storage_key,
        )

    def update(self, *, job_id: str, user_id: str, fields: Dict[str, Any]) -> None:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown or not fields:
            raise JobStoreError("invalid_update_fields")
        names = sorted(fields)
        assignments = ", ".join(f"{_COLUMNS[name]} = %s" for name in names)
        params = [fields[name] for name in names] + [job_id, user_id]
        where = "id = %s and user_id = %s"
        new_status = fields.get("status")
        if new_status is not None:
            # Forward-only: the row must currently be in a status that may move to new_status.
            where += " and status = any(%s)"
            params.append([s for s in JOB_STATUSES if can_transition(s, new_status)])
        try:
            with psycopg.connect(self._dsn, autocommit=True) as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        f"update {self._table} set {assignments} where {where}",
                        params,
                    )
                    updated = cur.rowcount
        except psycopg.Error as exc:
            raise JobStoreError(exc.__class__.__name__) from exc
        if updated == 0:
            raise JobStoreError("job_not_found")


__all__ = ["DBJobStore"]
