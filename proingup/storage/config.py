"""
Centralized storage configuration for media uploads.

Intent:
    Provide a single source of truth for the upload bucket, the size ceiling
    and the presigned URL lifetime, each with an environment override and a
    contract maximum that overrides cannot exceed.

Permissions:
    Pure configuration; no external calls or privileges required.
"""
from __future__ import annotations

import os


UPLOAD_BUCKET_DEFAULT = "adding-context-media-upload"
MEDIA_MAX_UPLOAD_BYTES = 2 * 1024 * 1024 * 1024
UPLOAD_URL_TTL_DEFAULT = 10 * 60


def get_upload_bucket() -> str:
    """Return the configured upload bucket name.

    Env:
        R2_UPLOAD_BUCKET: optional override; otherwise UPLOAD_BUCKET_DEFAULT.
    """
    return (os.getenv("R2_UPLOAD_BUCKET") or UPLOAD_BUCKET_DEFAULT).strip()


def _parse_int_env(name: str, default: int, *, contract_max: int | None = None) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if value <= 0:
        return default
    if isinstance(contract_max, int) and contract_max > 0:
        value = min(value, contract_max)
    return value


def get_media_max_upload_bytes() -> int:
    """Maximum upload size for media jobs (default/clamped 2 GiB)."""
    return _parse_int_env("MEDIA_MAX_UPLOAD_BYTES", MEDIA_MAX_UPLOAD_BYTES, contract_max=MEDIA_MAX_UPLOAD_BYTES)


def get_upload_url_ttl_seconds() -> int:
    """Lifetime of presigned upload URLs in seconds (default 10 minutes, 60..3600)."""
    value = _parse_int_env("UPLOAD_URL_TTL_SECONDS", UPLOAD_URL_TTL_DEFAULT, contract_max=60 * 60)
    return max(60, value)


__all__ = [
    "MEDIA_MAX_UPLOAD_BYTES",
    "UPLOAD_BUCKET_DEFAULT",
    "UPLOAD_URL_TTL_DEFAULT",
    "get_media_max_upload_bytes",
    "get_upload_bucket",
    "get_upload_url_ttl_seconds",
]
