"""
Object storage port used by the upload admission flow.

Keep this small and framework-agnostic so tests can supply simple fakes.
"""
from __future__ import annotations

from typing import Protocol


class PresignError(Exception):
    """Raised when the storage provider cannot issue a presigned URL."""

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


class ObjectStore(Protocol):
    """Minimal interface to hand out direct-to-storage upload URLs.

    Intent:
        Let clients PUT large objects straight into the bucket without the
        API server relaying the bytes or the client holding credentials.

    Permissions:
        Implementations sign with upload-only credentials scoped to a single
        bucket; the URL is bound to the key and the content type.
    """

    def presign_put(self, *, key: str, content_type: str, expires_in: int) -> str: ...


class NullObjectStore:
    """Fallback store that signals the storage backend is not configured."""

    def presign_put(self, *, key: str, content_type: str, expires_in: int) -> str:  # noqa: D401
        raise RuntimeError("storage_adapter_not_configured")


__all__ = ["NullObjectStore", "ObjectStore", "PresignError"]
