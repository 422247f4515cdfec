"""
In-process fakes for the identity provider, object store and user directory.

They record calls so tests can assert what reached the collaborator (and,
just as important, what did not).
"""
from __future__ import annotations

from typing import Dict, List, Mapping, Optional

from proingup.identity_access.providers import IdentityValidationError, Session, User
from proingup.identity_access.signup import UserCreationRejected
from proingup.storage.ports import PresignError
from proingup.uploads.jobs import InMemoryJobStore, JobStoreError


SESSION_COOKIE = "sb-test-auth-token"


class FakeIdentityProvider:
    """Session cookie value is the access token; `users` maps token -> User."""

    def __init__(self, users: Optional[Dict[str, User]] = None) -> None:
        self.users = dict(users or {})
        self.reads = 0
        self.validations: List[str] = []

    def read_session(self, cookies: Mapping[str, str]) -> Optional[Session]:
        self.reads += 1
        token = cookies.get(SESSION_COOKIE)
        if not token:
            return None
        return Session(access_token=token, user_id=token.split(":", 1)[-1])

    def validate_session(self, session: Session) -> User:
        self.validations.append(session.access_token)
        user = self.users.get(session.access_token)
        if user is None:
            raise IdentityValidationError("invalid_session")
        return user


class RecordingObjectStore:
    def __init__(self, *, fail: bool = False, bucket: str = "test-bucket") -> None:
        self.fail = fail
        self.bucket = bucket
        self.calls: List[dict] = []

    def presign_put(self, *, key: str, content_type: str, expires_in: int) -> str:
        self.calls.append({"key": key, "content_type": content_type, "expires_in": expires_in})
        if self.fail:
            raise PresignError("failed_to_presign_upload")
        return f"https://r2.example/{key}?X-Amz-Signature=fake"


class FlakyJobStore(InMemoryJobStore):
    """In-memory store whose first metadata update (storage_key) fails."""

    def __init__(self, *, fail_create: bool = False, fail_prepare: bool = False) -> None:
        super().__init__()
        self.fail_create = fail_create
        self.fail_prepare = fail_prepare

    def create(self, **kwargs):
        if self.fail_create:
            raise JobStoreError("connection refused")
        return super().create(**kwargs)

    def update(self, *, job_id, user_id, fields):
        if self.fail_prepare and "storage_key" in fields:
            raise JobStoreError("connection reset")
        return super().update(job_id=job_id, user_id=user_id, fields=fields)


class FakeUserDirectory:
    def __init__(self, *, reject_with: Optional[str] = None, error: Optional[Exception] = None) -> None:
        self.reject_with = reject_with
        self.error = error
        self.created: List[str] = []

    def create_user(self, *, email: str, password: str) -> str:
        if self.error is not None:
            raise self.error
        if self.reject_with is not None:
            raise UserCreationRejected(self.reject_with)
        self.created.append(email)
        return f"user-{len(self.created)}"
