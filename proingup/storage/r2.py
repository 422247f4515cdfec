"""
Cloudflare R2 object store adapter (S3-compatible API via boto3).

The adapter only signs URLs locally; it never transfers object bytes. R2
accepts SigV4 presigned PUT URLs; clients upload with the declared
`Content-Type`.

Security:
- Use an access key restricted to object writes on the upload bucket.
- Buckets stay private; clients only ever see short-lived signed URLs.
"""
from __future__ import annotations

import logging
import os
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import get_upload_bucket
from .ports import ObjectStore, PresignError


logger = logging.getLogger("proingup.storage")


def r2_endpoint(account_id: str) -> str:
    return f"https://{account_id}.r2.cloudflarestorage.com"


class R2ObjectStore(ObjectStore):
    """Object store backed by an S3 client pointed at R2."""

    def __init__(self, client: Any, *, bucket: str):
        self._client = client
        self._bucket = bucket

    @classmethod
    def from_credentials(cls, *, account_id: str, access_key_id: str, secret_access_key: str, bucket: str) -> "R2ObjectStore":
        client = boto3.client(
            "s3",
            endpoint_url=r2_endpoint(account_id),
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name="auto",
            config=Config(signature_version="s3v4"),
        )
        return cls(client, bucket=bucket)

    @property
    def bucket(self) -> str:
        return self._bucket

    def presign_put(self, *, key: str, content_type: str, expires_in: int) -> str:
        norm_key = key.lstrip("/")
        try:
            url = self._client.generate_presigned_url(
                "put_object",
                Params={"Bucket": self._bucket, "Key": norm_key, "ContentType": content_type},
                ExpiresIn=int(expires_in),
                HttpMethod="PUT",
            )
        except (BotoCoreError, ClientError) as exc:
            logger.warning("R2 presign failed: %s", exc.__class__.__name__)
            raise PresignError("failed_to_presign_upload") from exc
        if not url:
            raise PresignError("failed_to_presign_upload")
        return str(url)


def r2_store_from_env() -> R2ObjectStore | None:
    """Build an R2 store from R2_* environment variables, or None if incomplete."""
    account_id = (os.getenv("R2_ACCOUNT_ID") or "").strip()
    access_key_id = (os.getenv("R2_UPLOAD_ACCESS_KEY_ID") or "").strip()
    secret = (os.getenv("R2_UPLOAD_SECRET_ACCESS_KEY") or "").strip()
    if not (account_id and access_key_id and secret):
        return None
    return R2ObjectStore.from_credentials(
        account_id=account_id,
        access_key_id=access_key_id,
        secret_access_key=secret,
        bucket=get_upload_bucket(),
    )


__all__ = ["R2ObjectStore", "r2_endpoint", "r2_store_from_env"]
