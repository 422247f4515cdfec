"""
Helper for wiring the R2 object store into the upload routes.

Why:
    The app may start before R2 credentials are provisioned (local dev,
    preview deploys). The helper is idempotent and is called at startup and
    lazily from the upload route, so a later-configured environment is picked
    up without a restart.

Security:
    Requires R2_ACCOUNT_ID, R2_UPLOAD_ACCESS_KEY_ID and
    R2_UPLOAD_SECRET_ACCESS_KEY. Only server-side adapters are wired; no
    credentials are exposed to clients.
"""
from __future__ import annotations

import logging


def wire_r2_adapter_if_configured() -> bool:
    """Attempt to wire the R2 store into `routes.uploads`.

    Behavior:
        - Returns True when wiring succeeds.
        - Returns False when not configured or on error (keeps the Null adapter).
    """
    logger = logging.getLogger("proingup.web")
    from proingup.storage.r2 import r2_store_from_env
    from proingup.web.routes import uploads as _uploads

    try:
        store = r2_store_from_env()
    except Exception as exc:
        logger.warning("R2 object store unavailable: %s", exc.__class__.__name__)
        return False
    if store is None:
        return False
    _uploads.set_storage_adapter(store)
    logger.info("R2 object store wired (bucket=%s)", store.bucket)
    return True


__all__ = ["wire_r2_adapter_if_configured"]
