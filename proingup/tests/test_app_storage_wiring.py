"""
Object store wiring: Null by default, R2 once credentials exist.
"""

from proingup.storage.ports import NullObjectStore
from proingup.storage.r2 import R2ObjectStore
from proingup.web.routes import uploads
from proingup.web.storage_wiring import wire_r2_adapter_if_configured


def test_wiring_without_credentials_keeps_null_adapter():
    assert wire_r2_adapter_if_configured() is False
    assert isinstance(uploads.STORAGE_ADAPTER, NullObjectStore)


def test_wiring_with_credentials_injects_r2(monkeypatch):
    monkeypatch.setenv("R2_ACCOUNT_ID", "acct123")
    monkeypatch.setenv("R2_UPLOAD_ACCESS_KEY_ID", "AKIDEXAMPLE")
    monkeypatch.setenv("R2_UPLOAD_SECRET_ACCESS_KEY", "secret")
    assert wire_r2_adapter_if_configured() is True
    assert isinstance(uploads.STORAGE_ADAPTER, R2ObjectStore)
    assert uploads.STORAGE_ADAPTER.bucket == "adding-context-media-upload"
