import json
import logging

from apparel_uploads.config import Settings
from apparel_uploads.exceptions import (
    AssetNotFoundError,
    StorageError,
    UploadError,
    UploadErrorCode,
    create_error_response,
    is_retryable,
    status_for_code,
)
from apparel_uploads.infrastructure.audit.std_logger import StdAuditLogger
from apparel_uploads.uploads.policies import build_pipeline_config
from apparel_uploads.uploads.types import EntityType, ProcessingProfile


def test_pipeline_config_from_settings(monkeypatch):
    monkeypatch.setenv("UPLOAD_BATCH_CHUNK_SIZE", "0")
    monkeypatch.setenv("UPLOAD_STRICT_SIGNATURE_CHECK", "true")
    monkeypatch.setenv("UPLOAD_ITEM_TIMEOUT_SECONDS", "2.5")

    config = build_pipeline_config(Settings())

    assert config.chunk_size == 1
    assert config.strict_signature_check
    assert config.item_timeout_seconds == 2.5
    assert config.policy_for(EntityType.ORDER).bucket == "order-attachments"
    assert config.profile_for(ProcessingProfile.HERO).width == 1920


def test_secret_key_reads_either_env_name(monkeypatch):
    monkeypatch.delenv("JWT_SECRET_KEY", raising=False)
    monkeypatch.setenv("SECRET_KEY", "plain-secret-key-0123456789abcdefghij")
    assert Settings().SECRET_KEY == "plain-secret-key-0123456789abcdefghij"

    monkeypatch.setenv("JWT_SECRET_KEY", "jwt-secret-key-0123456789abcdefghijkl")
    assert Settings().SECRET_KEY == "jwt-secret-key-0123456789abcdefghijkl"


def test_cors_lists_are_split():
    settings = Settings(ALLOWED_ORIGINS="https://a.test, https://b.test", ALLOWED_METHODS="")
    assert settings.allowed_origins_list == ["https://a.test", "https://b.test"]
    assert settings.allowed_methods_list == []


def test_error_taxonomy():
    assert is_retryable("STORAGE_ERROR")
    assert not is_retryable("FILE_TOO_LARGE")
    assert not is_retryable("SOMETHING_ELSE")
    assert status_for_code("FILE_TOO_LARGE") == 413
    assert status_for_code(None) == 400

    err = StorageError("disk full")
    assert err.code == UploadErrorCode.STORAGE_ERROR and err.retryable and err.status_code == 502
    missing = AssetNotFoundError("a1")
    assert missing.status_code == 404 and missing.details == {"asset_id": "a1"}
    assert UploadError("x").code == UploadErrorCode.UNEXPECTED_ERROR
    assert create_error_response("bad", "VALIDATION_FAILED") == {
        "success": False, "data": None, "error": "bad", "error_code": "VALIDATION_FAILED",
    }


def test_std_audit_logger_writes_json(caplog):
    with caplog.at_level(logging.INFO, logger="apparel_uploads.infrastructure.audit.std_logger"):
        StdAuditLogger().log("image.uploaded", "u1", asset_id="a1", details={"file_size": 3})

    [record] = [r for r in caplog.records if r.getMessage().startswith("AUDIT: ")]
    entry = json.loads(record.getMessage()[len("AUDIT: "):])
    assert entry["action"] == "image.uploaded"
    assert entry["asset_id"] == "a1"
    assert entry["details"] == {"file_size": 3}
