import os
import re
import secrets
import time
from datetime import datetime, timezone
from typing import Dict, Optional

from .policies import PipelineConfig
from .types import EntityType, ImagePurpose, ProcessingProfile, StoragePath

CONTENT_TYPE_BY_EXTENSION: Dict[str, str] = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "pdf": "application/pdf",
    "txt": "text/plain",
    "json": "application/json",
}

EXTENSION_BY_CONTENT_TYPE: Dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
    "image/svg+xml": ".svg",
    "application/pdf": ".pdf",
}


def get_file_extension(filename: str) -> str:
    ext = os.path.splitext(filename)[1].lower()
    return ext[1:] if ext.startswith(".") else ext


def get_content_type(filename: str) -> str:
    return CONTENT_TYPE_BY_EXTENSION.get(get_file_extension(filename), "application/octet-stream")


def sanitize_filename(filename: str) -> str:
    cleaned = re.sub(r"[^a-zA-Z0-9.\-_]", "_", filename)
    return re.sub(r"_{2,}", "_", cleaned).lower()


def generate_unique_filename(
    original_filename: str,
    processing_profile: Optional[ProcessingProfile] = None,
    extension: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """``{date}_{16 hex chars}[_{profile}]{ext}``.

    ``extension`` overrides the original file's extension, used when the
    stored rendition was re-encoded to another format.
    """
    ext = extension if extension is not None else os.path.splitext(original_filename)[1]
    ext = sanitize_filename(ext) if ext else ""
    date_part = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%d")
    random_id = secrets.token_hex(8)
    suffix = ""
    if processing_profile and ProcessingProfile(processing_profile) != ProcessingProfile.ORIGINAL:
        suffix = f"_{ProcessingProfile(processing_profile).value}"
    return f"{date_part}_{random_id}{suffix}{ext}"


def generate_storage_path(
    entity_type: EntityType,
    entity_id: str,
    purpose: ImagePurpose,
    filename: str,
    config: PipelineConfig,
) -> StoragePath:
    policy = config.policy_for(entity_type)
    if policy is None:
        raise KeyError(f"No storage policy configured for {entity_type}")
    path = policy.path_template.format(
        entity_type=EntityType(entity_type).value,
        entity_id=entity_id,
        purpose=ImagePurpose(purpose).value,
        filename=filename,
    )
    return StoragePath(bucket=policy.bucket, path=path)


def parse_storage_path(full_path: str) -> Dict[str, Optional[str]]:
    """Splits ``bucket/collection/entity_id/purpose/filename`` back into parts."""
    parts = full_path.strip("/").split("/")
    if len(parts) < 5:
        return {}
    return {
        "bucket": parts[0],
        "collection": parts[1],
        "entity_id": parts[2],
        "purpose": parts[3],
        "filename": "/".join(parts[4:]),
    }


def generate_session_id() -> str:
    return f"session_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


def generate_batch_id() -> str:
    return f"batch_{int(time.time() * 1000)}_{secrets.token_hex(6)}"
