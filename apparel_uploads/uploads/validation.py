import os
from typing import Optional

from ..exceptions import UploadErrorCode
from .policies import PipelineConfig
from .types import EntityType, FileValidationResult

MIN_IMAGE_BYTES = 100

# Content types without a fixed magic number; they skip the header check.
_UNSIGNED_TYPES = frozenset({"image/svg+xml"})


def format_file_size(size: int) -> str:
    if size == 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB", "TB"]
    value = float(size)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 2):g} {units[i]}"


def has_valid_signature(data: bytes, content_type: str) -> Optional[bool]:
    """Checks the leading bytes against the claimed format.

    Returns None when the content type has no known signature.
    """
    if content_type == "image/jpeg":
        return data[:3] == b"\xff\xd8\xff"
    if content_type == "image/png":
        return data[:8] == b"\x89PNG\r\n\x1a\n"
    if content_type == "image/webp":
        return data[:4] == b"RIFF" and data[8:12] == b"WEBP"
    if content_type == "image/gif":
        return data[:6] in (b"GIF87a", b"GIF89a")
    return None


def validate_upload_file(
    data: bytes,
    filename: str,
    content_type: str,
    entity_type: EntityType,
    config: PipelineConfig,
) -> FileValidationResult:
    """Checks a candidate file against the entity's storage policy.

    Every check runs so the caller sees all problems at once; ``error_code``
    reports the first one that failed.
    """
    result = FileValidationResult()
    policy = config.policy_for(entity_type)
    if policy is None:
        result.fail(UploadErrorCode.VALIDATION_FAILED.value, f"No storage policy configured for {entity_type}")
        return result

    if len(data) > policy.max_file_size:
        result.fail(
            UploadErrorCode.FILE_TOO_LARGE.value,
            f"File size ({format_file_size(len(data))}) exceeds maximum allowed size "
            f"({format_file_size(policy.max_file_size)})",
        )

    if content_type not in policy.allowed_mime_types:
        result.fail(
            UploadErrorCode.INVALID_FILE_TYPE.value,
            f"File type '{content_type}' is not allowed for {EntityType(entity_type).value}. "
            f"Allowed types: {', '.join(policy.allowed_mime_types)}",
        )

    if not filename or not filename.strip():
        result.fail(UploadErrorCode.VALIDATION_FAILED.value, "Filename cannot be empty")
    else:
        ext = os.path.splitext(filename.strip())[1].lower()
        if ext in config.blocked_extensions:
            result.fail(
                UploadErrorCode.VALIDATION_FAILED.value,
                f"File extension '{ext}' is not allowed for security reasons",
            )

    if content_type and content_type.startswith("image/"):
        if len(data) < MIN_IMAGE_BYTES:
            result.fail(UploadErrorCode.VALIDATION_FAILED.value, "Image file appears to be corrupted or too small")
        elif content_type not in _UNSIGNED_TYPES and has_valid_signature(data, content_type) is not True:
            message = "Image file header validation failed - file may be corrupted"
            if config.strict_signature_check:
                result.fail(UploadErrorCode.VALIDATION_FAILED.value, message)
            else:
                result.warnings.append(message)

    return result
