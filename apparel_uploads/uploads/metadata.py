import hashlib
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from ..schemas.uploads.metadata import (
    AuditMetadata,
    Dimension,
    EntityRelationMetadata,
    ImageProcessingMetadata,
    SecurityMetadata,
    UploadMetadata,
)
from .naming import generate_session_id
from .types import (
    AccessLevel,
    Dimensions,
    ProcessingProfile,
    StoragePolicy,
    TransformResult,
    UploadContext,
    UploadedFile,
)


def calculate_checksum(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def create_base_metadata(
    original_filename: str,
    file_size: int,
    mime_type: str,
    uploaded_by_id: str,
    processing_profile: ProcessingProfile = ProcessingProfile.GALLERY,
    now: Optional[datetime] = None,
) -> UploadMetadata:
    return UploadMetadata(
        original_filename=original_filename,
        file_size=file_size,
        mime_type=mime_type,
        uploaded_at=(now or datetime.now(timezone.utc)).isoformat(),
        uploaded_by_id=uploaded_by_id,
        processing_profile=processing_profile,
        upload_session_id=generate_session_id(),
    )


def merge_metadata(base: UploadMetadata, additional: Dict[str, Any]) -> UploadMetadata:
    """Shallow merge; the ``custom`` bags are merged key by key instead of replaced."""
    merged = base.model_dump()
    custom = dict(merged.get("custom") or {})
    for key, value in additional.items():
        if key == "custom":
            custom.update(value or {})
        elif value is not None:
            merged[key] = value.model_dump() if hasattr(value, "model_dump") else value
    merged["custom"] = custom
    return UploadMetadata.model_validate(merged)


def _dimension(d: Optional[Dimensions]) -> Optional[Dimension]:
    return Dimension(width=d.width, height=d.height) if d else None


def allowed_roles_for(policy: StoragePolicy, access_level: AccessLevel) -> Optional[list]:
    level = AccessLevel(access_level)
    if level == AccessLevel.PUBLIC:
        return None
    if level == AccessLevel.RESTRICTED:
        return ["admin"]
    return list(policy.allowed_roles)


def assemble_metadata(
    file: UploadedFile,
    request,
    context: UploadContext,
    policy: StoragePolicy,
    transform: TransformResult,
    processing_time_ms: int,
    virus_scan_result: Optional[str] = None,
    display_order: Optional[int] = None,
    custom: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None,
) -> UploadMetadata:
    """Builds the catalog metadata document for one stored rendition."""
    now = now or datetime.now(timezone.utc)
    base = create_base_metadata(
        file.filename,
        file.size,
        file.content_type,
        context.user_id,
        request.processing_profile,
        now=now,
    )
    base.checksum = calculate_checksum(file.data)

    expires_at = None
    if policy.retention_days:
        expires_at = (now + timedelta(days=policy.retention_days)).isoformat()

    processing = ImageProcessingMetadata(
        original_dimensions=_dimension(transform.original_dimensions),
        processed_dimensions=_dimension(transform.dimensions),
        compression_ratio=round(len(transform.data) / file.size, 4) if file.size else None,
        format_converted=transform.format_converted,
        processing_time_ms=processing_time_ms,
        fallback_reason=transform.fallback_reason,
    )
    relation = EntityRelationMetadata(
        entity_type=request.entity_type,
        entity_id=request.entity_id,
        image_purpose=request.image_purpose,
        is_primary=request.is_primary,
        display_order=display_order,
        alt_text=request.alt_text,
        caption=request.caption,
    )
    security = SecurityMetadata(
        virus_scan_result=virus_scan_result,
        access_level=request.access_level,
        allowed_roles=allowed_roles_for(policy, request.access_level),
        expires_at=expires_at,
    )
    audit = AuditMetadata(
        upload_ip=context.ip_address,
        user_agent=context.user_agent,
        api_version=context.api_version,
        client_type=context.client_type if context.client_type in ("web", "mobile", "api") else None,
        workflow_id=context.workflow_id,
        trace_id=context.trace_id,
    )

    bag: Dict[str, Any] = {}
    bag.update(request.custom_metadata or {})
    bag.update(custom or {})
    return merge_metadata(base, {
        "image_processing": processing,
        "entity_relation": relation,
        "security": security,
        "audit": audit,
        "custom": bag,
    })
