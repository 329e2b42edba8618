# apparel_uploads/schemas/uploads/metadata.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Literal, Optional

from ...uploads.types import AccessLevel, EntityType, ImagePurpose, ProcessingProfile


class Dimension(BaseModel):
    width: int = Field(..., ge=0)
    height: int = Field(..., ge=0)


class BaseUploadMetadata(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    original_filename: str
    file_size: int
    mime_type: str
    uploaded_at: str
    uploaded_by_id: str
    upload_session_id: Optional[str] = None
    processing_profile: ProcessingProfile = ProcessingProfile.GALLERY
    checksum: Optional[str] = None


class ImageProcessingMetadata(BaseModel):
    original_dimensions: Optional[Dimension] = None
    processed_dimensions: Optional[Dimension] = None
    compression_ratio: Optional[float] = None
    format_converted: Optional[bool] = None
    processing_time_ms: Optional[int] = None
    fallback_reason: Optional[str] = Field(None, description="Why the original bytes were stored untransformed")


class EntityRelationMetadata(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    entity_type: EntityType
    entity_id: str
    image_purpose: ImagePurpose
    is_primary: bool = False
    display_order: Optional[int] = None
    alt_text: Optional[str] = None
    caption: Optional[str] = None


class SecurityMetadata(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    virus_scan_result: Optional[Literal["clean", "infected", "pending", "skipped"]] = None
    access_level: AccessLevel = AccessLevel.PRIVATE
    allowed_roles: Optional[List[str]] = None
    expires_at: Optional[str] = None


class AuditMetadata(BaseModel):
    upload_ip: Optional[str] = None
    user_agent: Optional[str] = None
    api_version: Optional[str] = None
    client_type: Optional[Literal["web", "mobile", "api"]] = None
    workflow_id: Optional[str] = None
    trace_id: Optional[str] = None


class UploadMetadata(BaseUploadMetadata):
    image_processing: Optional[ImageProcessingMetadata] = None
    entity_relation: Optional[EntityRelationMetadata] = None
    security: Optional[SecurityMetadata] = None
    audit: Optional[AuditMetadata] = None
    custom: Dict[str, Any] = Field(default_factory=dict)
