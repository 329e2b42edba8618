# apparel_uploads/schemas/uploads/upload.py
from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Literal, Optional

from ...uploads.types import AccessLevel, EntityType, ImagePurpose, ProcessingProfile
from .metadata import Dimension, UploadMetadata


class UploadRequest(BaseModel):
    entity_type: EntityType
    entity_id: str = Field(..., min_length=1, max_length=128, description="Identifier of the owning record")
    image_purpose: ImagePurpose
    processing_profile: ProcessingProfile = ProcessingProfile.GALLERY
    alt_text: Optional[str] = Field(None, max_length=500)
    caption: Optional[str] = Field(None, max_length=1000)
    is_primary: bool = False
    access_level: AccessLevel = AccessLevel.PRIVATE
    custom_metadata: Optional[Dict[str, Any]] = None

    @field_validator("entity_id")
    @classmethod
    def _entity_id_is_path_safe(cls, v: str) -> str:
        v = v.strip()
        if not v or "/" in v or "\\" in v or ".." in v or "{" in v or "}" in v:
            raise ValueError("entity_id must be a plain identifier")
        return v


class BatchMetadata(BaseModel):
    batch_id: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    priority: Literal["low", "normal", "high"] = "normal"


class BulkUploadRequest(BaseModel):
    uploads: List[UploadRequest]
    batch_metadata: Optional[BatchMetadata] = None


class ProcessingResults(BaseModel):
    profile: ProcessingProfile
    original_size: int
    processed_size: int
    dimensions: Dimension


class UploadResult(BaseModel):
    success: bool
    image_asset_id: Optional[str] = None
    public_url: Optional[str] = None
    secure_url: Optional[str] = None
    storage_path: Optional[str] = None
    processing_results: Optional[ProcessingResults] = None
    metadata: Optional[UploadMetadata] = None
    warnings: List[str] = Field(default_factory=list)
    error: Optional[str] = None
    error_code: Optional[str] = None

    @classmethod
    def failure(cls, message: str, code: str) -> "UploadResult":
        return cls(success=False, error=message, error_code=code)


class BatchItemResult(UploadResult):
    index: int


class BatchSummary(BaseModel):
    total: int
    successful: int
    failed: int
    total_size: int
    processing_time_ms: int


class BatchUploadResult(BaseModel):
    success: bool
    batch_id: str
    results: List[BatchItemResult]
    summary: BatchSummary
    errors: List[str] = Field(default_factory=list)
