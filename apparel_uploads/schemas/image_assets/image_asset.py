from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ...uploads.types import AccessLevel, ImagePurpose


class ImageAssetRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    filename: str
    original_filename: str
    file_size: int
    mime_type: str
    storage_bucket: str
    storage_path: str
    public_url: Optional[str] = None
    entity_type: str
    entity_id: str
    image_purpose: Optional[str] = None
    alt_text: Optional[str] = None
    is_active: bool
    is_primary: bool
    access_level: str
    processing_status: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    uploaded_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None


class ImageAssetUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True, extra="forbid")

    alt_text: Optional[str] = Field(None, max_length=500)
    is_primary: Optional[bool] = None
    is_active: Optional[bool] = None
    access_level: Optional[AccessLevel] = None
    image_purpose: Optional[ImagePurpose] = None


class MetadataUpdate(BaseModel):
    metadata: Dict[str, Any]


class ImageAssetListResponse(BaseModel):
    items: List[ImageAssetRead]
    total: int
    limit: int
    offset: int
    has_more: bool


class UploadStats(BaseModel):
    total_uploads: int
    total_size: int
    by_entity_type: Dict[str, int]
    by_purpose: Dict[str, int]
    recent_uploads: int
