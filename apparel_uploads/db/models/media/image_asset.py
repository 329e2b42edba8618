# apparel_uploads/db/models/media/image_asset.py
from typing import Any, Dict, Optional
from sqlmodel import SQLModel, Field
from datetime import datetime
import uuid
from sqlalchemy import Column, JSON


class ImageAsset(SQLModel, table=True):
    __tablename__ = "image_assets"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    filename: str = Field(max_length=255)
    original_filename: str = Field(max_length=255)
    file_size: int = 0
    mime_type: str = Field(max_length=100)
    storage_bucket: str = Field(max_length=100)
    storage_path: str = Field(unique=True, index=True)
    public_url: Optional[str] = None
    uploaded_by: Optional[str] = Field(default=None, index=True)
    entity_type: str = Field(max_length=50, index=True)
    entity_id: str = Field(max_length=128, index=True)
    image_purpose: Optional[str] = Field(default=None, max_length=100, index=True)
    alt_text: Optional[str] = None
    is_active: bool = True
    is_primary: bool = False
    access_level: str = Field(default="private", max_length=20)
    processing_status: str = Field(default="active", max_length=20)
    asset_metadata: Dict[str, Any] = Field(default_factory=dict, sa_column=Column("metadata", JSON))
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    deleted_at: Optional[datetime] = Field(default=None, index=True)
