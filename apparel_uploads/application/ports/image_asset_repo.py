from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple


@dataclass
class ImageAssetDto:
    id: str
    filename: str
    original_filename: str
    file_size: int
    mime_type: str
    storage_bucket: str
    storage_path: str
    public_url: Optional[str]
    entity_type: str
    entity_id: str
    image_purpose: Optional[str]
    alt_text: Optional[str]
    is_active: bool
    is_primary: bool
    access_level: str
    processing_status: str
    metadata: Dict[str, Any]
    uploaded_by: Optional[str]
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None


@dataclass
class NewImageAsset:
    filename: str
    original_filename: str
    file_size: int
    mime_type: str
    storage_bucket: str
    storage_path: str
    entity_type: str
    entity_id: str
    image_purpose: Optional[str]
    uploaded_by: Optional[str]
    public_url: Optional[str] = None
    alt_text: Optional[str] = None
    is_active: bool = True
    is_primary: bool = False
    access_level: str = "private"
    processing_status: str = "active"
    metadata: Dict[str, Any] = field(default_factory=dict)


SORTABLE_COLUMNS = ("created_at", "updated_at", "entity_type", "file_size")


@dataclass
class ImageAssetFilters:
    """``deleted``: False for active rows only, True for soft-deleted only, None for both."""
    owner_id: Optional[str] = None
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    image_purpose: Optional[str] = None
    access_level: Optional[str] = None
    processing_status: Optional[str] = None
    deleted: Optional[bool] = None
    sort_by: str = "created_at"
    sort_order: str = "desc"
    limit: int = 50
    offset: int = 0


class ImageAssetRepository:
    def create(self, asset: NewImageAsset) -> ImageAssetDto:
        ...

    def get(self, asset_id: str) -> Optional[ImageAssetDto]:
        ...

    def get_by_location(self, bucket: str, path: str) -> Optional[ImageAssetDto]:
        ...

    def list(self, filters: ImageAssetFilters) -> Tuple[List[ImageAssetDto], int]:
        ...

    def update(self, asset_id: str, changes: Dict[str, Any]) -> Optional[ImageAssetDto]:
        ...

    def delete(self, asset_id: str) -> bool:
        ...

    def stats(self, entity_type: Optional[str] = None, since: Optional[datetime] = None) -> Dict[str, Any]:
        ...
