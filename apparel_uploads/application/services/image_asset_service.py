import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from ..ports.audit_logger import AuditLogger
from ..ports.image_asset_repo import (
    ImageAssetDto,
    ImageAssetFilters,
    ImageAssetRepository,
    NewImageAsset,
    SORTABLE_COLUMNS,
)
from ..ports.object_store import ObjectStore
from ...exceptions import AssetNotFoundError, UploadError, UploadErrorCode
from ...uploads.policies import PipelineConfig
from ...uploads.types import AccessLevel, EntityType, ProcessingStatus

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset({"alt_text", "is_primary", "is_active", "access_level", "image_purpose"})
MAX_PAGE_SIZE = 100


@dataclass
class ImageAssetService:
    """Catalog of stored image assets: CRUD, soft delete and restore."""
    repo: ImageAssetRepository
    object_store: ObjectStore
    audit_logger: AuditLogger
    config: PipelineConfig

    def _audit(self, action: str, asset: ImageAssetDto, actor_id: Optional[str], details: Optional[Dict[str, Any]] = None) -> None:
        self.audit_logger.log(
            action,
            actor_id,
            entity_type=asset.entity_type,
            entity_id=asset.entity_id,
            asset_id=asset.id,
            details=details,
        )

    def create(self, asset: NewImageAsset, actor_id: Optional[str] = None) -> ImageAssetDto:
        created = self.repo.create(asset)
        self._audit("image.created", created, actor_id)
        return created

    def get_by_id(self, asset_id: str, include_deleted: bool = False) -> ImageAssetDto:
        asset = self.repo.get(asset_id)
        if asset is None or (asset.deleted_at is not None and not include_deleted):
            raise AssetNotFoundError(asset_id)
        return asset

    def get_by_location(self, bucket: str, path: str) -> ImageAssetDto:
        asset = self.repo.get_by_location(bucket, path)
        if asset is None or asset.deleted_at is not None:
            raise AssetNotFoundError(f"{bucket}/{path}")
        return asset

    def list(self, filters: ImageAssetFilters) -> Tuple[List[ImageAssetDto], int]:
        if filters.sort_by not in SORTABLE_COLUMNS:
            raise UploadError(f"Cannot sort by '{filters.sort_by}'", UploadErrorCode.VALIDATION_FAILED)
        if filters.sort_order not in ("asc", "desc"):
            raise UploadError(f"Invalid sort order '{filters.sort_order}'", UploadErrorCode.VALIDATION_FAILED)
        filters = replace(
            filters,
            limit=min(max(filters.limit, 1), MAX_PAGE_SIZE),
            offset=max(filters.offset, 0),
        )
        return self.repo.list(filters)

    def list_for_entity(
        self,
        entity_type: str,
        entity_id: str,
        image_purpose: Optional[str] = None,
        include_deleted: bool = False,
    ) -> List[ImageAssetDto]:
        assets, _ = self.list(ImageAssetFilters(
            entity_type=entity_type,
            entity_id=entity_id,
            image_purpose=image_purpose,
            deleted=None if include_deleted else False,
            limit=MAX_PAGE_SIZE,
        ))
        return assets

    def update(self, asset_id: str, changes: Dict[str, Any], actor_id: Optional[str] = None) -> ImageAssetDto:
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise UploadError(f"Fields cannot be updated: {', '.join(sorted(unknown))}", UploadErrorCode.VALIDATION_FAILED)
        self.get_by_id(asset_id)
        if not changes:
            return self.get_by_id(asset_id)
        updated = self.repo.update(asset_id, changes)
        if updated is None:
            raise AssetNotFoundError(asset_id)
        self._audit("image.updated", updated, actor_id, {"fields": sorted(changes)})
        return updated

    def update_metadata(self, asset_id: str, metadata: Dict[str, Any], actor_id: Optional[str] = None) -> ImageAssetDto:
        """Shallow-merges ``metadata`` into the stored document."""
        current = self.get_by_id(asset_id)
        merged = {**current.metadata, **metadata}
        updated = self.repo.update(asset_id, {"metadata": merged})
        if updated is None:
            raise AssetNotFoundError(asset_id)
        self._audit("image.metadata_updated", updated, actor_id, {"keys": sorted(metadata)})
        return updated

    def soft_delete(self, asset_id: str, actor_id: Optional[str] = None) -> ImageAssetDto:
        asset = self.get_by_id(asset_id, include_deleted=True)
        if asset.deleted_at is not None:
            return asset
        updated = self.repo.update(asset_id, {"deleted_at": datetime.utcnow(), "is_active": False})
        self._audit("image.soft_deleted", updated, actor_id)
        return updated

    def restore(self, asset_id: str, actor_id: Optional[str] = None) -> ImageAssetDto:
        asset = self.get_by_id(asset_id, include_deleted=True)
        if asset.deleted_at is None:
            return asset
        updated = self.repo.update(asset_id, {
            "deleted_at": None,
            "is_active": asset.processing_status == ProcessingStatus.ACTIVE.value,
        })
        self._audit("image.restored", updated, actor_id)
        return updated

    def hard_delete(self, asset_id: str, actor_id: Optional[str] = None) -> None:
        """Removes the stored object, then the catalog row."""
        asset = self.get_by_id(asset_id, include_deleted=True)
        if not self.object_store.delete(asset.storage_bucket, asset.storage_path):
            logger.warning(f"Object {asset.storage_bucket}/{asset.storage_path} was already gone for asset {asset_id}")
        if not self.repo.delete(asset_id):
            raise AssetNotFoundError(asset_id)
        self._audit("image.hard_deleted", asset, actor_id, {"storage_path": asset.storage_path})

    def stats(self, entity_type: Optional[str] = None) -> Dict[str, Any]:
        return self.repo.stats(entity_type=entity_type, since=datetime.utcnow() - timedelta(hours=24))

    def can_access(self, asset: ImageAssetDto, user_id: Optional[str], role: Optional[str]) -> bool:
        if role == "admin":
            return True
        if user_id and asset.uploaded_by == user_id:
            return True
        level = AccessLevel(asset.access_level)
        if level == AccessLevel.PUBLIC:
            return True
        if level == AccessLevel.RESTRICTED or not role:
            return False
        allowed = (asset.metadata.get("security") or {}).get("allowed_roles")
        if allowed is None:
            policy = self.config.policy_for(EntityType(asset.entity_type))
            allowed = list(policy.allowed_roles) if policy else []
        return role in allowed
