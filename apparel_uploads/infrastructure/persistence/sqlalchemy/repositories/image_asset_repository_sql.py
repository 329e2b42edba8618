from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from .....application.ports.image_asset_repo import (
    ImageAssetDto,
    ImageAssetFilters,
    ImageAssetRepository,
    NewImageAsset,
    SORTABLE_COLUMNS,
)
from .....db.models import ImageAsset
from .....exceptions import CatalogError

_UPDATABLE = {
    "filename", "public_url", "image_purpose", "alt_text", "is_active", "is_primary",
    "access_level", "processing_status", "metadata", "deleted_at", "file_size", "mime_type",
}


class SqlImageAssetRepository(ImageAssetRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_dto(self, a: ImageAsset) -> ImageAssetDto:
        return ImageAssetDto(
            id=a.id,
            filename=a.filename,
            original_filename=a.original_filename,
            file_size=a.file_size,
            mime_type=a.mime_type,
            storage_bucket=a.storage_bucket,
            storage_path=a.storage_path,
            public_url=a.public_url,
            entity_type=a.entity_type,
            entity_id=a.entity_id,
            image_purpose=a.image_purpose,
            alt_text=a.alt_text,
            is_active=a.is_active,
            is_primary=a.is_primary,
            access_level=a.access_level,
            processing_status=a.processing_status,
            metadata=dict(a.asset_metadata or {}),
            uploaded_by=a.uploaded_by,
            created_at=a.created_at,
            updated_at=a.updated_at,
            deleted_at=a.deleted_at,
        )

    def _commit(self, action: str) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise CatalogError(f"Failed to {action} image asset: {e.__class__.__name__}") from e

    def create(self, asset: NewImageAsset) -> ImageAssetDto:
        row = ImageAsset(
            filename=asset.filename,
            original_filename=asset.original_filename,
            file_size=asset.file_size,
            mime_type=asset.mime_type,
            storage_bucket=asset.storage_bucket,
            storage_path=asset.storage_path,
            public_url=asset.public_url,
            uploaded_by=asset.uploaded_by,
            entity_type=asset.entity_type,
            entity_id=asset.entity_id,
            image_purpose=asset.image_purpose,
            alt_text=asset.alt_text,
            is_active=asset.is_active,
            is_primary=asset.is_primary,
            access_level=asset.access_level,
            processing_status=asset.processing_status,
            asset_metadata=asset.metadata,
        )
        self.session.add(row)
        self._commit("create")
        self.session.refresh(row)
        return self._to_dto(row)

    def get(self, asset_id: str) -> Optional[ImageAssetDto]:
        row = self.session.get(ImageAsset, asset_id)
        return self._to_dto(row) if row else None

    def get_by_location(self, bucket: str, path: str) -> Optional[ImageAssetDto]:
        row = self.session.exec(
            select(ImageAsset).where(ImageAsset.storage_bucket == bucket, ImageAsset.storage_path == path)
        ).first()
        return self._to_dto(row) if row else None

    def _apply_filters(self, stmt, f: ImageAssetFilters):
        if f.owner_id:
            stmt = stmt.where(ImageAsset.uploaded_by == f.owner_id)
        if f.entity_type:
            stmt = stmt.where(ImageAsset.entity_type == f.entity_type)
        if f.entity_id:
            stmt = stmt.where(ImageAsset.entity_id == f.entity_id)
        if f.image_purpose:
            stmt = stmt.where(ImageAsset.image_purpose == f.image_purpose)
        if f.access_level:
            stmt = stmt.where(ImageAsset.access_level == f.access_level)
        if f.processing_status:
            stmt = stmt.where(ImageAsset.processing_status == f.processing_status)
        if f.deleted is False:
            stmt = stmt.where(ImageAsset.deleted_at.is_(None))
        elif f.deleted is True:
            stmt = stmt.where(ImageAsset.deleted_at.is_not(None))
        return stmt

    def list(self, filters: ImageAssetFilters) -> Tuple[List[ImageAssetDto], int]:
        total = self.session.exec(
            self._apply_filters(select(func.count()).select_from(ImageAsset), filters)
        ).one()

        sort_column = getattr(ImageAsset, filters.sort_by if filters.sort_by in SORTABLE_COLUMNS else "created_at")
        order = sort_column.asc() if filters.sort_order == "asc" else sort_column.desc()
        rows = self.session.exec(
            self._apply_filters(select(ImageAsset), filters)
            .order_by(order, ImageAsset.id)
            .offset(filters.offset)
            .limit(filters.limit)
        ).all()
        return [self._to_dto(r) for r in rows], int(total)

    def update(self, asset_id: str, changes: Dict[str, Any]) -> Optional[ImageAssetDto]:
        row = self.session.get(ImageAsset, asset_id)
        if not row:
            return None
        for key, value in changes.items():
            if key not in _UPDATABLE:
                raise CatalogError(f"Field '{key}' cannot be updated")
            setattr(row, "asset_metadata" if key == "metadata" else key, value)
        row.updated_at = datetime.utcnow()
        self.session.add(row)
        self._commit("update")
        self.session.refresh(row)
        return self._to_dto(row)

    def delete(self, asset_id: str) -> bool:
        row = self.session.get(ImageAsset, asset_id)
        if not row:
            return False
        self.session.delete(row)
        self._commit("delete")
        return True

    def stats(self, entity_type: Optional[str] = None, since: Optional[datetime] = None) -> Dict[str, Any]:
        base = select(ImageAsset).where(ImageAsset.deleted_at.is_(None))
        if entity_type:
            base = base.where(ImageAsset.entity_type == entity_type)
        sub = base.subquery()

        total, total_size = self.session.exec(
            select(func.count(), func.coalesce(func.sum(sub.c.file_size), 0)).select_from(sub)
        ).one()
        by_entity_type = {
            k: n for k, n in self.session.exec(
                select(sub.c.entity_type, func.count()).select_from(sub).group_by(sub.c.entity_type)
            ).all()
        }
        by_purpose = {
            (k or "unspecified"): n for k, n in self.session.exec(
                select(sub.c.image_purpose, func.count()).select_from(sub).group_by(sub.c.image_purpose)
            ).all()
        }
        recent = 0
        if since is not None:
            recent = self.session.exec(
                select(func.count()).select_from(sub).where(sub.c.created_at > since)
            ).one()
        return {
            "total_uploads": int(total),
            "total_size": int(total_size),
            "by_entity_type": by_entity_type,
            "by_purpose": by_purpose,
            "recent_uploads": int(recent),
        }
