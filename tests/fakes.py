import io
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from PIL import Image

from apparel_uploads.application.ports.image_asset_repo import ImageAssetDto, ImageAssetFilters, NewImageAsset
from apparel_uploads.exceptions import CatalogError, StorageError


def make_jpeg(size=(1600, 1200), color=(20, 120, 200)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="JPEG")
    return buf.getvalue()


class FakeAssetRepo:
    def __init__(self, fail_on_update: bool = False):
        self.rows: Dict[str, ImageAssetDto] = {}
        self.fail_on_update = fail_on_update

    def create(self, asset: NewImageAsset) -> ImageAssetDto:
        now = datetime.utcnow()
        dto = ImageAssetDto(id=str(uuid.uuid4()), created_at=now, updated_at=now, **asset.__dict__)
        self.rows[dto.id] = dto
        return dto

    def get(self, asset_id: str) -> Optional[ImageAssetDto]:
        return self.rows.get(asset_id)

    def get_by_location(self, bucket: str, path: str) -> Optional[ImageAssetDto]:
        for row in self.rows.values():
            if row.storage_bucket == bucket and row.storage_path == path:
                return row
        return None

    def list(self, filters: ImageAssetFilters) -> Tuple[List[ImageAssetDto], int]:
        rows = [
            r for r in self.rows.values()
            if (not filters.entity_type or r.entity_type == filters.entity_type)
            and (not filters.entity_id or r.entity_id == filters.entity_id)
            and (not filters.owner_id or r.uploaded_by == filters.owner_id)
            and (filters.deleted is None or (r.deleted_at is not None) == filters.deleted)
        ]
        return rows[filters.offset:filters.offset + filters.limit], len(rows)

    def update(self, asset_id: str, changes: Dict[str, Any]) -> Optional[ImageAssetDto]:
        if self.fail_on_update:
            raise CatalogError("Failed to update image asset: OperationalError")
        row = self.rows.get(asset_id)
        if row is None:
            return None
        row = replace(row, updated_at=datetime.utcnow(), **changes)
        self.rows[asset_id] = row
        return row

    def delete(self, asset_id: str) -> bool:
        return self.rows.pop(asset_id, None) is not None

    def stats(self, entity_type: Optional[str] = None, since: Optional[datetime] = None) -> Dict[str, Any]:
        return {"total_uploads": len(self.rows), "since": since, "entity_type": entity_type}


class FakeObjectStore:
    def __init__(self, fail: bool = False):
        self.objects: Dict[Tuple[str, str], bytes] = {}
        self.fail = fail

    def put(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        if self.fail:
            raise StorageError("Storage operation failed: bucket unavailable")
        if (bucket, path) in self.objects:
            raise StorageError(f"Object already exists: {bucket}/{path}")
        self.objects[(bucket, path)] = data
        return f"http://files.test/storage/{bucket}/{path}"

    def get(self, bucket: str, path: str) -> Optional[bytes]:
        return self.objects.get((bucket, path))

    def delete(self, bucket: str, path: str) -> bool:
        return self.objects.pop((bucket, path), None) is not None

    def signed_url(self, bucket: str, path: str, expires_in: int) -> str:
        return f"http://files.test/storage/{bucket}/{path}?token=signed-{expires_in}"


class FakeDirectory:
    def __init__(self, *known: str):
        self.known = set(known)

    def exists(self, entity_type, entity_id: str) -> bool:
        return entity_id in self.known


class FakeAudit:
    def __init__(self):
        self.entries: List[Dict[str, Any]] = []

    def log(self, action, user_id, **kwargs) -> None:
        self.entries.append({"action": action, "user_id": user_id, **kwargs})

    def actions(self) -> List[str]:
        return [e["action"] for e in self.entries]
