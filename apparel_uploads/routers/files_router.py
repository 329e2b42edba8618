import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from ..application.services.image_asset_service import ImageAssetService
from ..config import Settings, get_settings
from ..dependencies import get_image_asset_service, get_object_store
from ..exceptions import AssetNotFoundError, UploadError, UploadErrorCode
from ..infrastructure.storage.local_storage import LocalObjectStore
from ..security import verify_object_token
from ..uploads.types import AccessLevel

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Files"])


@router.get("/storage/{bucket}/{path:path}")
def serve_object(
    bucket: str,
    path: str,
    token: Optional[str] = Query(None),
    settings: Settings = Depends(get_settings),
    service: ImageAssetService = Depends(get_image_asset_service),
    store: LocalObjectStore = Depends(get_object_store),
):
    """Serves a stored object. Non-public assets need the token from their signed URL."""
    asset = service.get_by_location(bucket, path)
    if asset.access_level != AccessLevel.PUBLIC.value and not verify_object_token(
        token, bucket, path, settings.SECRET_KEY, settings.ALGORITHM
    ):
        logger.warning(f"Rejected unsigned request for {bucket}/{path}")
        raise UploadError("A valid signed URL is required for this image", UploadErrorCode.PERMISSION_DENIED)
    data = store.get(bucket, path)
    if data is None:
        logger.error(f"Catalog row {asset.id} points at missing object {bucket}/{path}")
        raise AssetNotFoundError(asset.id)
    return Response(content=data, media_type=asset.mime_type, headers={"Cache-Control": "private, max-age=300"})
