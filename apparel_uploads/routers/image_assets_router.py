import logging
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query

from ..application.ports.image_asset_repo import ImageAssetDto, ImageAssetFilters
from ..application.services.image_asset_service import ImageAssetService
from ..dependencies import CurrentUser, get_current_user, get_image_asset_service
from ..exceptions import UploadError, UploadErrorCode, create_success_response
from ..schemas.common.common import ERROR_RESPONSES
from ..schemas.image_assets.image_asset import (
    ImageAssetListResponse,
    ImageAssetRead,
    ImageAssetUpdate,
    MetadataUpdate,
)
from ..uploads.types import AccessLevel, EntityType, ImagePurpose

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/image-assets", tags=["Image Assets"], responses=ERROR_RESPONSES)


def _read(asset: ImageAssetDto) -> dict:
    return ImageAssetRead.model_validate(asset).model_dump(mode="json")


def _require_access(service: ImageAssetService, asset: ImageAssetDto, user: CurrentUser) -> None:
    if not service.can_access(asset, user.user_id, user.role):
        raise UploadError("You do not have access to this image", UploadErrorCode.PERMISSION_DENIED)


def _require_owner(asset: ImageAssetDto, user: CurrentUser) -> None:
    if user.role != "admin" and asset.uploaded_by != user.user_id:
        raise UploadError("Only the uploader or an admin can modify this image", UploadErrorCode.PERMISSION_DENIED)


@router.get("")
def list_image_assets(
    owner_id: Optional[str] = Query(None),
    entity_type: Optional[EntityType] = Query(None),
    entity_id: Optional[str] = Query(None),
    image_purpose: Optional[ImagePurpose] = Query(None),
    access_level: Optional[AccessLevel] = Query(None),
    deleted: Optional[bool] = Query(None, description="true: only soft-deleted, false: only active, omitted: both"),
    sort_by: Literal["created_at", "updated_at", "entity_type", "file_size"] = Query("created_at"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: CurrentUser = Depends(get_current_user),
    service: ImageAssetService = Depends(get_image_asset_service),
):
    filters = ImageAssetFilters(
        owner_id=owner_id,
        entity_type=entity_type.value if entity_type else None,
        entity_id=entity_id,
        image_purpose=image_purpose.value if image_purpose else None,
        access_level=access_level.value if access_level else None,
        deleted=deleted,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )
    # Non-admins only browse their own uploads
    if user.role != "admin":
        filters.owner_id = user.user_id
    items, total = service.list(filters)
    page = ImageAssetListResponse(
        items=[ImageAssetRead.model_validate(a) for a in items],
        total=total,
        limit=filters.limit,
        offset=filters.offset,
        has_more=filters.offset + len(items) < total,
    )
    return create_success_response(page.model_dump(mode="json"))


@router.get("/entity/{entity_type}/{entity_id}")
def list_entity_images(
    entity_type: EntityType,
    entity_id: str,
    image_purpose: Optional[str] = Query(None),
    user: CurrentUser = Depends(get_current_user),
    service: ImageAssetService = Depends(get_image_asset_service),
):
    assets: List[ImageAssetDto] = service.list_for_entity(entity_type.value, entity_id, image_purpose)
    visible = [_read(a) for a in assets if service.can_access(a, user.user_id, user.role)]
    return create_success_response(visible)


@router.get("/{asset_id}")
def get_image_asset(
    asset_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: ImageAssetService = Depends(get_image_asset_service),
):
    asset = service.get_by_id(asset_id)
    _require_access(service, asset, user)
    return create_success_response(_read(asset))


@router.patch("/{asset_id}")
def update_image_asset(
    asset_id: str,
    changes: ImageAssetUpdate,
    user: CurrentUser = Depends(get_current_user),
    service: ImageAssetService = Depends(get_image_asset_service),
):
    _require_owner(service.get_by_id(asset_id), user)
    updated = service.update(asset_id, changes.model_dump(exclude_unset=True), actor_id=user.user_id)
    return create_success_response(_read(updated))


@router.patch("/{asset_id}/metadata")
def update_image_metadata(
    asset_id: str,
    body: MetadataUpdate,
    user: CurrentUser = Depends(get_current_user),
    service: ImageAssetService = Depends(get_image_asset_service),
):
    _require_owner(service.get_by_id(asset_id), user)
    updated = service.update_metadata(asset_id, body.metadata, actor_id=user.user_id)
    return create_success_response(_read(updated))


@router.delete("/{asset_id}")
def soft_delete_image_asset(
    asset_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: ImageAssetService = Depends(get_image_asset_service),
):
    _require_owner(service.get_by_id(asset_id, include_deleted=True), user)
    return create_success_response(_read(service.soft_delete(asset_id, actor_id=user.user_id)))


@router.post("/{asset_id}/restore")
def restore_image_asset(
    asset_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: ImageAssetService = Depends(get_image_asset_service),
):
    _require_owner(service.get_by_id(asset_id, include_deleted=True), user)
    return create_success_response(_read(service.restore(asset_id, actor_id=user.user_id)))


@router.delete("/{asset_id}/permanent")
def hard_delete_image_asset(
    asset_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: ImageAssetService = Depends(get_image_asset_service),
):
    if user.role != "admin":
        raise UploadError("Permanent deletion requires an admin", UploadErrorCode.PERMISSION_DENIED)
    service.hard_delete(asset_id, actor_id=user.user_id)
    return create_success_response({"id": asset_id, "deleted": True})
