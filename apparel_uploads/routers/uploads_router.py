import json
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import JSONResponse

from ..application.services.batch_upload_service import BatchUploadService
from ..application.services.image_asset_service import ImageAssetService
from ..application.services.upload_service import UploadService
from ..dependencies import (
    CurrentUser,
    get_batch_upload_service,
    get_current_user,
    get_image_asset_service,
    get_upload_context,
    get_upload_service,
)
from ..exceptions import create_success_response, status_for_code
from ..schemas.common.common import ERROR_RESPONSES
from ..schemas.image_assets.image_asset import UploadStats
from ..uploads.naming import get_content_type
from ..uploads.types import EntityType, UploadContext, UploadedFile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/uploads", tags=["Uploads"], responses=ERROR_RESPONSES)


async def _read_upload(upload: UploadFile) -> UploadedFile:
    filename = upload.filename or ""
    data = await upload.read()
    return UploadedFile(
        filename=filename,
        content_type=upload.content_type or get_content_type(filename),
        data=data,
    )


def _parse_json_field(raw: Optional[str], field: str):
    if raw is None or raw == "":
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail=f"{field} must be valid JSON")


def _skip_entity_validation(requested: bool, context: UploadContext) -> bool:
    if requested and context.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins may skip entity validation")
    return requested


@router.post("", status_code=201)
async def upload_image(
    file: UploadFile = File(...),
    entity_type: str = Form(...),
    entity_id: str = Form(...),
    image_purpose: str = Form(...),
    processing_profile: str = Form("gallery"),
    alt_text: Optional[str] = Form(None),
    caption: Optional[str] = Form(None),
    is_primary: bool = Form(False),
    access_level: str = Form("private"),
    custom_metadata: Optional[str] = Form(None),
    skip_entity_validation: bool = Form(False),
    context: UploadContext = Depends(get_upload_context),
    service: UploadService = Depends(get_upload_service),
):
    request = {
        "entity_type": entity_type,
        "entity_id": entity_id,
        "image_purpose": image_purpose,
        "processing_profile": processing_profile,
        "alt_text": alt_text,
        "caption": caption,
        "is_primary": is_primary,
        "access_level": access_level,
        "custom_metadata": _parse_json_field(custom_metadata, "custom_metadata"),
    }
    result = await service.upload_single(
        await _read_upload(file),
        request,
        context,
        skip_entity_validation=_skip_entity_validation(skip_entity_validation, context),
    )
    body = result.model_dump(mode="json")
    if not result.success:
        return JSONResponse(status_code=status_for_code(result.error_code), content=body)
    return body


@router.post("/batch")
async def upload_batch(
    files: List[UploadFile] = File(...),
    bulk_request: str = Form(..., description="JSON encoded bulk upload request"),
    skip_entity_validation: bool = Form(False),
    context: UploadContext = Depends(get_upload_context),
    service: BatchUploadService = Depends(get_batch_upload_service),
):
    payload = _parse_json_field(bulk_request, "bulk_request")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="bulk_request must be a JSON object")
    uploaded = [await _read_upload(f) for f in files]
    result = await service.upload_batch(
        uploaded,
        payload,
        context,
        skip_entity_validation=_skip_entity_validation(skip_entity_validation, context),
    )
    # 207 when at least one item failed; the per-item results say which
    return JSONResponse(status_code=201 if result.success else 207, content=result.model_dump(mode="json"))


@router.get("/stats")
def upload_stats(
    entity_type: Optional[EntityType] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: ImageAssetService = Depends(get_image_asset_service),
):
    stats = service.stats(entity_type.value if entity_type else None)
    return create_success_response(UploadStats(**stats).model_dump())
