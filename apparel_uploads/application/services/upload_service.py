import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from ..ports.audit_logger import AuditLogger
from ..ports.binary_transformer import BinaryTransformer
from ..ports.entity_directory import EntityDirectory
from ..ports.image_asset_repo import ImageAssetRepository, NewImageAsset
from ..ports.object_store import ObjectStore
from ..ports.single_uploader import SingleUploader
from ..ports.virus_scanner import VirusScanner
from ...exceptions import CatalogError, StorageError, UploadError, UploadErrorCode
from ...schemas.uploads.metadata import Dimension
from ...schemas.uploads.upload import ProcessingResults, UploadRequest, UploadResult
from ...uploads.metadata import assemble_metadata
from ...uploads.naming import EXTENSION_BY_CONTENT_TYPE, generate_storage_path, generate_unique_filename
from ...uploads.policies import PipelineConfig
from ...uploads.types import (
    AccessLevel,
    ProcessingProfile,
    ProcessingStatus,
    UploadContext,
    UploadedFile,
)
from ...uploads.validation import validate_upload_file

logger = logging.getLogger(__name__)


def describe_validation_error(e: ValidationError) -> str:
    parts = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "Invalid upload request: " + "; ".join(parts)


@dataclass
class UploadService(SingleUploader):
    """Runs one file through validate, transform, store, describe and catalog.

    Callers always get an ``UploadResult`` back; failures are reported in it,
    never raised. The catalog row is written ``pending`` before the object is
    stored and moves to ``active`` or ``failed`` afterwards, so an interrupted
    upload leaves an inspectable row rather than an untracked object.
    """
    config: PipelineConfig
    transformer: BinaryTransformer
    object_store: ObjectStore
    asset_repo: ImageAssetRepository
    entity_directory: EntityDirectory
    audit_logger: AuditLogger
    virus_scanner: Optional[VirusScanner] = None
    signed_url_expires: int = 3600

    async def upload_single(
        self,
        file: UploadedFile,
        request: Union[UploadRequest, Dict[str, Any]],
        context: UploadContext,
        skip_entity_validation: bool = False,
        custom_metadata: Optional[Dict[str, Any]] = None,
        display_order: Optional[int] = None,
    ) -> UploadResult:
        started = time.monotonic()
        parsed: Optional[UploadRequest] = None
        try:
            parsed = self._parse_request(request)
            result = await self._upload(file, parsed, context, skip_entity_validation, custom_metadata, display_order, started)
        except UploadError as e:
            logger.warning(f"Upload of {file.filename!r} failed with {e.code.value}: {e.message}")
            result = UploadResult.failure(e.message, e.code.value)
        except Exception as e:
            logger.exception(f"Upload of {file.filename!r} failed unexpectedly")
            result = UploadResult.failure(str(e) or "Unknown upload error", UploadErrorCode.UNEXPECTED_ERROR.value)

        self.audit_logger.log(
            "image.uploaded" if result.success else "image.upload_failed",
            context.user_id,
            entity_type=parsed.entity_type.value if parsed else None,
            entity_id=parsed.entity_id if parsed else None,
            asset_id=result.image_asset_id,
            success=result.success,
            trace_id=context.trace_id,
            ip_address=context.ip_address,
            details={
                "original_filename": file.filename,
                "file_size": file.size,
                "storage_path": result.storage_path,
                "error_code": result.error_code,
            },
        )
        return result

    def _parse_request(self, request: Union[UploadRequest, Dict[str, Any]]) -> UploadRequest:
        if isinstance(request, UploadRequest):
            return request
        try:
            return UploadRequest.model_validate(request)
        except ValidationError as e:
            raise UploadError(describe_validation_error(e), UploadErrorCode.VALIDATION_FAILED)

    async def _upload(
        self,
        file: UploadedFile,
        request: UploadRequest,
        context: UploadContext,
        skip_entity_validation: bool,
        custom_metadata: Optional[Dict[str, Any]],
        display_order: Optional[int],
        started: float,
    ) -> UploadResult:
        policy = self.config.policy_for(request.entity_type)
        if policy is None:
            raise UploadError(f"No storage policy configured for {request.entity_type.value}", UploadErrorCode.VALIDATION_FAILED)
        options = self.config.profile_for(request.processing_profile)
        if options is None:
            raise UploadError(f"Unknown processing profile: {request.processing_profile.value}", UploadErrorCode.VALIDATION_FAILED)

        validation = validate_upload_file(file.data, file.filename, file.content_type, request.entity_type, self.config)
        if not validation.valid:
            raise UploadError("; ".join(validation.errors), UploadErrorCode(validation.error_code))

        if not skip_entity_validation and not self.entity_directory.exists(request.entity_type, request.entity_id):
            raise UploadError(
                f"{request.entity_type.value} with ID {request.entity_id} not found",
                UploadErrorCode.ENTITY_NOT_FOUND,
            )

        scan_result = await self._scan(file, policy.enable_virus_scan)

        if not policy.enable_compression:
            request = request.model_copy(update={"processing_profile": ProcessingProfile.ORIGINAL})
            options = self.config.profile_for(ProcessingProfile.ORIGINAL) or options
        profile = request.processing_profile
        transform = await asyncio.to_thread(self.transformer.transform, file.data, options, file.content_type)
        warnings = list(validation.warnings)
        if transform.fallback_reason:
            warnings.append(f"Image processing failed, original file stored: {transform.fallback_reason}")

        extension = EXTENSION_BY_CONTENT_TYPE.get(transform.content_type) if transform.format_converted else None
        filename = generate_unique_filename(file.filename, profile, extension)
        location = generate_storage_path(request.entity_type, request.entity_id, request.image_purpose, filename, self.config)

        asset = self.asset_repo.create(NewImageAsset(
            filename=filename,
            original_filename=file.filename,
            file_size=len(transform.data),
            mime_type=transform.content_type,
            storage_bucket=location.bucket,
            storage_path=location.path,
            entity_type=request.entity_type.value,
            entity_id=request.entity_id,
            image_purpose=request.image_purpose.value,
            uploaded_by=context.user_id,
            alt_text=request.alt_text,
            is_active=False,
            is_primary=request.is_primary,
            access_level=request.access_level.value,
            processing_status=ProcessingStatus.PENDING.value,
        ))

        try:
            public_url = await asyncio.to_thread(
                self.object_store.put, location.bucket, location.path, transform.data, transform.content_type,
            )
        except Exception as e:
            error = e if isinstance(e, StorageError) else StorageError(f"Storage operation failed: {e}")
            self._mark_failed(asset.id, error.message)
            raise error

        metadata = assemble_metadata(
            file,
            request,
            context,
            policy,
            transform,
            processing_time_ms=int((time.monotonic() - started) * 1000),
            virus_scan_result=scan_result,
            display_order=display_order,
            custom=custom_metadata,
        )
        try:
            self.asset_repo.update(asset.id, {
                "public_url": public_url,
                "processing_status": ProcessingStatus.ACTIVE.value,
                "is_active": True,
                "metadata": metadata.model_dump(mode="json", exclude_none=True),
            })
        except CatalogError:
            logger.error(f"Stored {location.full_path} but could not activate asset {asset.id}; row left pending")
            raise

        if request.access_level == AccessLevel.PUBLIC:
            secure_url = public_url
        else:
            secure_url = self.object_store.signed_url(location.bucket, location.path, self.signed_url_expires)

        dims = transform.dimensions
        return UploadResult(
            success=True,
            image_asset_id=asset.id,
            public_url=public_url,
            secure_url=secure_url,
            storage_path=location.path,
            processing_results=ProcessingResults(
                profile=profile,
                original_size=file.size,
                processed_size=len(transform.data),
                dimensions=Dimension(width=dims.width if dims else 0, height=dims.height if dims else 0),
            ),
            metadata=metadata,
            warnings=warnings,
        )

    async def _scan(self, file: UploadedFile, scan_enabled: bool) -> str:
        if self.virus_scanner is None:
            return "pending" if scan_enabled else "skipped"
        verdict = await asyncio.to_thread(self.virus_scanner.scan, file.data, file.filename)
        if verdict == "infected":
            raise UploadError("File failed security scan - upload rejected", UploadErrorCode.VIRUS_DETECTED)
        return verdict

    def _mark_failed(self, asset_id: str, reason: str) -> None:
        try:
            self.asset_repo.update(asset_id, {
                "processing_status": ProcessingStatus.FAILED.value,
                "metadata": {"failure_reason": reason},
            })
        except CatalogError as e:
            logger.error(f"Could not mark asset {asset_id} as failed: {e.message}")
