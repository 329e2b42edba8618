import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, TypeVar, Union

from pydantic import ValidationError

from ..ports.audit_logger import AuditLogger
from ..ports.single_uploader import SingleUploader
from ...exceptions import BatchRequestError, UploadErrorCode
from ...schemas.uploads.upload import (
    BatchItemResult,
    BatchSummary,
    BatchUploadResult,
    BulkUploadRequest,
    UploadRequest,
    UploadResult,
)
from ...uploads.naming import generate_batch_id
from ...uploads.types import UploadContext, UploadedFile
from .upload_service import describe_validation_error

logger = logging.getLogger(__name__)

T = TypeVar("T")


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    if size < 1:
        raise ValueError("chunk size must be at least 1")
    for start in range(0, len(items), size):
        yield items[start:start + size]


@dataclass
class BatchUploadService:
    """Uploads a list of files in fixed-size chunks.

    Items inside a chunk run concurrently; chunks run one after another, which
    caps the number of transforms and storage writes in flight. Every item
    produces exactly one result at its input index; the batch as a whole only
    raises for malformed input.
    """
    uploader: SingleUploader
    audit_logger: AuditLogger
    chunk_size: int = 3
    item_timeout_seconds: Optional[float] = None
    max_files: Optional[int] = None

    async def upload_batch(
        self,
        files: List[UploadedFile],
        bulk_request: Union[BulkUploadRequest, Dict[str, Any]],
        context: UploadContext,
        skip_entity_validation: bool = False,
    ) -> BatchUploadResult:
        started = time.monotonic()
        request = self._parse_request(bulk_request)

        if len(files) != len(request.uploads):
            raise BatchRequestError(
                "Number of files must match number of upload requests",
                details={"files": len(files), "uploads": len(request.uploads)},
            )
        if self.max_files is not None and len(files) > self.max_files:
            raise BatchRequestError(f"Too many files in one batch (max {self.max_files})")

        batch_id = (request.batch_metadata.batch_id if request.batch_metadata else None) or generate_batch_id()
        items: List[Tuple[int, UploadedFile, UploadRequest]] = [
            (i, f, r) for i, (f, r) in enumerate(zip(files, request.uploads))
        ]

        results: List[BatchItemResult] = []
        for chunk in chunked(items, self.chunk_size):
            results.extend(await asyncio.gather(*(
                self._upload_item(batch_id, index, file, req, context, skip_entity_validation)
                for index, file, req in chunk
            )))

        successful = [r for r in results if r.success]
        errors = [f"File {r.index + 1}: {r.error}" for r in results if not r.success]
        summary = BatchSummary(
            total=len(results),
            successful=len(successful),
            failed=len(results) - len(successful),
            total_size=sum(f.size for f in files),
            processing_time_ms=int((time.monotonic() - started) * 1000),
        )
        logger.info(f"Batch {batch_id}: {summary.successful}/{summary.total} uploaded in {summary.processing_time_ms}ms")

        self.audit_logger.log(
            "image.batch_uploaded",
            context.user_id,
            success=summary.failed == 0,
            trace_id=context.trace_id,
            ip_address=context.ip_address,
            details={"batch_id": batch_id, **summary.model_dump()},
        )
        return BatchUploadResult(
            success=summary.failed == 0,
            batch_id=batch_id,
            results=results,
            summary=summary,
            errors=errors,
        )

    def _parse_request(self, bulk_request: Union[BulkUploadRequest, Dict[str, Any]]) -> BulkUploadRequest:
        if isinstance(bulk_request, BulkUploadRequest):
            return bulk_request
        try:
            return BulkUploadRequest.model_validate(bulk_request)
        except ValidationError as e:
            raise BatchRequestError(describe_validation_error(e))

    async def _upload_item(
        self,
        batch_id: str,
        index: int,
        file: UploadedFile,
        request: UploadRequest,
        context: UploadContext,
        skip_entity_validation: bool,
    ) -> BatchItemResult:
        upload = self.uploader.upload_single(
            file,
            request,
            context,
            skip_entity_validation=skip_entity_validation,
            custom_metadata={"batch_id": batch_id, "batch_index": index},
            display_order=index,
        )
        try:
            if self.item_timeout_seconds:
                result = await asyncio.wait_for(upload, self.item_timeout_seconds)
            else:
                result = await upload
        except asyncio.TimeoutError:
            logger.warning(f"Batch {batch_id} item {index} timed out after {self.item_timeout_seconds}s")
            result = UploadResult.failure(
                f"Upload timed out after {self.item_timeout_seconds}s", UploadErrorCode.UNEXPECTED_ERROR.value,
            )
        except Exception as e:
            logger.exception(f"Batch {batch_id} item {index} failed unexpectedly")
            result = UploadResult.failure(str(e) or "Unknown upload error", UploadErrorCode.UNEXPECTED_ERROR.value)
        return BatchItemResult(index=index, **result.model_dump())
