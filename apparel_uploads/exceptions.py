from enum import Enum
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse


class UploadErrorCode(str, Enum):
    VALIDATION_FAILED = "VALIDATION_FAILED"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    INVALID_FILE_TYPE = "INVALID_FILE_TYPE"
    ENTITY_NOT_FOUND = "ENTITY_NOT_FOUND"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    STORAGE_ERROR = "STORAGE_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    PROCESSING_FAILED = "PROCESSING_FAILED"
    VIRUS_DETECTED = "VIRUS_DETECTED"
    NOT_FOUND = "NOT_FOUND"
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"


RETRYABLE_CODES = frozenset({
    UploadErrorCode.STORAGE_ERROR,
    UploadErrorCode.DATABASE_ERROR,
    UploadErrorCode.PROCESSING_FAILED,
    UploadErrorCode.UNEXPECTED_ERROR,
})

HTTP_STATUS_BY_CODE: Dict[UploadErrorCode, int] = {
    UploadErrorCode.VALIDATION_FAILED: 400,
    UploadErrorCode.FILE_TOO_LARGE: 413,
    UploadErrorCode.INVALID_FILE_TYPE: 415,
    UploadErrorCode.ENTITY_NOT_FOUND: 404,
    UploadErrorCode.PERMISSION_DENIED: 403,
    UploadErrorCode.STORAGE_ERROR: 502,
    UploadErrorCode.DATABASE_ERROR: 500,
    UploadErrorCode.PROCESSING_FAILED: 422,
    UploadErrorCode.VIRUS_DETECTED: 422,
    UploadErrorCode.NOT_FOUND: 404,
    UploadErrorCode.UNEXPECTED_ERROR: 500,
}


def is_retryable(code: str) -> bool:
    try:
        return UploadErrorCode(code) in RETRYABLE_CODES
    except ValueError:
        return False


def status_for_code(code: Optional[str]) -> int:
    try:
        return HTTP_STATUS_BY_CODE[UploadErrorCode(code)]
    except (KeyError, ValueError):
        return 400


class UploadError(Exception):
    """Failure inside the upload pipeline or the asset catalog."""

    code = UploadErrorCode.UNEXPECTED_ERROR

    def __init__(self, message: str, code: Optional[UploadErrorCode] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = UploadErrorCode(code)
        self.details = details or {}

    @property
    def retryable(self) -> bool:
        return self.code in RETRYABLE_CODES

    @property
    def status_code(self) -> int:
        return HTTP_STATUS_BY_CODE[self.code]


class AssetNotFoundError(UploadError):
    code = UploadErrorCode.NOT_FOUND

    def __init__(self, asset_id: str):
        super().__init__(f"Image asset {asset_id} not found", details={"asset_id": asset_id})


class CatalogError(UploadError):
    code = UploadErrorCode.DATABASE_ERROR


class StorageError(UploadError):
    code = UploadErrorCode.STORAGE_ERROR


class BatchRequestError(UploadError):
    code = UploadErrorCode.VALIDATION_FAILED


def create_error_response(error_message: str, error_code: Optional[str] = None) -> dict:
    """Create a standardized error response"""
    return {
        "success": False,
        "data": None,
        "error": error_message,
        "error_code": error_code,
    }


def create_success_response(data: Any) -> dict:
    """Create a standardized success response"""
    return {
        "success": True,
        "data": data,
        "error": None,
    }


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Custom exception handler for HTTPException"""
    # Convert 403 from HTTPBearer to 401 for missing authentication
    if exc.status_code == 403 and "Not authenticated" in str(exc.detail):
        return JSONResponse(
            status_code=401,
            content=create_error_response("Authentication required", "AUTH_REQUIRED"),
        )

    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.detail),
    )


async def upload_error_handler(request: Request, exc: UploadError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.message, exc.code.value),
    )
