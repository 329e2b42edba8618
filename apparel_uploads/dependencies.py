import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from .application.ports.audit_logger import AuditLogger
from .application.services.batch_upload_service import BatchUploadService
from .application.services.image_asset_service import ImageAssetService
from .application.services.upload_service import UploadService
from .config import Settings, get_settings
from .database import get_session
from .infrastructure.audit.sql_logger import SqlAuditLogger
from .infrastructure.audit.std_logger import StdAuditLogger
from .infrastructure.imaging.pillow_transformer import PillowTransformer
from .infrastructure.persistence.sqlalchemy.repositories.entity_directory_sql import SqlEntityDirectory
from .infrastructure.persistence.sqlalchemy.repositories.image_asset_repository_sql import SqlImageAssetRepository
from .infrastructure.storage.local_storage import LocalObjectStore
from .security import decode_jwt_token
from .uploads.policies import PipelineConfig, build_pipeline_config
from .uploads.types import UploadContext

logger = logging.getLogger(__name__)

oauth2_scheme = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    user_id: str
    role: Optional[str] = None


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(oauth2_scheme),
    settings: Settings = Depends(get_settings),
) -> CurrentUser:
    token = None
    if credentials and credentials.credentials:
        token = credentials.credentials
    else:
        # Fallback to cookie
        token = request.cookies.get("access_token")
    if not token:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    payload = decode_jwt_token(token, settings.SECRET_KEY, settings.ALGORITHM)
    if not payload:
        logger.warning("JWT token decode failed - invalid or expired token")
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user_id = payload.get("sub")
    if not user_id:
        logger.warning("JWT token missing user ID")
        raise HTTPException(status_code=401, detail="Invalid token: missing user ID")
    return CurrentUser(user_id=str(user_id), role=payload.get("role"))


def get_upload_context(request: Request, user: CurrentUser = Depends(get_current_user)) -> UploadContext:
    headers = request.headers
    return UploadContext(
        user_id=user.user_id,
        role=user.role,
        ip_address=request.client.host if request.client else None,
        user_agent=headers.get("user-agent"),
        client_type=headers.get("x-client-type"),
        trace_id=getattr(request.state, "trace_id", None) or headers.get("x-trace-id"),
        workflow_id=headers.get("x-workflow-id"),
        api_version=headers.get("x-api-version"),
    )


def get_pipeline_config(settings: Settings = Depends(get_settings)) -> PipelineConfig:
    return build_pipeline_config(settings)


def get_object_store(settings: Settings = Depends(get_settings)) -> LocalObjectStore:
    return LocalObjectStore(settings.UPLOAD_DIR, settings.BASE_URL, settings.SECRET_KEY, settings.ALGORITHM)


def get_audit_logger(
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> AuditLogger:
    if settings.AUDIT_LOG_BACKEND == "log":
        return StdAuditLogger()
    return SqlAuditLogger(session)


def get_upload_service(
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    config: PipelineConfig = Depends(get_pipeline_config),
    object_store: LocalObjectStore = Depends(get_object_store),
    audit_logger: AuditLogger = Depends(get_audit_logger),
) -> UploadService:
    return UploadService(
        config=config,
        transformer=PillowTransformer(),
        object_store=object_store,
        asset_repo=SqlImageAssetRepository(session),
        entity_directory=SqlEntityDirectory(session, config.policies),
        audit_logger=audit_logger,
        signed_url_expires=settings.SIGNED_URL_EXPIRE_SECONDS,
    )


def get_batch_upload_service(
    uploader: UploadService = Depends(get_upload_service),
    settings: Settings = Depends(get_settings),
    config: PipelineConfig = Depends(get_pipeline_config),
    audit_logger: AuditLogger = Depends(get_audit_logger),
) -> BatchUploadService:
    return BatchUploadService(
        uploader=uploader,
        audit_logger=audit_logger,
        chunk_size=config.chunk_size,
        item_timeout_seconds=config.item_timeout_seconds,
        max_files=settings.UPLOAD_MAX_FILES_PER_REQUEST,
    )


def get_image_asset_service(
    session: Session = Depends(get_session),
    config: PipelineConfig = Depends(get_pipeline_config),
    object_store: LocalObjectStore = Depends(get_object_store),
    audit_logger: AuditLogger = Depends(get_audit_logger),
) -> ImageAssetService:
    return ImageAssetService(
        repo=SqlImageAssetRepository(session),
        object_store=object_store,
        audit_logger=audit_logger,
        config=config,
    )
