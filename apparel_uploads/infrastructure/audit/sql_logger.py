import logging
from typing import Optional, Dict, Any

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ...application.ports.audit_logger import AuditLogger
from ...db.models import AssetAuditLog

logger = logging.getLogger(__name__)


class SqlAuditLogger(AuditLogger):
    """Persists audit entries to ``asset_audit_log``.

    A failed audit write is logged and dropped; it never fails the operation being audited.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def log(self, action: str, user_id: Optional[str], entity_type: Optional[str] = None, entity_id: Optional[str] = None, asset_id: Optional[str] = None, success: bool = True, trace_id: Optional[str] = None, ip_address: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> None:
        entry = AssetAuditLog(
            action=action,
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            asset_id=asset_id,
            success=success,
            trace_id=trace_id,
            ip_address=ip_address,
            details=details or {},
        )
        try:
            self.session.add(entry)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to log audit entry {action} for asset {asset_id}: {e}")
