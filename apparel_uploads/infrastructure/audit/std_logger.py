import json
import logging
from datetime import datetime
from typing import Optional, Dict, Any

from ...application.ports.audit_logger import AuditLogger


class StdAuditLogger(AuditLogger):
    def __init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def log(self, action: str, user_id: Optional[str], entity_type: Optional[str] = None, entity_id: Optional[str] = None, asset_id: Optional[str] = None, success: bool = True, trace_id: Optional[str] = None, ip_address: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> None:
        entry = {
            "timestamp": datetime.utcnow().isoformat(),
            "action": action,
            "user_id": user_id,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "asset_id": asset_id,
            "trace_id": trace_id,
            "ip_address": ip_address,
            "success": success,
            "details": details or {},
        }
        self._logger.info(f"AUDIT: {json.dumps(entry, default=str)}")
