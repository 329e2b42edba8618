from typing import Optional, Dict, Any, Protocol


class AuditLogger(Protocol):
    def log(self, action: str, user_id: Optional[str], entity_type: Optional[str] = None, entity_id: Optional[str] = None, asset_id: Optional[str] = None, success: bool = True, trace_id: Optional[str] = None, ip_address: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> None:
        ...
