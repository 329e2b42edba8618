# apparel_uploads/db/models/audit/audit_log.py
from typing import Any, Dict, Optional
from sqlmodel import SQLModel, Field
from datetime import datetime
import uuid
from sqlalchemy import Column, JSON


class AssetAuditLog(SQLModel, table=True):
    __tablename__ = "asset_audit_log"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    action: str = Field(max_length=64, index=True)
    user_id: Optional[str] = Field(default=None, index=True)
    entity_type: Optional[str] = Field(default=None, max_length=50)
    entity_id: Optional[str] = Field(default=None, max_length=128, index=True)
    asset_id: Optional[str] = Field(default=None, index=True)
    success: bool = True
    trace_id: Optional[str] = None
    ip_address: Optional[str] = Field(default=None, max_length=45)
    details: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
