# Models package (re-export feature modules for stable imports)
from .media.image_asset import ImageAsset
from .audit.audit_log import AssetAuditLog

__all__ = [
    "ImageAsset",
    "AssetAuditLog",
]
