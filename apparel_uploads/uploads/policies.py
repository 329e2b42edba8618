"""Storage policies per entity type and the named processing profiles.

Both tables are plain data; ``PipelineConfig`` bundles them with the pipeline
knobs so callers can build alternate configurations (tests do) instead of
patching module state.
"""
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional

from .types import (
    EntityType,
    FitMode,
    ProcessingOptions,
    ProcessingProfile,
    StoragePolicy,
)

MB = 1024 * 1024

_IMAGES = ("image/jpeg", "image/png", "image/webp")

ENTITY_STORAGE_POLICIES: Dict[EntityType, StoragePolicy] = {
    EntityType.CATALOG_ITEM: StoragePolicy(
        bucket="catalog-images",
        path_template="catalog_items/{entity_id}/{purpose}/{filename}",
        max_file_size=10 * MB,
        allowed_mime_types=_IMAGES,
        enable_compression=True,
        enable_virus_scan=True,
        retention_days=365,
        entity_table="catalog_items",
        allowed_roles=("admin", "designer"),
    ),
    EntityType.CUSTOMER: StoragePolicy(
        bucket="customer-assets",
        path_template="customers/{entity_id}/{purpose}/{filename}",
        max_file_size=5 * MB,
        allowed_mime_types=_IMAGES,
        enable_compression=True,
        enable_virus_scan=True,
        retention_days=180,
        entity_table="customers",
        allowed_roles=("admin", "salesperson"),
    ),
    EntityType.USER_PROFILE: StoragePolicy(
        bucket="user-profiles",
        path_template="users/{entity_id}/{purpose}/{filename}",
        max_file_size=2 * MB,
        allowed_mime_types=_IMAGES,
        enable_compression=True,
        enable_virus_scan=True,
        retention_days=90,
        entity_table="user_profiles",
    ),
    EntityType.ORGANIZATION: StoragePolicy(
        bucket="organization-assets",
        path_template="organizations/{entity_id}/{purpose}/{filename}",
        max_file_size=5 * MB,
        allowed_mime_types=_IMAGES + ("image/svg+xml",),
        enable_compression=True,
        enable_virus_scan=True,
        retention_days=365,
        entity_table="organizations",
        allowed_roles=("admin", "salesperson"),
    ),
    EntityType.ORDER: StoragePolicy(
        bucket="order-attachments",
        path_template="orders/{entity_id}/{purpose}/{filename}",
        max_file_size=20 * MB,
        allowed_mime_types=_IMAGES + ("application/pdf",),
        enable_compression=True,
        enable_virus_scan=True,
        retention_days=2555,  # 7 years for compliance
        entity_table="orders",
        allowed_roles=("admin", "salesperson"),
    ),
    EntityType.DESIGN_TASK: StoragePolicy(
        bucket="design-assets",
        path_template="designs/{entity_id}/{purpose}/{filename}",
        max_file_size=50 * MB,
        allowed_mime_types=_IMAGES + ("application/pdf", "image/svg+xml"),
        enable_compression=False,  # design files are stored as uploaded
        enable_virus_scan=True,
        retention_days=365,
        entity_table="design_tasks",
        allowed_roles=("admin", "designer", "manufacturer"),
    ),
    EntityType.PRODUCTION_TASK: StoragePolicy(
        bucket="production-assets",
        path_template="production/{entity_id}/{purpose}/{filename}",
        max_file_size=25 * MB,
        allowed_mime_types=_IMAGES,
        enable_compression=True,
        enable_virus_scan=True,
        retention_days=730,
        entity_table="production_tasks",
        allowed_roles=("admin", "designer", "manufacturer"),
    ),
    EntityType.PRODUCT_LIBRARY: StoragePolicy(
        bucket="product-library",
        path_template="products/{entity_id}/{purpose}/{filename}",
        max_file_size=15 * MB,
        allowed_mime_types=_IMAGES,
        enable_compression=True,
        enable_virus_scan=True,
        retention_days=1095,
        entity_table="catalog_items",
        allowed_roles=("admin", "designer", "salesperson"),
    ),
    EntityType.MANUFACTURER: StoragePolicy(
        bucket="manufacturer-assets",
        path_template="manufacturers/{entity_id}/{purpose}/{filename}",
        max_file_size=10 * MB,
        allowed_mime_types=_IMAGES,
        enable_compression=True,
        enable_virus_scan=True,
        retention_days=365,
        entity_table="manufacturers",
        allowed_roles=("admin", "manufacturer"),
    ),
}

PROCESSING_PROFILES: Dict[ProcessingProfile, ProcessingOptions] = {
    ProcessingProfile.THUMBNAIL: ProcessingOptions(
        width=150, height=150, quality=60, format="webp", fit=FitMode.COVER, progressive=True,
    ),
    ProcessingProfile.PROFILE: ProcessingOptions(
        width=400, height=400, quality=75, format="webp", fit=FitMode.COVER, progressive=True,
    ),
    ProcessingProfile.GALLERY: ProcessingOptions(
        width=1200, height=1200, quality=85, format="webp", fit=FitMode.INSIDE, progressive=True,
    ),
    ProcessingProfile.HERO: ProcessingOptions(
        width=1920, height=1080, quality=90, format="webp", fit=FitMode.COVER, progressive=True,
    ),
    ProcessingProfile.PRODUCTION: ProcessingOptions(
        width=2400, height=2400, quality=95, format="jpeg", fit=FitMode.INSIDE,
        progressive=False, strip_metadata=False,
    ),
    ProcessingProfile.ORIGINAL: ProcessingOptions(),
}

BLOCKED_EXTENSIONS: FrozenSet[str] = frozenset({
    ".exe", ".bat", ".sh", ".cmd", ".scr", ".vbs", ".js", ".com", ".msi", ".ps1", ".jar",
})


@dataclass(frozen=True)
class PipelineConfig:
    policies: Dict[EntityType, StoragePolicy] = field(default_factory=lambda: dict(ENTITY_STORAGE_POLICIES))
    profiles: Dict[ProcessingProfile, ProcessingOptions] = field(default_factory=lambda: dict(PROCESSING_PROFILES))
    chunk_size: int = 3
    strict_signature_check: bool = False
    blocked_extensions: FrozenSet[str] = BLOCKED_EXTENSIONS
    item_timeout_seconds: Optional[float] = None

    def policy_for(self, entity_type: EntityType) -> Optional[StoragePolicy]:
        return self.policies.get(EntityType(entity_type))

    def profile_for(self, profile: ProcessingProfile) -> Optional[ProcessingOptions]:
        return self.profiles.get(ProcessingProfile(profile))


def build_pipeline_config(settings) -> PipelineConfig:
    """Builds the pipeline configuration from application settings."""
    chunk_size = max(1, int(settings.UPLOAD_BATCH_CHUNK_SIZE))
    return PipelineConfig(
        chunk_size=chunk_size,
        strict_signature_check=bool(settings.UPLOAD_STRICT_SIGNATURE_CHECK),
        item_timeout_seconds=settings.UPLOAD_ITEM_TIMEOUT_SECONDS,
    )
