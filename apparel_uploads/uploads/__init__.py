# Upload pipeline building blocks: policies, validation, naming, metadata
from .types import (
    AccessLevel,
    Dimensions,
    EntityType,
    FitMode,
    ImagePurpose,
    ProcessingProfile,
    ProcessingStatus,
    StoragePath,
    StoragePolicy,
    TransformResult,
    UploadContext,
    UploadedFile,
)
from .policies import PipelineConfig, build_pipeline_config, ENTITY_STORAGE_POLICIES, PROCESSING_PROFILES

__all__ = [
    "AccessLevel",
    "Dimensions",
    "EntityType",
    "FitMode",
    "ImagePurpose",
    "ProcessingProfile",
    "ProcessingStatus",
    "StoragePath",
    "StoragePolicy",
    "TransformResult",
    "UploadContext",
    "UploadedFile",
    "PipelineConfig",
    "build_pipeline_config",
    "ENTITY_STORAGE_POLICIES",
    "PROCESSING_PROFILES",
]
