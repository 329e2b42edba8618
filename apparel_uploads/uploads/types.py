from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, FrozenSet


class EntityType(str, Enum):
    CATALOG_ITEM = "catalog_item"
    CUSTOMER = "customer"
    USER_PROFILE = "user_profile"
    ORGANIZATION = "organization"
    ORDER = "order"
    DESIGN_TASK = "design_task"
    PRODUCTION_TASK = "production_task"
    PRODUCT_LIBRARY = "product_library"
    MANUFACTURER = "manufacturer"


class ImagePurpose(str, Enum):
    PROFILE = "profile"
    GALLERY = "gallery"
    PRODUCTION = "production"
    DESIGN = "design"
    LOGO = "logo"
    THUMBNAIL = "thumbnail"
    HERO = "hero"
    ATTACHMENT = "attachment"
    MOCKUP = "mockup"
    PRODUCT_PHOTO = "product_photo"
    DESIGN_PROOF = "design_proof"
    SIZE_CHART = "size_chart"
    COLOR_REFERENCE = "color_reference"
    TECHNICAL_DRAWING = "technical_drawing"


class ProcessingProfile(str, Enum):
    THUMBNAIL = "thumbnail"
    PROFILE = "profile"
    GALLERY = "gallery"
    HERO = "hero"
    PRODUCTION = "production"
    ORIGINAL = "original"


class AccessLevel(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    RESTRICTED = "restricted"


class FitMode(str, Enum):
    COVER = "cover"
    CONTAIN = "contain"
    FILL = "fill"
    INSIDE = "inside"
    OUTSIDE = "outside"


class ProcessingStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    FAILED = "failed"


@dataclass(frozen=True)
class StoragePolicy:
    bucket: str
    path_template: str
    max_file_size: int
    allowed_mime_types: Tuple[str, ...]
    enable_compression: bool
    enable_virus_scan: bool
    retention_days: Optional[int]
    entity_table: str
    allowed_roles: Tuple[str, ...] = ("admin",)


@dataclass(frozen=True)
class ProcessingOptions:
    width: Optional[int] = None
    height: Optional[int] = None
    quality: Optional[int] = None
    format: Optional[str] = None
    fit: FitMode = FitMode.INSIDE
    background: str = "white"
    progressive: bool = False
    strip_metadata: bool = True

    @property
    def is_passthrough(self) -> bool:
        return self.width is None and self.height is None and self.format is None


@dataclass(frozen=True)
class Dimensions:
    width: int
    height: int

    def as_dict(self) -> dict:
        return {"width": self.width, "height": self.height}


@dataclass
class UploadedFile:
    """Raw bytes of an incoming upload plus what the client declared about them."""
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class StoragePath:
    bucket: str
    path: str

    @property
    def full_path(self) -> str:
        return f"{self.bucket}/{self.path}"


@dataclass
class FileValidationResult:
    valid: bool = True
    errors: list = field(default_factory=list)
    warnings: list = field(default_factory=list)
    error_codes: list = field(default_factory=list)

    def fail(self, code: str, message: str) -> None:
        self.valid = False
        self.errors.append(message)
        self.error_codes.append(code)

    @property
    def error_code(self) -> Optional[str]:
        return self.error_codes[0] if self.error_codes else None


RASTER_MIME_TYPES: FrozenSet[str] = frozenset({
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/gif",
})


@dataclass
class UploadContext:
    """Who is uploading, and from where. Fills the audit sub-record."""
    user_id: str
    role: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    client_type: Optional[str] = None
    trace_id: Optional[str] = None
    workflow_id: Optional[str] = None
    api_version: Optional[str] = None


@dataclass
class TransformResult:
    data: bytes
    content_type: str
    dimensions: Optional[Dimensions] = None
    original_dimensions: Optional[Dimensions] = None
    format_converted: bool = False
    fallback_reason: Optional[str] = None