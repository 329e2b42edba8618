import hashlib
import re
from datetime import datetime, timezone

from apparel_uploads.schemas.uploads.upload import UploadRequest
from apparel_uploads.uploads.metadata import (
    allowed_roles_for,
    assemble_metadata,
    calculate_checksum,
    create_base_metadata,
    merge_metadata,
)
from apparel_uploads.uploads.naming import (
    generate_batch_id,
    generate_session_id,
    generate_storage_path,
    generate_unique_filename,
    get_content_type,
    get_file_extension,
    parse_storage_path,
    sanitize_filename,
)
from apparel_uploads.uploads.policies import ENTITY_STORAGE_POLICIES, PipelineConfig
from apparel_uploads.uploads.types import (
    AccessLevel,
    Dimensions,
    EntityType,
    ImagePurpose,
    ProcessingProfile,
    TransformResult,
    UploadContext,
    UploadedFile,
)


def test_unique_filenames_do_not_collide():
    names = {generate_unique_filename("photo.jpg", ProcessingProfile.GALLERY) for _ in range(50)}
    assert len(names) == 50


def test_unique_filename_shape():
    now = datetime(2024, 3, 9, tzinfo=timezone.utc)

    gallery = generate_unique_filename("Photo.JPG", ProcessingProfile.GALLERY, now=now)
    original = generate_unique_filename("scan.pdf", ProcessingProfile.ORIGINAL, now=now)
    converted = generate_unique_filename("Photo.JPG", ProcessingProfile.THUMBNAIL, extension=".webp", now=now)

    assert re.fullmatch(r"2024-03-09_[0-9a-f]{16}_gallery\.jpg", gallery)
    assert re.fullmatch(r"2024-03-09_[0-9a-f]{16}\.pdf", original)
    assert converted.endswith("_thumbnail.webp")


def test_storage_path_follows_policy_template():
    path = generate_storage_path(
        EntityType.CATALOG_ITEM, "item-42", ImagePurpose.GALLERY, "2024-03-09_abc.webp", PipelineConfig(),
    )

    assert path.bucket == "catalog-images"
    assert path.path == "catalog_items/item-42/gallery/2024-03-09_abc.webp"
    assert parse_storage_path(path.full_path) == {
        "bucket": "catalog-images",
        "collection": "catalog_items",
        "entity_id": "item-42",
        "purpose": "gallery",
        "filename": "2024-03-09_abc.webp",
    }


def test_parse_storage_path_rejects_short_paths():
    assert parse_storage_path("bucket/file.jpg") == {}


def test_filename_helpers():
    assert sanitize_filename("My File (1).PNG") == "my_file_1_.png"
    assert get_file_extension("a.b.JPEG") == "jpeg"
    assert get_content_type("x.webp") == "image/webp"
    assert get_content_type("x.unknown") == "application/octet-stream"


def test_session_and_batch_ids():
    assert re.fullmatch(r"session_\d+_[0-9a-f]{8}", generate_session_id())
    assert re.fullmatch(r"batch_\d+_[0-9a-f]{12}", generate_batch_id())
    assert generate_batch_id() != generate_batch_id()


def test_allowed_roles_by_access_level():
    policy = ENTITY_STORAGE_POLICIES[EntityType.CUSTOMER]
    assert allowed_roles_for(policy, AccessLevel.PUBLIC) is None
    assert allowed_roles_for(policy, AccessLevel.RESTRICTED) == ["admin"]
    assert allowed_roles_for(policy, AccessLevel.PRIVATE) == ["admin", "salesperson"]


def test_merge_metadata_merges_custom_bags():
    base = create_base_metadata("a.jpg", 10, "image/jpeg", "u1")
    base = merge_metadata(base, {"custom": {"a": 1}})

    merged = merge_metadata(base, {"custom": {"b": 2}})

    assert merged.custom == {"a": 1, "b": 2}
    assert merged.original_filename == "a.jpg"


def test_assemble_metadata_fills_every_section():
    data = b"\xff\xd8\xff" + bytes(997)
    file = UploadedFile(filename="shirt.jpg", content_type="image/jpeg", data=data)
    request = UploadRequest(
        entity_type=EntityType.CATALOG_ITEM,
        entity_id="item-1",
        image_purpose=ImagePurpose.GALLERY,
        alt_text="Front",
        custom_metadata={"season": "fall"},
    )
    context = UploadContext(user_id="u1", ip_address="10.0.0.1", client_type="desktop", trace_id="t-1")
    transform = TransformResult(
        data=bytes(500),
        content_type="image/webp",
        dimensions=Dimensions(1200, 800),
        original_dimensions=Dimensions(2400, 1600),
        format_converted=True,
    )
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    meta = assemble_metadata(
        file, request, context, ENTITY_STORAGE_POLICIES[EntityType.CATALOG_ITEM], transform,
        processing_time_ms=12, virus_scan_result="pending", display_order=2,
        custom={"batch_id": "b1"}, now=now,
    )

    assert meta.checksum == hashlib.sha256(data).hexdigest() == calculate_checksum(data)
    assert meta.uploaded_at == now.isoformat()
    assert meta.image_processing.compression_ratio == 0.5
    assert meta.image_processing.processed_dimensions.width == 1200
    assert meta.entity_relation.display_order == 2
    assert meta.entity_relation.alt_text == "Front"
    assert meta.security.virus_scan_result == "pending"
    assert meta.security.allowed_roles == ["admin", "designer"]
    assert meta.security.expires_at.startswith("2024-12-31")
    assert meta.audit.client_type is None
    assert meta.audit.trace_id == "t-1"
    assert meta.custom == {"season": "fall", "batch_id": "b1"}
