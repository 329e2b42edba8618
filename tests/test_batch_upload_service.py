import asyncio

import pytest

from apparel_uploads.application.services.batch_upload_service import BatchUploadService, chunked
from apparel_uploads.application.services.upload_service import UploadService
from apparel_uploads.exceptions import BatchRequestError
from apparel_uploads.infrastructure.imaging.pillow_transformer import PillowTransformer
from apparel_uploads.schemas.uploads.upload import UploadResult
from apparel_uploads.uploads.policies import MB, PipelineConfig
from apparel_uploads.uploads.types import UploadContext, UploadedFile

from fakes import FakeAssetRepo, FakeAudit, FakeDirectory, FakeObjectStore, make_jpeg

CONTEXT = UploadContext(user_id="user-1", role="admin")


def upload_entry(entity_id="item-1"):
    return {"entity_type": "catalog_item", "entity_id": entity_id, "image_purpose": "gallery"}


def real_uploader(store=None, repo=None) -> UploadService:
    return UploadService(
        config=PipelineConfig(),
        transformer=PillowTransformer(),
        object_store=store or FakeObjectStore(),
        asset_repo=repo or FakeAssetRepo(),
        entity_directory=FakeDirectory("item-1"),
        audit_logger=FakeAudit(),
    )


class RecordingUploader:
    """Tracks how many uploads run at once."""

    def __init__(self, delay: float = 0.01, fail_index=None, hang_index=None):
        self.delay = delay
        self.fail_index = fail_index
        self.hang_index = hang_index
        self.in_flight = 0
        self.max_in_flight = 0
        self.calls = []

    async def upload_single(self, file, request, context, skip_entity_validation=False, custom_metadata=None, display_order=None):
        self.calls.append(custom_metadata)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if display_order == self.hang_index:
                await asyncio.sleep(10)
            await asyncio.sleep(self.delay)
            if display_order == self.fail_index:
                raise RuntimeError("worker died")
            return UploadResult(success=True, image_asset_id=f"asset-{display_order}")
        finally:
            self.in_flight -= 1


def test_chunked():
    assert [list(c) for c in chunked([1, 2, 3, 4, 5, 6, 7], 3)] == [[1, 2, 3], [4, 5, 6], [7]]
    with pytest.raises(ValueError):
        list(chunked([1], 0))


@pytest.mark.asyncio
async def test_partial_failure_keeps_every_item_at_its_index():
    svc = BatchUploadService(uploader=real_uploader(), audit_logger=FakeAudit())
    small = UploadedFile("ok.jpg", "image/jpeg", make_jpeg((300, 300)))
    big = UploadedFile("big.jpg", "image/jpeg", b"\xff\xd8\xff" + bytes(11 * MB))
    files = [small, big, small, big, small]

    result = await svc.upload_batch(files, {"uploads": [upload_entry() for _ in files]}, CONTEXT)

    assert not result.success
    assert [r.index for r in result.results] == [0, 1, 2, 3, 4]
    assert [r.success for r in result.results] == [True, False, True, False, True]
    assert {r.error_code for r in result.results if not r.success} == {"FILE_TOO_LARGE"}
    assert result.summary.total == 5
    assert result.summary.successful == 3
    assert result.summary.failed == 2
    assert result.summary.successful + result.summary.failed == result.summary.total
    assert result.summary.total_size == sum(f.size for f in files)
    assert result.summary.total_size == 3 * small.size + 2 * big.size
    assert len(result.errors) == 2
    assert result.errors[0].startswith("File 2:")


@pytest.mark.asyncio
async def test_fifty_concurrent_uploads_get_distinct_paths():
    store = FakeObjectStore()
    svc = BatchUploadService(uploader=real_uploader(store=store), audit_logger=FakeAudit(), chunk_size=10)
    files = [UploadedFile(f"p{i}.jpg", "image/jpeg", make_jpeg((64, 64))) for i in range(50)]

    result = await svc.upload_batch(files, {"uploads": [upload_entry() for _ in files]}, CONTEXT)

    assert result.success
    paths = [r.storage_path for r in result.results]
    assert len(set(paths)) == 50
    assert len(store.objects) == 50


@pytest.mark.asyncio
async def test_chunk_size_bounds_concurrency():
    uploader = RecordingUploader()
    svc = BatchUploadService(uploader=uploader, audit_logger=FakeAudit(), chunk_size=3)
    files = [UploadedFile(f"{i}.jpg", "image/jpeg", b"x") for i in range(8)]

    await svc.upload_batch(files, {"uploads": [upload_entry() for _ in files]}, CONTEXT)

    assert uploader.max_in_flight == 3


@pytest.mark.asyncio
async def test_batch_id_is_propagated_to_items():
    uploader = RecordingUploader(delay=0)
    audit = FakeAudit()
    svc = BatchUploadService(uploader=uploader, audit_logger=audit)
    files = [UploadedFile("a.jpg", "image/jpeg", b"x"), UploadedFile("b.jpg", "image/jpeg", b"x")]

    result = await svc.upload_batch(
        files, {"uploads": [upload_entry(), upload_entry()], "batch_metadata": {"batch_id": "spring-drop"}}, CONTEXT,
    )

    assert result.batch_id == "spring-drop"
    assert sorted(c["batch_index"] for c in uploader.calls) == [0, 1]
    assert {c["batch_id"] for c in uploader.calls} == {"spring-drop"}
    assert audit.entries[-1]["action"] == "image.batch_uploaded"


@pytest.mark.asyncio
async def test_generated_batch_id_when_none_given():
    svc = BatchUploadService(uploader=RecordingUploader(delay=0), audit_logger=FakeAudit())
    result = await svc.upload_batch([], {"uploads": []}, CONTEXT)
    assert result.batch_id.startswith("batch_")
    assert result.success
    assert result.summary.total == 0


@pytest.mark.asyncio
async def test_crashing_item_becomes_unexpected_error():
    svc = BatchUploadService(uploader=RecordingUploader(delay=0, fail_index=1), audit_logger=FakeAudit())
    files = [UploadedFile(f"{i}.jpg", "image/jpeg", b"x") for i in range(3)]

    result = await svc.upload_batch(files, {"uploads": [upload_entry() for _ in files]}, CONTEXT)

    assert [r.success for r in result.results] == [True, False, True]
    assert result.results[1].error_code == "UNEXPECTED_ERROR"
    assert "worker died" in result.results[1].error


@pytest.mark.asyncio
async def test_item_timeout():
    svc = BatchUploadService(
        uploader=RecordingUploader(delay=0, hang_index=0), audit_logger=FakeAudit(), item_timeout_seconds=0.05,
    )
    files = [UploadedFile("a.jpg", "image/jpeg", b"x"), UploadedFile("b.jpg", "image/jpeg", b"x")]

    result = await svc.upload_batch(files, {"uploads": [upload_entry(), upload_entry()]}, CONTEXT)

    assert result.results[0].error_code == "UNEXPECTED_ERROR"
    assert "timed out" in result.results[0].error
    assert result.results[1].success


@pytest.mark.asyncio
async def test_mismatched_lengths_raise():
    svc = BatchUploadService(uploader=RecordingUploader(), audit_logger=FakeAudit())
    with pytest.raises(BatchRequestError) as exc:
        await svc.upload_batch([UploadedFile("a.jpg", "image/jpeg", b"x")], {"uploads": []}, CONTEXT)
    assert exc.value.status_code == 400
    assert exc.value.details == {"files": 1, "uploads": 0}


@pytest.mark.asyncio
async def test_unparsable_request_raises():
    svc = BatchUploadService(uploader=RecordingUploader(), audit_logger=FakeAudit())
    with pytest.raises(BatchRequestError):
        await svc.upload_batch([], {"uploads": "not-a-list"}, CONTEXT)


@pytest.mark.asyncio
async def test_too_many_files_raise():
    svc = BatchUploadService(uploader=RecordingUploader(), audit_logger=FakeAudit(), max_files=2)
    files = [UploadedFile(f"{i}.jpg", "image/jpeg", b"x") for i in range(3)]
    with pytest.raises(BatchRequestError):
        await svc.upload_batch(files, {"uploads": [upload_entry() for _ in files]}, CONTEXT)
