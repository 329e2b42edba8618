import io
import os

from PIL import Image

from apparel_uploads.infrastructure.imaging.pillow_transformer import PillowTransformer, read_dimensions, resize_for_fit
from apparel_uploads.uploads.policies import PROCESSING_PROFILES
from apparel_uploads.uploads.types import FitMode, ProcessingOptions, ProcessingProfile


def make_image(size=(2000, 2000), fmt="JPEG", mode="RGB", color=(200, 30, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new(mode, size, color).save(buf, format=fmt)
    return buf.getvalue()


def test_gallery_profile_bounds_and_converts_to_webp():
    out = PillowTransformer().transform(make_image(), PROCESSING_PROFILES[ProcessingProfile.GALLERY], "image/jpeg")

    assert out.content_type == "image/webp"
    assert out.format_converted
    assert out.fallback_reason is None
    assert out.dimensions.width <= 1200 and out.dimensions.height <= 1200
    assert (out.original_dimensions.width, out.original_dimensions.height) == (2000, 2000)
    assert out.data[:4] == b"RIFF"


def test_thumbnail_covers_exact_box():
    out = PillowTransformer().transform(
        make_image((800, 400)), PROCESSING_PROFILES[ProcessingProfile.THUMBNAIL], "image/jpeg",
    )
    assert (out.dimensions.width, out.dimensions.height) == (150, 150)


def test_small_images_are_not_enlarged():
    out = PillowTransformer().transform(
        make_image((300, 200)), PROCESSING_PROFILES[ProcessingProfile.GALLERY], "image/jpeg",
    )
    assert (out.dimensions.width, out.dimensions.height) == (300, 200)


def test_transparent_png_to_jpeg_is_flattened():
    png = make_image((3000, 100), fmt="PNG", mode="RGBA", color=(0, 0, 0, 0))
    out = PillowTransformer().transform(png, PROCESSING_PROFILES[ProcessingProfile.PRODUCTION], "image/png")

    assert out.content_type == "image/jpeg"
    with Image.open(io.BytesIO(out.data)) as img:
        assert img.mode == "RGB"


def test_original_profile_passes_bytes_through():
    data = make_image((640, 480), fmt="PNG")
    out = PillowTransformer().transform(data, PROCESSING_PROFILES[ProcessingProfile.ORIGINAL], "image/png")

    assert out.data == data
    assert out.content_type == "image/png"
    assert not out.format_converted
    assert out.dimensions.width == 640


def test_corrupt_input_falls_back_to_original_bytes():
    data = b"\xff\xd8\xff" + b"not really a jpeg" * 20
    out = PillowTransformer().transform(data, PROCESSING_PROFILES[ProcessingProfile.GALLERY], "image/jpeg")

    assert out.data == data
    assert out.content_type == "image/jpeg"
    assert out.fallback_reason


def test_non_raster_types_are_stored_as_uploaded():
    pdf = b"%PDF-1.7\n" + bytes(200)
    out = PillowTransformer().transform(pdf, PROCESSING_PROFILES[ProcessingProfile.GALLERY], "application/pdf")
    assert out.data == pdf
    assert out.content_type == "application/pdf"
    assert out.fallback_reason is None


def test_resize_modes():
    img = Image.new("RGB", (1000, 500))

    assert resize_for_fit(img, ProcessingOptions(width=500, height=500, fit=FitMode.INSIDE)).size == (500, 250)
    assert resize_for_fit(img, ProcessingOptions(width=200, height=200, fit=FitMode.OUTSIDE)).size == (400, 200)
    assert resize_for_fit(img, ProcessingOptions(width=300, height=300, fit=FitMode.FILL)).size == (300, 300)
    assert resize_for_fit(img, ProcessingOptions(width=400, height=400, fit=FitMode.CONTAIN)).size == (400, 400)
    assert resize_for_fit(img, ProcessingOptions(width=250)).size == (250, 125)


def test_read_dimensions_handles_garbage():
    assert read_dimensions(b"garbage") is None


def make_noisy_jpeg(size=(1000, 1000), quality=30) -> bytes:
    buf = io.BytesIO()
    Image.frombytes("RGB", size, os.urandom(size[0] * size[1] * 3)).save(buf, format="JPEG", quality=quality)
    return buf.getvalue()


def test_reencoding_never_grows_an_unresized_image():
    data = make_noisy_jpeg()
    out = PillowTransformer().transform(data, PROCESSING_PROFILES[ProcessingProfile.GALLERY], "image/jpeg")

    assert len(out.data) <= len(data)
    assert out.data == data
    assert out.content_type == "image/jpeg"
    assert not out.format_converted
    assert out.fallback_reason is None
    assert (out.dimensions.width, out.dimensions.height) == (1000, 1000)


def test_resized_noisy_image_is_still_converted():
    out = PillowTransformer().transform(
        make_noisy_jpeg((1600, 1600)), PROCESSING_PROFILES[ProcessingProfile.THUMBNAIL], "image/jpeg",
    )
    assert out.content_type == "image/webp"
    assert (out.dimensions.width, out.dimensions.height) == (150, 150)
