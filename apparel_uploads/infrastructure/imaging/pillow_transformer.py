import io
import logging
from typing import Optional, Tuple

from PIL import Image, ImageOps

from ...application.ports.binary_transformer import BinaryTransformer
from ...uploads.types import (
    Dimensions,
    FitMode,
    ProcessingOptions,
    RASTER_MIME_TYPES,
    TransformResult,
)

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "image/jpeg"

_OUTPUT_FORMATS = {
    "jpeg": ("JPEG", "image/jpeg"),
    "jpg": ("JPEG", "image/jpeg"),
    "png": ("PNG", "image/png"),
    "webp": ("WEBP", "image/webp"),
}


def read_dimensions(data: bytes) -> Optional[Dimensions]:
    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
            return Dimensions(width=width, height=height)
    except Exception as e:
        logger.warning(f"Could not get image dimensions: {e}")
        return None


def _scaled(size: Tuple[int, int], scale: float) -> Tuple[int, int]:
    w, h = size
    return max(1, round(w * scale)), max(1, round(h * scale))


def resize_for_fit(img: Image.Image, options: ProcessingOptions) -> Image.Image:
    """Resizes under the profile's fit mode. Never enlarges past the source size."""
    w, h = img.size
    tw, th = options.width, options.height
    if tw is None and th is None:
        return img

    if tw is None or th is None:
        scale = (tw / w) if tw is not None else (th / h)
        if scale >= 1:
            return img
        return img.resize(_scaled((w, h), scale), Image.Resampling.LANCZOS)

    fit = FitMode(options.fit)
    if fit == FitMode.INSIDE:
        scale = min(tw / w, th / h)
        return img if scale >= 1 else img.resize(_scaled((w, h), scale), Image.Resampling.LANCZOS)

    if fit == FitMode.OUTSIDE:
        scale = max(tw / w, th / h)
        return img if scale >= 1 else img.resize(_scaled((w, h), scale), Image.Resampling.LANCZOS)

    if fit == FitMode.FILL:
        target = (min(tw, w), min(th, h))
        return img if target == (w, h) else img.resize(target, Image.Resampling.LANCZOS)

    if fit == FitMode.CONTAIN:
        if min(tw / w, th / h) >= 1:
            return img
        return ImageOps.pad(img, (tw, th), method=Image.Resampling.LANCZOS, color=options.background)

    # cover: fill the box and crop the overflow, centered
    if max(tw / w, th / h) <= 1:
        return ImageOps.fit(img, (tw, th), method=Image.Resampling.LANCZOS)
    cw, ch = min(w, tw), min(h, th)
    left, top = (w - cw) // 2, (h - ch) // 2
    return img.crop((left, top, left + cw, top + ch))


def _prepare_mode(img: Image.Image, pil_format: str, background: str) -> Image.Image:
    has_alpha = img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info)
    if pil_format == "JPEG":
        if has_alpha:
            rgba = img.convert("RGBA")
            flat = Image.new("RGB", rgba.size, background)
            flat.paste(rgba, mask=rgba.split()[-1])
            return flat
        return img if img.mode in ("RGB", "L") else img.convert("RGB")
    if has_alpha:
        return img if img.mode == "RGBA" else img.convert("RGBA")
    return img if img.mode in ("RGB", "L") else img.convert("RGB")


class PillowTransformer(BinaryTransformer):
    """Applies processing profiles with Pillow.

    Failures never propagate: the original bytes come back tagged with the
    source content type and ``fallback_reason`` set.
    """

    def transform(self, data: bytes, options: ProcessingOptions, source_content_type: Optional[str] = None) -> TransformResult:
        fallback_type = source_content_type or DEFAULT_CONTENT_TYPE

        if source_content_type and source_content_type not in RASTER_MIME_TYPES:
            # PDFs and vector images are stored as uploaded
            return TransformResult(data=data, content_type=source_content_type)

        original_dimensions = read_dimensions(data)
        if options.is_passthrough:
            return TransformResult(
                data=data,
                content_type=fallback_type,
                dimensions=original_dimensions,
                original_dimensions=original_dimensions,
            )

        try:
            pil_format, content_type = _OUTPUT_FORMATS[(options.format or "jpeg").lower()]
            with Image.open(io.BytesIO(data)) as src:
                img = ImageOps.exif_transpose(src)
                exif = img.info.get("exif")
                img = _prepare_mode(img, pil_format, options.background)
                source_size = img.size
                img = resize_for_fit(img, options)
                resized = img.size != source_size

                save_kwargs = {}
                if pil_format == "JPEG":
                    save_kwargs.update(quality=options.quality or 85, progressive=options.progressive, optimize=True)
                elif pil_format == "WEBP":
                    save_kwargs.update(quality=options.quality or 80, method=4)
                else:
                    save_kwargs.update(optimize=True)
                if not options.strip_metadata and exif:
                    save_kwargs["exif"] = exif

                output = io.BytesIO()
                img.save(output, format=pil_format, **save_kwargs)
                processed = output.getvalue()
        except Exception as e:
            logger.warning(f"Image processing failed, storing original bytes: {e}")
            return TransformResult(
                data=data,
                content_type=fallback_type,
                dimensions=original_dimensions,
                original_dimensions=original_dimensions,
                fallback_reason=str(e) or e.__class__.__name__,
            )

        if not resized and len(processed) >= len(data):
            # re-encoding alone must not grow the stored object
            return TransformResult(
                data=data,
                content_type=fallback_type,
                dimensions=original_dimensions,
                original_dimensions=original_dimensions,
            )

        return TransformResult(
            data=processed,
            content_type=content_type,
            dimensions=read_dimensions(processed),
            original_dimensions=original_dimensions,
            format_converted=content_type != source_content_type,
        )
