# backend/utils/images.py
"""Conversion of uploaded photos to compressed WebP.

Every upload, whatever its source format, is decoded into a Pillow image and
re-encoded as WebP at the original resolution. Transparency survives the trip.
"""
import enum
import io
from dataclasses import dataclass
from typing import Optional

from PIL import Image, UnidentifiedImageError

from config import settings
from utils.errors import UnsupportedImage

OUTPUT_FORMAT = "WEBP"
OUTPUT_CONTENT_TYPE = "image/webp"
OUTPUT_EXTENSION = "webp"

_DECODE_ERRORS = (UnidentifiedImageError, OSError, ValueError, SyntaxError, Image.DecompressionBombError)


class SourceFormat(enum.Enum):
    JPEG = "JPEG"
    PNG = "PNG"
    GIF = "GIF"
    WEBP = "WEBP"
    BMP = "BMP"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_content_type(cls, content_type: Optional[str]) -> "SourceFormat":
        if not content_type:
            return cls.UNKNOWN
        mime = content_type.split(";", 1)[0].strip().lower()
        return _CONTENT_TYPES.get(mime, cls.UNKNOWN)

    def decode(self, data: bytes) -> Image.Image:
        """Decode ``data`` into a fully loaded Pillow image.

        A declared format that does not match the bytes falls back to generic
        detection, the same way browsers treat a wrong Content-Type.
        """
        if self is SourceFormat.UNKNOWN:
            return _open(data, None)
        try:
            return _open(data, [self.value])
        except _DECODE_ERRORS:
            return _open(data, None)


_CONTENT_TYPES = {
    "image/jpeg": SourceFormat.JPEG,
    "image/jpg": SourceFormat.JPEG,
    "image/pjpeg": SourceFormat.JPEG,
    "image/png": SourceFormat.PNG,
    "image/gif": SourceFormat.GIF,
    "image/webp": SourceFormat.WEBP,
    "image/bmp": SourceFormat.BMP,
    "image/x-bmp": SourceFormat.BMP,
    "image/x-ms-bmp": SourceFormat.BMP,
}


def _open(data: bytes, formats) -> Image.Image:
    image = Image.open(io.BytesIO(data), formats=formats)
    image.load()
    return image


@dataclass(frozen=True)
class NormalizedImage:
    data: bytes
    width: int
    height: int
    content_type: str = OUTPUT_CONTENT_TYPE
    extension: str = OUTPUT_EXTENSION


def has_alpha(image: Image.Image) -> bool:
    if image.mode in ("RGBA", "LA", "PA", "RGBa", "La"):
        return True
    return "transparency" in image.info


def to_pixel_buffer(image: Image.Image) -> Image.Image:
    """Flatten palette/greyscale/CMYK modes into RGB or RGBA."""
    target = "RGBA" if has_alpha(image) else "RGB"
    if image.mode == target:
        return image
    return image.convert(target)


def normalize_image(data: bytes, content_type: Optional[str] = None, quality: Optional[int] = None) -> NormalizedImage:
    """Re-encode ``data`` as WebP keeping its pixel dimensions.

    Raises UnsupportedImage when the bytes cannot be decoded or encoded.
    """
    if not data:
        raise UnsupportedImage("Empty image upload")

    source = SourceFormat.from_content_type(content_type)
    quality = settings.IMAGE_QUALITY if quality is None else quality

    try:
        decoded = source.decode(data)
    except _DECODE_ERRORS as e:
        raise UnsupportedImage(f"Could not decode image: {e}") from e

    pixels = to_pixel_buffer(decoded)
    width, height = pixels.size
    buffer = io.BytesIO()
    try:
        pixels.save(buffer, format=OUTPUT_FORMAT, quality=quality)
    except (OSError, ValueError) as e:
        # WebP caps dimensions at 16383px
        raise UnsupportedImage(f"Could not encode image: {e}") from e
    finally:
        decoded.close()

    return NormalizedImage(data=buffer.getvalue(), width=width, height=height)
