"""
Image preprocessing for recognition.

Normalizes a captured photo before it is sent to the vision service:
EXIF orientation applied, converted to RGB, longest edge capped, and
JPEG-encoded with quality stepped down until the payload fits.
"""

import base64
import io
from dataclasses import dataclass

from PIL import Image, ImageOps, UnidentifiedImageError

from scanbinder.models.failure import ImageProcessingError

# Lowest JPEG quality tried before giving up on the size bound
MIN_JPEG_QUALITY = 40
QUALITY_STEP = 10


@dataclass(frozen=True)
class PreparedImage:
    """An encoded image ready for submission."""

    content: bytes
    width: int
    height: int
    quality: int
    media_type: str = "image/jpeg"

    def base64(self) -> str:
        """Base64 text as expected by JSON image APIs."""
        return base64.b64encode(self.content).decode("ascii")


def _load(data: bytes) -> Image.Image:
    """Decode and fully load image bytes, or raise ImageProcessingError."""
    if not data:
        raise ImageProcessingError("Image data is empty")
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except Image.DecompressionBombError as e:
        raise ImageProcessingError(f"Image dimensions too large: {e}") from e
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise ImageProcessingError(f"Unreadable image: {e}") from e
    return image


def _encode_jpeg(image: Image.Image, quality: int) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality, optimize=True)
    return buffer.getvalue()


def preprocess_image(
    data: bytes,
    *,
    max_dimension: int = 1024,
    quality: int = 80,
    max_bytes: int = 4 * 1024 * 1024,
) -> PreparedImage:
    """
    Prepare raw image bytes for the recognition service.

    Args:
        data: Raw image file bytes (JPEG, PNG, ...)
        max_dimension: Cap on the longest edge, in pixels
        quality: Starting JPEG quality (1-95)
        max_bytes: Upper bound on the encoded size

    Returns:
        PreparedImage with JPEG content within both bounds

    Raises:
        ImageProcessingError: If the image cannot be decoded, or cannot be
            compressed under max_bytes
    """
    if max_dimension <= 0:
        raise ValueError(f"max_dimension must be positive, got {max_dimension}")

    image = _load(data)

    # Phone photos often carry rotation in EXIF rather than in pixels
    image = ImageOps.exif_transpose(image)
    if image.mode != "RGB":
        image = image.convert("RGB")

    if max(image.size) > max_dimension:
        image.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)

    current = quality
    while True:
        content = _encode_jpeg(image, current)
        if len(content) <= max_bytes:
            return PreparedImage(
                content=content,
                width=image.width,
                height=image.height,
                quality=current,
            )
        if current - QUALITY_STEP < MIN_JPEG_QUALITY:
            break
        current -= QUALITY_STEP

    raise ImageProcessingError(
        f"Encoded image is {len(content)} bytes at quality {current}; limit is {max_bytes}"
    )
