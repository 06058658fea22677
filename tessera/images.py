"""Image resizing and compression for Tessera.

Images are re-encoded with Pillow. The output format follows the destination
file extension: JPEG and WebP are written with a quality setting, PNG is
written optimized, and anything else Pillow can write uses Pillow's defaults
for that format. Files Pillow cannot read or write are copied unchanged.

Key functions:
- resize_image: Crop-resize an image to an exact box and encode it.
- compress_image: Re-encode an image at its original size.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)

JPEG_EXTENSIONS = {".jpg", ".jpeg"}
PNG_EXTENSIONS = {".png"}
WEBP_EXTENSIONS = {".webp"}

# Modes a JPEG file can hold without conversion
_JPEG_MODES = {"RGB", "L", "CMYK"}


@dataclass(frozen=True)
class EncodeOptions:
    """Encoder settings per output format.

    Attributes:
        jpeg_quality: JPEG quality, 1-95.
        png_compress_level: zlib level for PNG output, 0-9.
        webp_quality: WebP quality, 0-100.
    """

    jpeg_quality: int = 75
    png_compress_level: int = 9
    webp_quality: int = 80


def save_image(img: Image.Image, dest: Path, options: EncodeOptions) -> None:
    """Encode an image using the format implied by the destination suffix."""
    suffix = dest.suffix.lower()
    if suffix in JPEG_EXTENSIONS:
        if img.mode not in _JPEG_MODES:
            img = img.convert("RGB")
        img.save(dest, format="JPEG", quality=options.jpeg_quality, optimize=True)
    elif suffix in PNG_EXTENSIONS:
        img.save(
            dest,
            format="PNG",
            optimize=True,
            compress_level=options.png_compress_level,
        )
    elif suffix in WEBP_EXTENSIONS:
        img.save(dest, format="WEBP", quality=options.webp_quality)
    else:
        img.save(dest)


def resize_image(
    source: Path,
    dest: Path,
    width: int,
    height: int,
    options: EncodeOptions | None = None,
) -> bool:
    """Resize an image to exactly ``width`` x ``height`` and encode it.

    The image is scaled to cover the box and cropped from the centre, so the
    aspect ratio of the picture is kept and the output has the requested size.

    Args:
        source: Source image path.
        dest: Destination path; its suffix selects the encoder.
        width: Target width in pixels.
        height: Target height in pixels.
        options: Encoder settings.

    Returns:
        True if the image was re-encoded, False if it was copied unchanged
        because Pillow could not process it.
    """
    options = options or EncodeOptions()
    dest.parent.mkdir(parents=True, exist_ok=True)
    try:
        with Image.open(source) as img:
            resized = ImageOps.fit(img, (width, height), Image.Resampling.LANCZOS)
            save_image(resized, dest, options)
        return True
    except (OSError, ValueError) as exc:
        logger.warning("Could not resize %s (%s); copying unchanged", source, exc)
    shutil.copy2(source, dest)
    return False


def compress_image(
    source: Path, dest: Path, options: EncodeOptions | None = None
) -> bool:
    """Re-encode an image at its original size.

    Args:
        source: Source image path.
        dest: Destination path; its suffix selects the encoder.
        options: Encoder settings.

    Returns:
        True if the image was re-encoded, False if it was copied unchanged.
    """
    options = options or EncodeOptions()
    dest.parent.mkdir(parents=True, exist_ok=True)
    try:
        with Image.open(source) as img:
            save_image(img, dest, options)
        return True
    except UnidentifiedImageError:
        logger.warning("%s is not a raster image; copying unchanged", source)
    except (OSError, ValueError) as exc:
        logger.warning("Could not compress %s (%s); copying unchanged", source, exc)
    shutil.copy2(source, dest)
    return False
