"""
Image Property Analyzer

Derives coarse scalar signals from the uploaded file: byte size and the
size classes built on it, decoded dimensions, and filename tokens. These
drive the size heuristics of segmentation and the fallback detection.
"""

import io
import re
from dataclasses import dataclass
from pathlib import PurePath
from typing import FrozenSet, Optional

from PIL import Image, UnidentifiedImageError

from autorig.core.config import HeuristicSettings, settings
from autorig.core.exceptions import InvalidImageError, UploadError
from autorig.core.logger import get_logger

logger = get_logger(__name__)

_TOKEN_RE = re.compile(r"[a-z0-9]+")


@dataclass(frozen=True)
class ImageProperties:
    """File-derived signals for one upload."""
    byte_size: int
    is_large: bool
    is_small: bool
    is_detailed: bool
    name_hints: FrozenSet[str] = frozenset()
    width: Optional[int] = None
    height: Optional[int] = None
    image_format: Optional[str] = None
    filename: Optional[str] = None

    def __post_init__(self):
        if self.byte_size <= 0:
            raise ValueError("byte_size must be > 0")

    @property
    def aspect_ratio(self) -> Optional[float]:
        if self.width and self.height:
            return self.width / self.height
        return None


def name_tokens(filename: Optional[str]) -> FrozenSet[str]:
    """Lowercased alphanumeric tokens of the file stem."""
    if not filename:
        return frozenset()
    stem = PurePath(filename).stem.lower()
    return frozenset(_TOKEN_RE.findall(stem))


def classify_size(byte_size: int, thresholds: HeuristicSettings) -> dict:
    """Size-class flags for a byte size."""
    return {
        "is_small": byte_size < thresholds.small_image_bytes,
        "is_large": byte_size > thresholds.large_image_bytes,
        "is_detailed": byte_size > thresholds.detailed_image_bytes,
    }


def properties_from_size(
    byte_size: int,
    filename: Optional[str] = None,
    thresholds: Optional[HeuristicSettings] = None,
) -> ImageProperties:
    """Build ImageProperties from a byte size alone (no decoding)."""
    thresholds = thresholds or settings.heuristics
    return ImageProperties(
        byte_size=byte_size,
        name_hints=name_tokens(filename),
        filename=filename,
        **classify_size(byte_size, thresholds),
    )


def analyze_image(
    image_bytes: bytes,
    filename: Optional[str] = None,
    thresholds: Optional[HeuristicSettings] = None,
    allowed_formats: Optional[FrozenSet[str]] = None,
) -> ImageProperties:
    """
    Compute ImageProperties for an uploaded file.

    Args:
        image_bytes: Raw upload contents
        filename: Original filename (for name hints)
        thresholds: Size cutoffs (default from settings)
        allowed_formats: Accepted lowercase format names (default from settings)

    Raises:
        UploadError: empty upload
        InvalidImageError: undecodable or unsupported image
    """
    if not image_bytes:
        raise UploadError("Uploaded file is empty")

    thresholds = thresholds or settings.heuristics
    allowed_formats = allowed_formats or settings.image.allowed_formats_set

    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            width, height = img.size
            image_format = (img.format or "").lower()
    except (UnidentifiedImageError, OSError) as e:
        raise InvalidImageError(details=str(e))

    if image_format not in allowed_formats:
        raise InvalidImageError(
            "Unsupported image format",
            details=f"Format: {image_format}, Supported: {', '.join(sorted(allowed_formats))}",
        )

    props = ImageProperties(
        byte_size=len(image_bytes),
        name_hints=name_tokens(filename),
        width=width,
        height=height,
        image_format=image_format,
        filename=filename,
        **classify_size(len(image_bytes), thresholds),
    )
    logger.debug(
        f"Image properties: {props.byte_size} bytes, {width}x{height} {image_format}, "
        f"large={props.is_large} small={props.is_small} detailed={props.is_detailed}"
    )
    return props


__all__ = [
    "ImageProperties",
    "name_tokens",
    "classify_size",
    "properties_from_size",
    "analyze_image",
]
