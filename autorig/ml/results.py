"""
Detection Result Types

Normalized, immutable output of the external detectors (or of the
fallback strategy). Every detector adapter is reduced to this shape
before segmentation sees it.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple


OBJECT_CATEGORIES: Tuple[str, ...] = ("people", "clothing", "accessories", "animals")

STYLE_ANIME = "anime"
STYLE_REALISTIC = "realistic"
STYLE_UNKNOWN = "unknown"
STYLES = frozenset({STYLE_ANIME, STYLE_REALISTIC, STYLE_UNKNOWN})

# Landmark counts used when a detector reports a face without them
DEFAULT_EYE_COUNT = 2
DEFAULT_MOUTH_COUNT = 1


@dataclass(frozen=True)
class DetectedObject:
    """Single detection inside an object category."""
    type: str
    confidence: float

    def __post_init__(self):
        if not self.type:
            raise ValueError("DetectedObject.type must be non-empty")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence out of range: {self.confidence}")


@dataclass(frozen=True)
class FacialFeatures:
    has_face: bool = False
    eye_count: int = 0
    mouth_count: int = 0
    confidence: Optional[float] = None


@dataclass(frozen=True)
class StyleClassification:
    style: str = STYLE_UNKNOWN
    confidence: float = 0.0

    def __post_init__(self):
        if self.style not in STYLES:
            raise ValueError(f"Unknown style: {self.style}")


def _freeze_objects(
    objects: Optional[Mapping[str, Iterable[DetectedObject]]],
) -> Mapping[str, Tuple[DetectedObject, ...]]:
    """Copy objects into a read-only mapping with every category present."""
    frozen: Dict[str, Tuple[DetectedObject, ...]] = {c: () for c in OBJECT_CATEGORIES}
    for category, items in (objects or {}).items():
        if category not in frozen:
            raise ValueError(f"Unknown object category: {category}")
        frozen[category] = tuple(items)
    return MappingProxyType(frozen)


@dataclass(frozen=True)
class DetectionResult:
    """
    Normalized detection output for one request.

    Invariant: face_count == 0 implies facial_features.has_face is False.
    """
    face_count: int = 0
    facial_features: FacialFeatures = field(default_factory=FacialFeatures)
    objects: Mapping[str, Tuple[DetectedObject, ...]] = field(default_factory=dict)
    style: StyleClassification = field(default_factory=StyleClassification)
    source_confidence: float = 0.0
    used_live_detection: bool = False

    def __post_init__(self):
        if self.face_count < 0:
            raise ValueError("face_count must be >= 0")
        if self.face_count == 0 and self.facial_features.has_face:
            raise ValueError("facial_features.has_face requires face_count > 0")
        if not 0.0 <= self.source_confidence <= 1.0:
            raise ValueError(f"source_confidence out of range: {self.source_confidence}")
        object.__setattr__(self, "objects", _freeze_objects(self.objects))

    def objects_in(self, category: str) -> Tuple[DetectedObject, ...]:
        return self.objects.get(category, ())

    @property
    def has_face(self) -> bool:
        return self.face_count > 0

    @property
    def has_objects(self) -> bool:
        return any(self.objects.values())

    def to_dict(self) -> Dict:
        """Plain dict form for logging and debugging."""
        return {
            "faceCount": self.face_count,
            "facialFeatures": {
                "hasFace": self.facial_features.has_face,
                "eyeCount": self.facial_features.eye_count,
                "mouthCount": self.facial_features.mouth_count,
                "confidence": self.facial_features.confidence,
            },
            "objects": {
                category: [{"type": o.type, "confidence": o.confidence} for o in items]
                for category, items in self.objects.items()
            },
            "styleClassification": {
                "style": self.style.style,
                "confidence": self.style.confidence,
            },
            "sourceConfidence": self.source_confidence,
            "usedLiveDetection": self.used_live_detection,
        }


__all__ = [
    "OBJECT_CATEGORIES",
    "STYLE_ANIME",
    "STYLE_REALISTIC",
    "STYLE_UNKNOWN",
    "STYLES",
    "DEFAULT_EYE_COUNT",
    "DEFAULT_MOUTH_COUNT",
    "DetectedObject",
    "FacialFeatures",
    "StyleClassification",
    "DetectionResult",
]
