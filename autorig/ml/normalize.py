"""
Detector Payload Normalization

Turns whatever a detector returns into DetectionResult. Providers differ in
key names and nesting, so every field is looked up under a few aliases and
missing fields fall back to documented defaults.

Accepted section shapes (all optional):
    faces:   int | [{"confidence", "landmarks": {"eyes", "mouth"}}, ...]
    objects: {"people": [...], "clothing": [...], ...} | [{"label", "confidence"}, ...]
    style:   "anime" | {"style", "confidence"}
"""

import math
from typing import Any, Dict, Iterable, List, Optional, Tuple

from autorig.core.exceptions import DetectionError, DetectionFailureReason
from autorig.core.logger import get_logger

from .results import (
    OBJECT_CATEGORIES,
    STYLE_ANIME,
    STYLE_REALISTIC,
    STYLE_UNKNOWN,
    DEFAULT_EYE_COUNT,
    DEFAULT_MOUTH_COUNT,
    DetectedObject,
    DetectionResult,
    FacialFeatures,
    StyleClassification,
)

logger = get_logger(__name__)


# Detector labels mapped onto object categories; unknown labels are dropped
CATEGORY_BY_LABEL: Dict[str, str] = {
    # People
    "person": "people",
    "man": "people",
    "woman": "people",
    "boy": "people",
    "girl": "people",
    "child": "people",
    "human": "people",
    # Clothing
    "shirt": "clothing",
    "t-shirt": "clothing",
    "jacket": "clothing",
    "coat": "clothing",
    "dress": "clothing",
    "skirt": "clothing",
    "pants": "clothing",
    "jeans": "clothing",
    "shorts": "clothing",
    "shoes": "clothing",
    "shoe": "clothing",
    "boots": "clothing",
    "sweater": "clothing",
    "hoodie": "clothing",
    # Accessories
    "hat": "accessories",
    "cap": "accessories",
    "glasses": "accessories",
    "sunglasses": "accessories",
    "earrings": "accessories",
    "necklace": "accessories",
    "bracelet": "accessories",
    "watch": "accessories",
    "ring": "accessories",
    "scarf": "accessories",
    "tie": "accessories",
    "backpack": "accessories",
    "handbag": "accessories",
    "bag": "accessories",
    "umbrella": "accessories",
    # Animals
    "cat": "animals",
    "dog": "animals",
    "bird": "animals",
    "horse": "animals",
    "rabbit": "animals",
    "bear": "animals",
    "fox": "animals",
    "sheep": "animals",
    "cow": "animals",
}

STYLE_ALIASES: Dict[str, str] = {
    "anime": STYLE_ANIME,
    "manga": STYLE_ANIME,
    "cartoon": STYLE_ANIME,
    "illustration": STYLE_ANIME,
    "realistic": STYLE_REALISTIC,
    "photo": STYLE_REALISTIC,
    "photorealistic": STYLE_REALISTIC,
    "photograph": STYLE_REALISTIC,
}

# Detector kinds and the payload sections they contribute
SECTIONS_BY_KIND: Dict[str, Tuple[str, ...]] = {
    "face": ("faces",),
    "objects": ("objects",),
    "style": ("style",),
    "combined": ("faces", "objects", "style"),
}

DEFAULT_SOURCE_CONFIDENCE = 0.5


# =============================================================================
# FIELD HELPERS
# =============================================================================

def _first(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present, non-None value among keys."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _confidence(value: Any, default: Optional[float] = None) -> Optional[float]:
    """Coerce a provider score to [0, 1]; percentages are rescaled."""
    if value is None or isinstance(value, bool):
        return default
    try:
        score = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(score):
        return default
    if 1.0 < score <= 100.0:
        score /= 100.0
    return round(min(max(score, 0.0), 1.0), 3)


def _count(value: Any, default: int) -> int:
    """Landmark count; lists of points count as their length."""
    if isinstance(value, list):
        return len(value)
    if isinstance(value, bool):
        return default
    try:
        return max(int(value), 0)
    except (TypeError, ValueError, OverflowError):
        return default


def _label(value: Any) -> str:
    return str(value or "").strip().lower().replace(" ", "_")


def _malformed(message: str, detector: Optional[str] = None) -> DetectionError:
    return DetectionError(
        DetectionFailureReason.MALFORMED_RESPONSE,
        message=message,
        detector=detector,
    )


# =============================================================================
# SECTION EXTRACTION
# =============================================================================

def split_output(kind: str, output: Any) -> Dict[str, Any]:
    """
    Reduce one detector's raw output to the payload sections it owns.

    Raises:
        DetectionError: output shape is not usable for this kind
    """
    if kind not in SECTIONS_BY_KIND:
        raise ValueError(f"Unknown detector kind: {kind}")

    if kind == "style" and isinstance(output, str):
        return {"style": output}

    if isinstance(output, list):
        if kind == "face":
            return {"faces": output}
        if kind == "objects":
            return {"objects": output}
        raise _malformed(f"Unexpected list output for {kind} detector", kind)

    if not isinstance(output, dict):
        raise _malformed(f"Unexpected output type {type(output).__name__}", kind)

    sections: Dict[str, Any] = {}
    if "faces" in SECTIONS_BY_KIND[kind]:
        faces = _first(output, "faces", "face_count", "faceCount", "num_faces")
        if faces is not None:
            sections["faces"] = faces
    if "objects" in SECTIONS_BY_KIND[kind]:
        objects = _first(output, "objects", "detections", "predictions")
        if objects is not None:
            sections["objects"] = objects
    if "style" in SECTIONS_BY_KIND[kind]:
        style = _first(output, "style", "styleClassification", "style_classification")
        if style is None and kind == "style":
            style = output
        if style is not None:
            sections["style"] = style
    return sections


def _normalize_faces(faces: Any) -> Tuple[int, FacialFeatures, List[float]]:
    if faces is None:
        return 0, FacialFeatures(), []

    if isinstance(faces, bool):
        raise _malformed("faces must be a count or a list", "face")

    if isinstance(faces, (int, float)):
        if not math.isfinite(faces):
            raise _malformed("faces count must be finite", "face")
        count = max(int(faces), 0)
        if count == 0:
            return 0, FacialFeatures(), []
        return count, FacialFeatures(
            has_face=True,
            eye_count=DEFAULT_EYE_COUNT,
            mouth_count=DEFAULT_MOUTH_COUNT,
        ), []

    if not isinstance(faces, list):
        raise _malformed("faces must be a count or a list", "face")

    entries = [f for f in faces if isinstance(f, dict)]
    if not entries:
        return 0, FacialFeatures(), []

    confidences = [
        c for c in (_confidence(_first(f, "confidence", "score", "conf")) for f in entries)
        if c is not None
    ]

    # Landmarks of the most confident face drive the feature counts
    primary = max(
        entries,
        key=lambda f: _confidence(_first(f, "confidence", "score", "conf"), 0.0),
    )
    landmarks = _first(primary, "landmarks", "features", default={})
    if not isinstance(landmarks, dict):
        landmarks = {}
    eyes = _first(landmarks, "eyes", "eye_count", "eyeCount", default=None)
    if eyes is None:
        eyes = _first(primary, "eye_count", "eyeCount", default=DEFAULT_EYE_COUNT)
    mouth = _first(landmarks, "mouth", "mouth_count", "mouthCount", default=None)
    if mouth is None:
        mouth = _first(primary, "mouth_count", "mouthCount", default=DEFAULT_MOUTH_COUNT)

    features = FacialFeatures(
        has_face=True,
        eye_count=_count(eyes, DEFAULT_EYE_COUNT),
        mouth_count=_count(mouth, DEFAULT_MOUTH_COUNT),
        confidence=max(confidences) if confidences else None,
    )
    return len(entries), features, confidences


def _normalize_object_entry(entry: Any) -> Optional[DetectedObject]:
    if isinstance(entry, str):
        return DetectedObject(type=_label(entry), confidence=1.0) if entry.strip() else None
    if not isinstance(entry, dict):
        return None
    label = _label(_first(entry, "type", "label", "name", "class"))
    if not label:
        return None
    return DetectedObject(
        type=label,
        confidence=_confidence(_first(entry, "confidence", "score", "conf"), 0.0),
    )


def _normalize_objects(objects: Any) -> Dict[str, List[DetectedObject]]:
    categorized: Dict[str, List[DetectedObject]] = {c: [] for c in OBJECT_CATEGORIES}
    if objects is None:
        return categorized

    if isinstance(objects, dict):
        for category, entries in objects.items():
            if category not in categorized:
                logger.debug(f"Ignoring unknown object category '{category}'")
                continue
            if not isinstance(entries, list):
                raise _malformed(f"objects.{category} must be a list", "objects")
            for entry in entries:
                detected = _normalize_object_entry(entry)
                if detected is not None:
                    categorized[category].append(detected)
        return categorized

    if not isinstance(objects, list):
        raise _malformed("objects must be a mapping or a list", "objects")

    for entry in objects:
        detected = _normalize_object_entry(entry)
        if detected is None:
            continue
        category = None
        if isinstance(entry, dict):
            category = _first(entry, "category")
        category = category if category in categorized else CATEGORY_BY_LABEL.get(detected.type)
        if category is None:
            logger.debug(f"Dropping uncategorized detection '{detected.type}'")
            continue
        categorized[category].append(detected)
    return categorized


def _normalize_style(style: Any) -> StyleClassification:
    if style is None:
        return StyleClassification()
    if isinstance(style, str):
        return StyleClassification(style=STYLE_ALIASES.get(_label(style), STYLE_UNKNOWN), confidence=0.0)
    if not isinstance(style, dict):
        raise _malformed("style must be a string or an object", "style")
    name = STYLE_ALIASES.get(_label(_first(style, "style", "label", "class")), STYLE_UNKNOWN)
    confidence = _confidence(_first(style, "confidence", "score"), 0.0)
    return StyleClassification(style=name, confidence=confidence)


# =============================================================================
# PUBLIC API
# =============================================================================

def normalize_payload(
    payload: Dict[str, Any],
    used_live_detection: bool = True,
    source_confidence: Optional[float] = None,
) -> DetectionResult:
    """
    Build a DetectionResult from merged payload sections.

    Args:
        payload: Dict with optional "faces", "objects" and "style" sections
        used_live_detection: Whether the sections came from a live detector
        source_confidence: Explicit overall confidence; averaged from the
            individual scores when omitted

    Raises:
        DetectionError: a section has an unusable shape
    """
    if not isinstance(payload, dict):
        raise _malformed("Detector payload must be an object")

    try:
        face_count, facial_features, face_confidences = _normalize_faces(payload.get("faces"))
        objects = _normalize_objects(payload.get("objects"))
        style = _normalize_style(payload.get("style"))
    except (ValueError, OverflowError) as e:
        raise _malformed(f"Detector payload out of range: {e}")

    if source_confidence is None:
        scores = list(face_confidences)
        scores.extend(o.confidence for entries in objects.values() for o in entries)
        if style.style != STYLE_UNKNOWN and style.confidence:
            scores.append(style.confidence)
        source_confidence = (
            round(sum(scores) / len(scores), 3) if scores else DEFAULT_SOURCE_CONFIDENCE
        )

    return DetectionResult(
        face_count=face_count,
        facial_features=facial_features,
        objects=objects,
        style=style,
        source_confidence=source_confidence,
        used_live_detection=used_live_detection,
    )


def merge_sections(sections: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Merge per-detector sections; earlier sections win on conflicts."""
    merged: Dict[str, Any] = {}
    for section in sections:
        for key, value in section.items():
            merged.setdefault(key, value)
    return merged


__all__ = [
    "CATEGORY_BY_LABEL",
    "STYLE_ALIASES",
    "SECTIONS_BY_KIND",
    "split_output",
    "normalize_payload",
    "merge_sections",
]
