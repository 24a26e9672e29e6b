"""
Fallback Detection Strategy

Substitute detection results used when live detection is unavailable or
fails. The substitute depends only on the upload's byte size so the same
file always produces the same layers and rig.
"""

from typing import Any, Dict, Optional

from autorig.core.logger import get_logger
from autorig.ml.results import (
    DEFAULT_EYE_COUNT,
    DEFAULT_MOUTH_COUNT,
    DetectionResult,
    FacialFeatures,
    StyleClassification,
)

from .image_properties import ImageProperties

logger = get_logger(__name__)

FALLBACK_FACE_CONFIDENCE = 0.6
FALLBACK_SOURCE_CONFIDENCE = 0.5


class FallbackStrategy:
    """
    Deterministic stand-in for the detector.

    Any upload that is not small is assumed to show one character face;
    small uploads are treated as plain objects.
    """

    def __init__(
        self,
        face_confidence: float = FALLBACK_FACE_CONFIDENCE,
        source_confidence: float = FALLBACK_SOURCE_CONFIDENCE,
    ):
        self.face_confidence = face_confidence
        self.source_confidence = source_confidence

    def assumes_face(self, props: ImageProperties) -> bool:
        return not props.is_small

    def substitute(
        self,
        props: ImageProperties,
        reason: Optional[str] = None,
    ) -> DetectionResult:
        """Full replacement for a failed or disabled detection run."""
        if reason:
            logger.warning(f"Using fallback detection: {reason}")

        if self.assumes_face(props):
            face_count = 1
            facial_features = FacialFeatures(
                has_face=True,
                eye_count=DEFAULT_EYE_COUNT,
                mouth_count=DEFAULT_MOUTH_COUNT,
                confidence=self.face_confidence,
            )
        else:
            face_count = 0
            facial_features = FacialFeatures()

        return DetectionResult(
            face_count=face_count,
            facial_features=facial_features,
            objects={},
            style=StyleClassification(),
            source_confidence=self.source_confidence,
            used_live_detection=False,
        )

    def section(self, kind: str, props: ImageProperties) -> Dict[str, Any]:
        """
        Payload sections a failed sibling detector would have supplied.

        Shaped like normalized detector output so it can be merged with
        the sections of detectors that did succeed.
        """
        sections: Dict[str, Any] = {}
        if kind in ("face", "combined"):
            if self.assumes_face(props):
                sections["faces"] = [{
                    "confidence": self.face_confidence,
                    "landmarks": {"eyes": DEFAULT_EYE_COUNT, "mouth": DEFAULT_MOUTH_COUNT},
                }]
            else:
                sections["faces"] = 0
        if kind in ("objects", "combined"):
            sections["objects"] = {}
        if kind in ("style", "combined"):
            sections["style"] = {"style": "unknown", "confidence": 0.0}
        return sections


__all__ = [
    "FALLBACK_FACE_CONFIDENCE",
    "FALLBACK_SOURCE_CONFIDENCE",
    "FallbackStrategy",
]
