"""
Segmentation Pipeline

Turns a DetectionResult plus file-derived and client-supplied hints into an
ordered set of named layers.

Rules run in a fixed order. Each rule sees the immutable inputs and the
layers emitted so far, and returns new tentative layers. Every layer
carries the named predicate outcome that decides whether it is kept
(`detected`); undetected layers are dropped at the end.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from autorig.core.config import settings
from autorig.core.logger import get_logger
from autorig.ml.results import (
    STYLE_ANIME,
    STYLE_REALISTIC,
    STYLE_UNKNOWN,
    DetectedObject,
    DetectionResult,
)
from autorig.schemas.analysis import ClientAnalysis

from .image_properties import ImageProperties

logger = get_logger(__name__)


class Provenance(str, Enum):
    FACE_DETECTION = "face_detection"
    OBJECT_DETECTION = "object_detection"
    ACCESSORY_DETECTION = "accessory_detection"
    ANIMAL_DETECTION = "animal_detection"
    STYLE_HEURISTIC = "style_heuristic"
    SIZE_HEURISTIC = "size_heuristic"
    FALLBACK = "fallback"
    ALWAYS = "always"


@dataclass(frozen=True)
class Layer:
    """Single visual decomposition unit."""
    name: str
    confidence: float
    provenance: Provenance
    detected: bool = True

    def __post_init__(self):
        if not self.name:
            raise ValueError("Layer name must be non-empty")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Layer confidence out of range: {self.confidence}")
        object.__setattr__(self, "provenance", Provenance(self.provenance))

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "confidence": self.confidence,
            "provenance": self.provenance.value,
        }


# =============================================================================
# LAYER TABLES
# =============================================================================

BACKGROUND_CONFIDENCE = 0.95

# Core face set in emission order, with confidences used when the detector
# reports no facial confidence
FACE_LAYERS: Tuple[Tuple[str, float], ...] = (
    ("face_base", 0.92),
    ("left_eye", 0.88),
    ("right_eye", 0.88),
    ("nose", 0.85),
    ("mouth", 0.87),
)
HAIR_LAYERS: Tuple[Tuple[str, float], ...] = (
    ("hair_front", 0.8),
    ("hair_back", 0.75),
)
FULL_BODY_LAYERS: Tuple[Tuple[str, float], ...] = (
    ("torso", 0.85),
    ("shirt", 0.82),
    ("left_arm", 0.8),
    ("right_arm", 0.8),
    ("left_leg", 0.78),
    ("right_leg", 0.78),
    ("pants", 0.75),
    ("shoes", 0.7),
)
BUST_LAYERS: Tuple[Tuple[str, float], ...] = (
    ("shirt", 0.82),
    ("torso", 0.85),
    ("left_arm", 0.8),
    ("right_arm", 0.8),
)
DETAIL_ACCESSORY_LAYERS: Tuple[Tuple[str, float], ...] = (
    ("earrings", 0.6),
    ("necklace", 0.6),
    ("bracelet", 0.55),
)
STYLE_LAYERS: Dict[str, Tuple[str, ...]] = {
    STYLE_ANIME: ("anime_eyes", "blush"),
    STYLE_REALISTIC: ("skin_texture", "shadows", "highlights"),
}
# Extra layers for animals with a known anatomy
ANIMAL_SPECIAL_LAYERS: Dict[str, Tuple[str, ...]] = {
    "cat": ("cat_ears", "whiskers", "cat_tail"),
    "dog": ("dog_ears", "snout", "dog_tail"),
}
FALLBACK_LAYERS: Tuple[Tuple[str, float], ...] = (
    ("main_object", 0.8),
    ("object_details", 0.7),
)

STYLE_HEURISTIC_CONFIDENCE = 0.6
DEFAULT_STYLE_CONFIDENCE = 0.7
HIGH_DETAIL_SCORE = 0.7

# Filename tokens hinting at an art style
STYLE_NAME_HINTS: Dict[str, str] = {
    "anime": STYLE_ANIME,
    "manga": STYLE_ANIME,
    "chibi": STYLE_ANIME,
    "cartoon": STYLE_ANIME,
    "photo": STYLE_REALISTIC,
    "portrait": STYLE_REALISTIC,
    "realistic": STYLE_REALISTIC,
}

# Provenances that count as an object/animal signal for the no-face fallback
OBJECT_SIGNAL_PROVENANCES = frozenset({
    Provenance.OBJECT_DETECTION,
    Provenance.ACCESSORY_DETECTION,
    Provenance.ANIMAL_DETECTION,
})


# =============================================================================
# CONTEXT AND PREDICATES
# =============================================================================

@dataclass(frozen=True)
class SegmentationContext:
    """Immutable inputs shared by every rule."""
    detection: DetectionResult
    props: ImageProperties
    analysis: Optional[ClientAnalysis]
    min_confidence: float
    full_body_aspect_ratio: float


def passes_confidence_floor(confidence: float, floor: float) -> bool:
    """Inclusion gate for detector-derived layers."""
    return confidence >= floor


def confident_objects(ctx: SegmentationContext, category: str) -> List[DetectedObject]:
    return [
        o for o in ctx.detection.objects_in(category)
        if passes_confidence_floor(o.confidence, ctx.min_confidence)
    ]


def has_character(ctx: SegmentationContext) -> bool:
    """A face or a confidently detected person is present."""
    return ctx.detection.has_face or bool(confident_objects(ctx, "people"))


def is_full_body_composition(ctx: SegmentationContext) -> bool:
    """Large upload, a client-reported large image, or a tall aspect ratio."""
    if ctx.props.is_large:
        return True
    if ctx.analysis is not None:
        if ctx.analysis.basic_info is not None and ctx.analysis.basic_info.is_large_image:
            return True
        ratio = ctx.analysis.aspect_ratio
        if ratio is not None and ratio <= ctx.full_body_aspect_ratio:
            return True
    return False


def has_high_detail(ctx: SegmentationContext) -> bool:
    """Client analysis reports a high level of detail."""
    if ctx.analysis is None or ctx.analysis.detail_level is None:
        return False
    detail = ctx.analysis.detail_level
    if detail.level and detail.level.strip().lower() == "high":
        return True
    return detail.score is not None and detail.score >= HIGH_DETAIL_SCORE


def resolve_style(ctx: SegmentationContext) -> Tuple[str, float, Provenance]:
    """
    Art style from the detector, else client analysis, else filename hints.

    Returns (style, confidence, provenance) with style "unknown" when no
    source decides.
    """
    detected = ctx.detection.style
    if detected.style != STYLE_UNKNOWN:
        return detected.style, detected.confidence or DEFAULT_STYLE_CONFIDENCE, Provenance.STYLE_HEURISTIC

    if ctx.analysis is not None and ctx.analysis.style in STYLE_LAYERS:
        return ctx.analysis.style, STYLE_HEURISTIC_CONFIDENCE, Provenance.STYLE_HEURISTIC

    for token in sorted(ctx.props.name_hints):
        style = STYLE_NAME_HINTS.get(token)
        if style is not None:
            return style, STYLE_HEURISTIC_CONFIDENCE, Provenance.STYLE_HEURISTIC

    return STYLE_UNKNOWN, 0.0, Provenance.STYLE_HEURISTIC


# =============================================================================
# RULES
# =============================================================================

Rule = Callable[[SegmentationContext, Sequence[Layer]], Iterable[Layer]]


def background_rule(ctx: SegmentationContext, emitted: Sequence[Layer]) -> List[Layer]:
    return [Layer("background", BACKGROUND_CONFIDENCE, Provenance.ALWAYS)]


def face_rule(ctx: SegmentationContext, emitted: Sequence[Layer]) -> List[Layer]:
    if not ctx.detection.has_face:
        return []

    features = ctx.detection.facial_features
    wanted = {
        "face_base": True,
        "left_eye": features.eye_count >= 1,
        "right_eye": features.eye_count >= 2,
        "nose": True,
        "mouth": features.mouth_count >= 1,
    }
    layers = [
        Layer(name, features.confidence if features.confidence is not None else default,
              Provenance.FACE_DETECTION)
        for name, default in FACE_LAYERS
        if wanted[name]
    ]
    layers.extend(Layer(name, conf, Provenance.FACE_DETECTION) for name, conf in HAIR_LAYERS)
    return layers


def body_rule(ctx: SegmentationContext, emitted: Sequence[Layer]) -> List[Layer]:
    layers = []
    if has_character(ctx):
        if ctx.props.is_large:
            table, provenance = FULL_BODY_LAYERS, Provenance.SIZE_HEURISTIC
        elif is_full_body_composition(ctx):
            table, provenance = FULL_BODY_LAYERS, Provenance.STYLE_HEURISTIC
        elif ctx.detection.has_face:
            table, provenance = BUST_LAYERS, Provenance.FACE_DETECTION
        else:
            table, provenance = BUST_LAYERS, Provenance.OBJECT_DETECTION
        layers.extend(Layer(name, conf, provenance) for name, conf in table)

    # Detected garments are kept even without a character (product shots)
    for item in ctx.detection.objects_in("clothing"):
        layers.append(Layer(
            item.type,
            item.confidence,
            Provenance.OBJECT_DETECTION,
            detected=passes_confidence_floor(item.confidence, ctx.min_confidence),
        ))
    return layers


def accessory_rule(ctx: SegmentationContext, emitted: Sequence[Layer]) -> List[Layer]:
    layers = [
        Layer(
            item.type,
            item.confidence,
            Provenance.ACCESSORY_DETECTION,
            detected=passes_confidence_floor(item.confidence, ctx.min_confidence),
        )
        for item in ctx.detection.objects_in("accessories")
    ]

    if ctx.props.is_detailed:
        layers.extend(
            Layer(name, conf, Provenance.SIZE_HEURISTIC)
            for name, conf in DETAIL_ACCESSORY_LAYERS
        )
    if has_character(ctx) and has_high_detail(ctx):
        layers.extend(
            Layer(name, conf, Provenance.STYLE_HEURISTIC)
            for name, conf in DETAIL_ACCESSORY_LAYERS
        )
    return layers


def style_rule(ctx: SegmentationContext, emitted: Sequence[Layer]) -> List[Layer]:
    style, confidence, provenance = resolve_style(ctx)
    return [Layer(name, confidence, provenance) for name in STYLE_LAYERS.get(style, ())]


def animal_rule(ctx: SegmentationContext, emitted: Sequence[Layer]) -> List[Layer]:
    layers = []
    for animal in ctx.detection.objects_in("animals"):
        detected = passes_confidence_floor(animal.confidence, ctx.min_confidence)
        layers.append(Layer(
            f"{animal.type}_features",
            animal.confidence,
            Provenance.ANIMAL_DETECTION,
            detected=detected,
        ))
        layers.extend(
            Layer(name, animal.confidence, Provenance.ANIMAL_DETECTION, detected=detected)
            for name in ANIMAL_SPECIAL_LAYERS.get(animal.type, ())
        )
    return layers


def fallback_rule(ctx: SegmentationContext, emitted: Sequence[Layer]) -> List[Layer]:
    if has_character(ctx):
        return []
    if any(l.detected and l.provenance in OBJECT_SIGNAL_PROVENANCES for l in emitted):
        return []
    return [Layer(name, conf, Provenance.FALLBACK) for name, conf in FALLBACK_LAYERS]


# Evaluation order is part of the output contract
RULES: Tuple[Tuple[str, Rule], ...] = (
    ("background", background_rule),
    ("face", face_rule),
    ("body", body_rule),
    ("accessories", accessory_rule),
    ("style", style_rule),
    ("animals", animal_rule),
    ("fallback", fallback_rule),
)


# =============================================================================
# PUBLIC API
# =============================================================================

def run_rules(ctx: SegmentationContext, rules: Sequence[Tuple[str, Rule]] = RULES) -> Tuple[Layer, ...]:
    """
    Evaluate rules in order and return tentative layers (undetected included).

    A layer is skipped when a detected layer of the same name already exists.
    """
    tentative: List[Layer] = []
    taken = set()
    for rule_name, rule in rules:
        for layer in rule(ctx, tuple(tentative)):
            if layer.name in taken:
                logger.debug(f"Rule '{rule_name}' skipped duplicate layer '{layer.name}'")
                continue
            tentative.append(layer)
            if layer.detected:
                taken.add(layer.name)
    return tuple(tentative)


def segment(
    detection: DetectionResult,
    props: ImageProperties,
    client_analysis: Optional[ClientAnalysis] = None,
    min_confidence: Optional[float] = None,
    full_body_aspect_ratio: Optional[float] = None,
) -> Tuple[Layer, ...]:
    """
    Derive the ordered, deduplicated layer set for one image.

    Args:
        detection: Normalized detection (live or fallback)
        props: File-derived image properties
        client_analysis: Optional browser-side analysis report
        min_confidence: Inclusion floor for detector-derived layers
        full_body_aspect_ratio: Width/height at or below which a client
            composition counts as full-body

    Returns:
        Detected layers in emission order, background first
    """
    ctx = SegmentationContext(
        detection=detection,
        props=props,
        analysis=client_analysis,
        min_confidence=(
            settings.heuristics.min_layer_confidence if min_confidence is None else min_confidence
        ),
        full_body_aspect_ratio=(
            settings.heuristics.full_body_aspect_ratio
            if full_body_aspect_ratio is None else full_body_aspect_ratio
        ),
    )
    tentative = run_rules(ctx)
    layers = tuple(layer for layer in tentative if layer.detected)

    dropped = len(tentative) - len(layers)
    if dropped:
        logger.debug(f"Dropped {dropped} layer(s) below confidence {ctx.min_confidence}")
    return layers


def provenance_summary(layers: Iterable[Layer]) -> Dict[str, int]:
    """Count layers per provenance."""
    summary: Dict[str, int] = {}
    for layer in layers:
        summary[layer.provenance.value] = summary.get(layer.provenance.value, 0) + 1
    return summary


__all__ = [
    "Provenance",
    "Layer",
    "SegmentationContext",
    "RULES",
    "passes_confidence_floor",
    "has_character",
    "is_full_body_composition",
    "has_high_detail",
    "resolve_style",
    "run_rules",
    "segment",
    "provenance_summary",
]
