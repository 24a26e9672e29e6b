"""
Rig Generation Pipeline

Derives a bone hierarchy, animation capabilities and quality/type
classification from a layer set.

Bone placement comes from a fixed anatomical template keyed by bone name.
Adding a bone first adds its missing ancestors, so every bone's parent is
created before it and the hierarchy is always a tree rooted at `root`.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from autorig.core.logger import get_logger

from .segmentation import Layer, Provenance, STYLE_LAYERS

logger = get_logger(__name__)


@dataclass(frozen=True)
class Bone:
    """Single rig joint. Planar rigs keep z at 0."""
    name: str
    position: Tuple[float, float, float]
    parent_name: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "position": list(self.position),
            "parentName": self.parent_name,
        }


@dataclass(frozen=True)
class RiggedModel:
    bones: Tuple[Bone, ...]
    animations: Tuple[str, ...]
    quality: str
    complexity: str
    rig_type: str

    @property
    def bone_names(self) -> List[str]:
        return [b.name for b in self.bones]

    def to_dict(self) -> Dict:
        return {
            "bones": [b.to_dict() for b in self.bones],
            "animations": list(self.animations),
            "quality": self.quality,
            "complexity": self.complexity,
            "rigType": self.rig_type,
        }


# =============================================================================
# ANATOMICAL TEMPLATE
# =============================================================================

# name -> (parent, (x, y)); root sits at the pelvis
BONE_TEMPLATE: Dict[str, Tuple[Optional[str], Tuple[float, float]]] = {
    "root": (None, (0.0, 0.0)),
    # Spine and head
    "spine": ("root", (0.0, 0.3)),
    "neck": ("spine", (0.0, 0.7)),
    "head": ("neck", (0.0, 0.85)),
    # Facial features
    "left_eye": ("head", (-0.05, 0.9)),
    "right_eye": ("head", (0.05, 0.9)),
    "nose": ("head", (0.0, 0.87)),
    "mouth": ("head", (0.0, 0.82)),
    "hair_front": ("head", (0.0, 0.97)),
    "hair_back": ("head", (0.0, 0.95)),
    # Arms
    "left_shoulder": ("spine", (-0.15, 0.65)),
    "left_upper_arm": ("left_shoulder", (-0.25, 0.55)),
    "left_lower_arm": ("left_upper_arm", (-0.3, 0.4)),
    "left_hand": ("left_lower_arm", (-0.33, 0.28)),
    "right_shoulder": ("spine", (0.15, 0.65)),
    "right_upper_arm": ("right_shoulder", (0.25, 0.55)),
    "right_lower_arm": ("right_upper_arm", (0.3, 0.4)),
    "right_hand": ("right_lower_arm", (0.33, 0.28)),
    # Legs
    "left_hip": ("root", (-0.08, -0.02)),
    "left_upper_leg": ("left_hip", (-0.09, -0.2)),
    "left_lower_leg": ("left_upper_leg", (-0.09, -0.45)),
    "left_foot": ("left_lower_leg", (-0.1, -0.7)),
    "right_hip": ("root", (0.08, -0.02)),
    "right_upper_leg": ("right_hip", (0.09, -0.2)),
    "right_lower_leg": ("right_upper_leg", (0.09, -0.45)),
    "right_foot": ("right_lower_leg", (0.1, -0.7)),
    # Animal features
    "left_cat_ear": ("head", (-0.06, 1.0)),
    "right_cat_ear": ("head", (0.06, 1.0)),
    "left_dog_ear": ("head", (-0.08, 0.96)),
    "right_dog_ear": ("head", (0.08, 0.96)),
    "whiskers": ("head", (0.0, 0.86)),
    "snout": ("head", (0.0, 0.84)),
    "tail_base": ("root", (0.1, 0.05)),
    "tail_mid": ("tail_base", (0.2, 0.1)),
    "tail_tip": ("tail_mid", (0.3, 0.2)),
    # Generic creature
    "main_body": ("root", (0.0, 0.5)),
    "core": ("main_body", (0.0, 0.55)),
    "detail_1": ("core", (-0.2, 0.6)),
    "detail_2": ("core", (0.0, 0.7)),
    "detail_3": ("core", (0.2, 0.6)),
    "accent_left": ("main_body", (-0.3, 0.4)),
    "accent_right": ("main_body", (0.3, 0.4)),
}

# Bones for animals without a dedicated template entry ("<type>_body")
ANIMAL_BODY_PARENT = "spine"
ANIMAL_BODY_POSITION = (0.0, 0.35)

FACIAL_CHAIN = ("spine", "neck", "head")
FACIAL_FEATURE_BONES = ("left_eye", "right_eye", "nose", "mouth", "hair_front", "hair_back")
FACE_LAYER_NAMES = frozenset({"face_base"}) | frozenset(FACIAL_FEATURE_BONES)

ARM_BONES: Dict[str, Tuple[str, ...]] = {
    "left_arm": ("left_shoulder", "left_upper_arm", "left_lower_arm", "left_hand"),
    "right_arm": ("right_shoulder", "right_upper_arm", "right_lower_arm", "right_hand"),
}
LEG_BONES: Dict[str, Tuple[str, ...]] = {
    "left_leg": ("left_hip", "left_upper_leg", "left_lower_leg", "left_foot"),
    "right_leg": ("right_hip", "right_upper_leg", "right_lower_leg", "right_foot"),
}
BODY_LAYER_NAMES = frozenset({"torso"}) | frozenset(ARM_BONES) | frozenset(LEG_BONES)

TAIL_CHAIN = ("tail_base", "tail_mid", "tail_tip")
ANIMAL_FEATURE_BONES: Dict[str, Tuple[str, ...]] = {
    "cat_ears": ("left_cat_ear", "right_cat_ear"),
    "whiskers": ("whiskers",),
    "cat_tail": TAIL_CHAIN,
    "dog_ears": ("left_dog_ear", "right_dog_ear"),
    "snout": ("snout",),
    "dog_tail": TAIL_CHAIN,
}
GENERIC_BONES = ("main_body", "core", "detail_1", "detail_2", "detail_3", "accent_left", "accent_right")

# =============================================================================
# ANIMATIONS
# =============================================================================

BASE_ANIMATIONS = ("idle",)
FACIAL_ANIMATIONS = ("blink", "smile", "head_turn", "talk")
ARM_ANIMATIONS = ("wave",)
LOCOMOTION_ANIMATIONS = ("walk", "run", "jump")
ANIMAL_ANIMATIONS: Dict[str, Tuple[str, ...]] = {
    "cat": ("purr", "tail_swish", "ear_twitch"),
    "dog": ("tail_wag", "bark", "ear_twitch"),
}
GENERIC_ANIMAL_ANIMATIONS = ("idle_breathe",)
GENERIC_ANIMATIONS = ("bounce", "wobble", "spin")

# =============================================================================
# CLASSIFICATION
# =============================================================================

# (minimum layer count exclusive, quality, complexity), highest first
QUALITY_TABLE: Tuple[Tuple[int, str, str], ...] = (
    (15, "professional", "high"),
    (8, "high", "medium"),
    (5, "medium", "medium"),
    (3, "standard", "low"),
    (-1, "basic", "low"),
)

QUALITY_LEVELS = ("basic", "standard", "medium", "high", "professional")


def classify_quality(layer_count: int) -> Tuple[str, str]:
    """Quality and complexity for a layer count."""
    for threshold, quality, complexity in QUALITY_TABLE:
        if layer_count > threshold:
            return quality, complexity
    return QUALITY_TABLE[-1][1], QUALITY_TABLE[-1][2]


def _animal_types(layers: Iterable[Layer]) -> List[str]:
    types = []
    for layer in layers:
        if layer.provenance == Provenance.ANIMAL_DETECTION and layer.name.endswith("_features"):
            types.append(layer.name[: -len("_features")])
    return types


def _has_animal(layers: Sequence[Layer]) -> bool:
    return any(l.provenance == Provenance.ANIMAL_DETECTION for l in layers)


def classify_rig_type(layers: Sequence[Layer]) -> str:
    """Rig type as a pure function of the layer set."""
    if not layers:
        return "unknown"

    names = {l.name for l in layers}
    character = bool(names & FACE_LAYER_NAMES) or bool(names & BODY_LAYER_NAMES)
    animal = _has_animal(layers)

    if character and animal:
        return "hybrid"
    if character:
        return "character"
    if animal:
        return "animal"

    styled = any(name in names for style_names in STYLE_LAYERS.values() for name in style_names)
    if "main_object" in names and styled:
        return "mascot"
    if "main_object" in names:
        return "object"
    return "generic"


# =============================================================================
# BUILDER
# =============================================================================

class _RigBuilder:
    """Accumulates bones and animations for a single rig."""

    def __init__(self):
        self.bones: List[Bone] = []
        self._index: Dict[str, Bone] = {}
        self.animations: List[str] = []
        self.add_bone("root")

    def has(self, name: str) -> bool:
        return name in self._index

    def add_bone(
        self,
        name: str,
        parent: Optional[str] = None,
        position: Optional[Tuple[float, float]] = None,
    ) -> None:
        if name in self._index:
            return
        if parent is None and position is None:
            parent, position = BONE_TEMPLATE[name]
        if parent is not None:
            self.add_bone(parent)
        bone = Bone(name=name, position=(position[0], position[1], 0.0), parent_name=parent)
        self.bones.append(bone)
        self._index[name] = bone

    def add_animations(self, names: Iterable[str]) -> None:
        for name in names:
            if name not in self.animations:
                self.animations.append(name)


def generate_rig(layers: Sequence[Layer]) -> RiggedModel:
    """
    Build a RiggedModel from a layer sequence.

    Args:
        layers: Detected layers in emission order

    Returns:
        RiggedModel whose bones start with `root`
    """
    names = [l.name for l in layers]
    present = set(names)
    builder = _RigBuilder()
    builder.add_animations(BASE_ANIMATIONS)

    facial = bool(present & FACE_LAYER_NAMES)
    if facial:
        for bone in FACIAL_CHAIN:
            builder.add_bone(bone)
        for bone in FACIAL_FEATURE_BONES:
            if bone in present:
                builder.add_bone(bone)
        builder.add_animations(FACIAL_ANIMATIONS)

    body = bool(present & BODY_LAYER_NAMES)
    if body:
        builder.add_bone("spine")
    for layer_name, chain in ARM_BONES.items():
        if layer_name in present:
            for bone in chain:
                builder.add_bone(bone)
            builder.add_animations(ARM_ANIMATIONS)
    for layer_name, chain in LEG_BONES.items():
        if layer_name in present:
            for bone in chain:
                builder.add_bone(bone)
            builder.add_animations(LOCOMOTION_ANIMATIONS)

    animal = _has_animal(layers)
    if animal:
        for layer_name in names:
            for bone in ANIMAL_FEATURE_BONES.get(layer_name, ()):
                builder.add_bone(bone)
        for animal_type in _animal_types(layers):
            if animal_type in ANIMAL_ANIMATIONS:
                builder.add_animations(ANIMAL_ANIMATIONS[animal_type])
            else:
                builder.add_bone(ANIMAL_BODY_PARENT)
                builder.add_bone(
                    f"{animal_type}_body",
                    parent=ANIMAL_BODY_PARENT,
                    position=ANIMAL_BODY_POSITION,
                )
                builder.add_animations(GENERIC_ANIMAL_ANIMATIONS)

    if not (facial or body or animal):
        for bone in GENERIC_BONES:
            builder.add_bone(bone)
        builder.add_animations(GENERIC_ANIMATIONS)

    quality, complexity = classify_quality(len(layers))
    rig = RiggedModel(
        bones=tuple(builder.bones),
        animations=tuple(builder.animations),
        quality=quality,
        complexity=complexity,
        rig_type=classify_rig_type(layers),
    )
    logger.debug(
        f"Rig: {len(rig.bones)} bones, {len(rig.animations)} animations, "
        f"type={rig.rig_type}, quality={rig.quality}"
    )
    return rig


def is_valid_tree(bones: Sequence[Bone]) -> bool:
    """True when bones start at root and every parent precedes its child."""
    if not bones or bones[0].name != "root" or bones[0].parent_name is not None:
        return False
    seen = set()
    for bone in bones:
        if bone.name in seen:
            return False
        if bone is not bones[0] and bone.parent_name not in seen:
            return False
        seen.add(bone.name)
    return True


__all__ = [
    "Bone",
    "RiggedModel",
    "BONE_TEMPLATE",
    "QUALITY_TABLE",
    "QUALITY_LEVELS",
    "classify_quality",
    "classify_rig_type",
    "generate_rig",
    "is_valid_tree",
]
