"""
Tests for rig generation and classification.
"""

import pytest

from autorig.pipelines.rigging import (
    BONE_TEMPLATE,
    Bone,
    QUALITY_LEVELS,
    classify_quality,
    classify_rig_type,
    generate_rig,
    is_valid_tree,
)
from autorig.pipelines.segmentation import Layer, Provenance, segment

from conftest import make_detection, make_props


def layer(name, provenance=Provenance.FACE_DETECTION):
    return Layer(name, 0.8, provenance)


def layers_for(detection, size, filename=None):
    return segment(detection, make_props(size, filename), min_confidence=0.3, full_body_aspect_ratio=0.75)


class TestRigScenarios:

    def test_small_object_gets_generic_rig(self):
        rig = generate_rig(layers_for(make_detection(), 10_000))

        assert rig.rig_type == "object"
        assert rig.quality == "basic"
        assert rig.complexity == "low"
        assert rig.bone_names == [
            "root", "main_body", "core", "detail_1", "detail_2", "detail_3",
            "accent_left", "accent_right",
        ]
        assert rig.animations == ("idle", "bounce", "wobble", "spin")

    def test_full_body_character(self):
        layers = layers_for(make_detection(face_count=1, style="realistic"), 600_000)
        rig = generate_rig(layers)

        assert len(layers) == 19
        assert rig.rig_type == "character"
        assert rig.quality == "professional"
        assert rig.complexity == "high"
        for bone in ("head", "left_eye", "left_hand", "right_foot", "hair_back"):
            assert bone in rig.bone_names
        assert set(rig.animations) >= {"blink", "talk", "wave", "walk", "run", "jump"}

    def test_bust_has_arms_but_no_legs(self):
        rig = generate_rig(layers_for(make_detection(face_count=1), 100_000))

        assert "left_hand" in rig.bone_names
        assert "left_foot" not in rig.bone_names
        assert "wave" in rig.animations
        assert "walk" not in rig.animations

    def test_cat_with_face_is_hybrid(self):
        rig = generate_rig(layers_for(make_detection(face_count=1, animals=[("cat", 0.9)]), 100_000))

        assert rig.rig_type == "hybrid"
        assert {"purr", "tail_swish", "ear_twitch"} <= set(rig.animations)
        assert {"left_cat_ear", "right_cat_ear", "whiskers", "tail_tip"} <= set(rig.bone_names)

    def test_dog_alone_is_animal(self):
        rig = generate_rig(layers_for(make_detection(animals=[("dog", 0.8)]), 10_000))

        assert rig.rig_type == "animal"
        assert {"tail_wag", "bark"} <= set(rig.animations)
        assert "snout" in rig.bone_names
        assert "main_body" not in rig.bone_names

    def test_other_animal_gets_body_bone(self):
        rig = generate_rig(layers_for(make_detection(animals=[("fox", 0.8)]), 10_000))

        fox = [b for b in rig.bones if b.name == "fox_body"]
        assert fox and fox[0].parent_name == "spine"
        assert "idle_breathe" in rig.animations

    def test_styled_object_is_mascot(self):
        layers = layers_for(make_detection(), 10_000, "anime_blob.png")
        rig = generate_rig(layers)

        assert [l.name for l in layers] == ["background", "anime_eyes", "blush", "main_object", "object_details"]
        assert rig.rig_type == "mascot"
        assert rig.quality == "standard"


class TestRigTypeClassification:

    def test_empty_layers(self):
        assert classify_rig_type([]) == "unknown"

    def test_background_only_is_generic(self):
        assert classify_rig_type([layer("background", Provenance.ALWAYS)]) == "generic"

    def test_body_layers_make_a_character(self):
        assert classify_rig_type([layer("torso", Provenance.OBJECT_DETECTION)]) == "character"

    def test_empty_layers_still_root_a_rig(self):
        rig = generate_rig([])

        assert rig.bones[0].name == "root"
        assert rig.rig_type == "unknown"


class TestQuality:

    @pytest.mark.parametrize("count,quality,complexity", [
        (0, "basic", "low"),
        (3, "basic", "low"),
        (4, "standard", "low"),
        (5, "standard", "low"),
        (6, "medium", "medium"),
        (8, "medium", "medium"),
        (9, "high", "medium"),
        (15, "high", "medium"),
        (16, "professional", "high"),
    ])
    def test_thresholds(self, count, quality, complexity):
        assert classify_quality(count) == (quality, complexity)

    def test_quality_never_decreases(self):
        ranks = [QUALITY_LEVELS.index(classify_quality(n)[0]) for n in range(30)]

        assert ranks == sorted(ranks)


class TestBoneTree:

    @pytest.mark.parametrize("detection,size", [
        (make_detection(), 10_000),
        (make_detection(face_count=1), 100_000),
        (make_detection(face_count=1, animals=[("cat", 0.9), ("dog", 0.8)]), 2_000_000),
        (make_detection(animals=[("horse", 0.9)]), 600_000),
        (make_detection(people=[("person", 0.9)]), 600_000),
    ])
    def test_rig_is_a_tree_rooted_at_root(self, detection, size):
        rig = generate_rig(layers_for(detection, size))

        assert is_valid_tree(rig.bones)
        assert rig.bones[0] == Bone("root", (0.0, 0.0, 0.0), None)
        assert all(b.position[2] == 0.0 for b in rig.bones)

    def test_feature_without_chain_pulls_in_ancestors(self):
        rig = generate_rig([layer("background", Provenance.ALWAYS), layer("whiskers", Provenance.ANIMAL_DETECTION)])

        assert rig.bone_names[:4] == ["root", "spine", "neck", "head"]
        assert is_valid_tree(rig.bones)

    def test_template_parents_exist(self):
        for name, (parent, _) in BONE_TEMPLATE.items():
            assert parent is None or parent in BONE_TEMPLATE, name

    def test_invalid_trees_detected(self):
        root = Bone("root", (0.0, 0.0, 0.0))
        orphan = Bone("hand", (0.0, 0.0, 0.0), "arm")

        assert not is_valid_tree([])
        assert not is_valid_tree([orphan])
        assert not is_valid_tree([root, orphan])
        assert not is_valid_tree([root, root])

    def test_bone_dict_uses_parent_name_key(self):
        rig = generate_rig([layer("face_base")])

        assert rig.to_dict()["bones"][1] == {"name": "spine", "position": [0.0, 0.3, 0.0], "parentName": "root"}
        assert rig.to_dict()["rigType"] == "character"
