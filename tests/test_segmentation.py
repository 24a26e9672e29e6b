"""
Tests for the layer segmentation rules.
"""

import pytest

from autorig.pipelines.segmentation import (
    Layer,
    Provenance,
    provenance_summary,
    run_rules,
    segment,
    SegmentationContext,
)
from autorig.schemas.analysis import ClientAnalysis

from conftest import make_detection, make_props


def names(layers):
    return [l.name for l in layers]


def run(detection, props, analysis=None):
    return segment(detection, props, analysis, min_confidence=0.3, full_body_aspect_ratio=0.75)


class TestScenarios:
    """End-to-end layer sets for representative inputs."""

    def test_small_object_without_face(self):
        layers = run(make_detection(), make_props(10_000))

        assert names(layers) == ["background", "main_object", "object_details"]
        assert layers[1].provenance == Provenance.FALLBACK

    def test_large_realistic_portrait(self):
        layers = run(make_detection(face_count=1, style="realistic", style_confidence=0.8), make_props(600_000))

        assert names(layers) == [
            "background",
            "face_base", "left_eye", "right_eye", "nose", "mouth",
            "hair_front", "hair_back",
            "torso", "shirt", "left_arm", "right_arm", "left_leg", "right_leg", "pants", "shoes",
            "skin_texture", "shadows", "highlights",
        ]
        body = [l for l in layers if l.name == "left_leg"][0]
        assert body.provenance == Provenance.SIZE_HEURISTIC

    def test_cat_with_face(self):
        layers = run(make_detection(face_count=1, animals=[("cat", 0.9)]), make_props(100_000))

        assert names(layers) == [
            "background",
            "face_base", "left_eye", "right_eye", "nose", "mouth",
            "hair_front", "hair_back",
            "shirt", "torso", "left_arm", "right_arm",
            "cat_features", "cat_ears", "whiskers", "cat_tail",
        ]

    def test_animal_without_face_skips_object_fallback(self):
        layers = run(make_detection(animals=[("dog", 0.8)]), make_props(10_000))

        assert names(layers) == ["background", "dog_features", "dog_ears", "snout", "dog_tail"]

    def test_unknown_animal_gets_features_only(self):
        layers = run(make_detection(animals=[("fox", 0.8)]), make_props(10_000))

        assert names(layers) == ["background", "fox_features"]


class TestInvariants:

    @pytest.mark.parametrize("detection,size", [
        (make_detection(), 10_000),
        (make_detection(face_count=1), 2_000_000),
        (make_detection(animals=[("cat", 0.2)]), 100_000),
        (make_detection(people=[("person", 0.9)], clothing=[("jacket", 0.8)]), 700_000),
    ])
    def test_background_first_and_unique(self, detection, size):
        layers = run(detection, make_props(size))

        assert layers[0].name == "background"
        assert layers[0].provenance == Provenance.ALWAYS
        assert len(names(layers)) == len(set(names(layers)))

    def test_deterministic(self):
        detection = make_detection(face_count=1, accessories=[("hat", 0.7)], animals=[("cat", 0.6)])
        props = make_props(1_200_000, "anime_cat.png")

        assert run(detection, props) == run(detection, props)

    @pytest.mark.parametrize("detection", [
        make_detection(),
        make_detection(face_count=1),
        make_detection(face_count=1, style="anime"),
        make_detection(people=[("person", 0.9)]),
    ])
    def test_growing_upload_only_adds_layers(self, detection):
        sizes = [10_000, 100_000, 600_000, 1_500_000]
        layer_sets = [set(names(run(detection, make_props(size)))) for size in sizes]

        for smaller, larger in zip(layer_sets, layer_sets[1:]):
            assert smaller <= larger

    def test_layer_confidence_validated(self):
        with pytest.raises(ValueError):
            Layer("x", 1.5, Provenance.ALWAYS)


class TestFaceRule:

    def test_eye_and_mouth_counts_gate_layers(self):
        layers = run(make_detection(face_count=1, eyes=1, mouth=0), make_props(100_000))

        assert "left_eye" in names(layers)
        assert "right_eye" not in names(layers)
        assert "mouth" not in names(layers)
        assert "hair_front" in names(layers)

    def test_detector_face_confidence_is_used(self):
        layers = run(make_detection(face_count=1, confidence=0.64), make_props(100_000))

        assert [l.confidence for l in layers if l.name == "face_base"] == [0.64]


class TestBodyRule:

    def test_person_without_face_gets_bust(self):
        layers = run(make_detection(people=[("person", 0.9)]), make_props(100_000))

        assert names(layers) == ["background", "shirt", "torso", "left_arm", "right_arm"]
        assert all(l.provenance == Provenance.OBJECT_DETECTION for l in layers[1:])

    def test_low_confidence_person_is_not_a_character(self):
        layers = run(make_detection(people=[("person", 0.1)]), make_props(100_000))

        assert names(layers) == ["background", "main_object", "object_details"]

    def test_tall_client_aspect_ratio_means_full_body(self):
        analysis = ClientAnalysis.model_validate({"basicInfo": {"aspectRatio": 0.5}})
        layers = run(make_detection(face_count=1), make_props(100_000), analysis)

        legs = [l for l in layers if l.name == "left_leg"]
        assert legs and legs[0].provenance == Provenance.STYLE_HEURISTIC

    def test_client_large_image_means_full_body(self):
        analysis = ClientAnalysis.model_validate({"basicInfo": {"aspectRatio": 1.5, "isLargeImage": True}})
        layers = run(make_detection(face_count=1), make_props(100_000), analysis)

        assert {"left_leg", "pants", "shoes"} <= set(names(layers))

    def test_client_large_image_needs_character(self):
        analysis = ClientAnalysis.model_validate({"basicInfo": {"isLargeImage": True}})
        layers = run(make_detection(), make_props(100_000), analysis)

        assert names(layers) == ["background", "main_object", "object_details"]

    def test_wide_client_aspect_ratio_keeps_bust(self):
        analysis = ClientAnalysis.model_validate({"basicInfo": {"aspectRatio": 1.5}})
        layers = run(make_detection(face_count=1), make_props(100_000), analysis)

        assert "left_leg" not in names(layers)

    def test_clothing_detections_without_character(self):
        layers = run(make_detection(clothing=[("jacket", 0.8), ("scarf_like", 0.2)]), make_props(100_000))

        assert names(layers) == ["background", "jacket"]

    def test_clothing_duplicate_of_body_layer_is_skipped(self):
        layers = run(make_detection(face_count=1, clothing=[("shirt", 0.9)]), make_props(100_000))

        assert names(layers).count("shirt") == 1


class TestAccessoryRule:

    def test_detected_accessories_gated_by_confidence(self):
        layers = run(
            make_detection(face_count=1, accessories=[("hat", 0.7), ("watch", 0.29)]),
            make_props(100_000),
        )

        assert "hat" in names(layers)
        assert "watch" not in names(layers)

    def test_confidence_floor_is_inclusive(self):
        layers = run(make_detection(face_count=1, accessories=[("hat", 0.3)]), make_props(100_000))

        assert "hat" in names(layers)

    def test_detailed_upload_adds_jewellery(self):
        layers = run(make_detection(face_count=1), make_props(1_500_000))

        jewellery = [l for l in layers if l.name in ("earrings", "necklace", "bracelet")]
        assert [l.name for l in jewellery] == ["earrings", "necklace", "bracelet"]
        assert all(l.provenance == Provenance.SIZE_HEURISTIC for l in jewellery)

    def test_high_client_detail_adds_jewellery(self):
        analysis = ClientAnalysis.model_validate({"detailLevel": {"level": "High"}})
        layers = run(make_detection(face_count=1), make_props(100_000), analysis)

        assert "necklace" in names(layers)

    def test_detail_score_threshold(self):
        analysis = ClientAnalysis.model_validate({"detailLevel": {"score": 0.69}})
        layers = run(make_detection(face_count=1), make_props(100_000), analysis)

        assert "necklace" not in names(layers)

    def test_detailed_upload_adds_jewellery_without_character(self):
        layers = run(make_detection(), make_props(1_500_000))

        assert names(layers) == [
            "background", "earrings", "necklace", "bracelet", "main_object", "object_details",
        ]

    def test_high_client_detail_needs_character(self):
        analysis = ClientAnalysis.model_validate({"detailLevel": {"level": "high"}})
        layers = run(make_detection(), make_props(100_000), analysis)

        assert "necklace" not in names(layers)


class TestStyleRule:

    def test_detector_style_wins_over_hints(self):
        analysis = ClientAnalysis.model_validate({"styleClassification": {"style": "realistic"}})
        layers = run(make_detection(face_count=1, style="anime"), make_props(100_000, "photo.png"), analysis)

        assert "anime_eyes" in names(layers)
        assert "skin_texture" not in names(layers)

    def test_client_style_used_when_detector_unsure(self):
        analysis = ClientAnalysis.model_validate({"styleClassification": {"style": "Anime"}})
        layers = run(make_detection(face_count=1), make_props(100_000), analysis)

        assert names(layers)[-2:] == ["anime_eyes", "blush"]

    def test_filename_hint_as_last_resort(self):
        layers = run(make_detection(face_count=1), make_props(100_000, "my_portrait.jpg"))

        assert "shadows" in names(layers)

    def test_no_style_layers_when_undecided(self):
        layers = run(make_detection(face_count=1), make_props(100_000, "img_001.png"))

        assert not {"anime_eyes", "skin_texture"} & set(names(layers))


class TestRuleEngine:

    def test_undetected_layer_does_not_block_later_duplicate(self):
        ctx = SegmentationContext(
            detection=make_detection(),
            props=make_props(),
            analysis=None,
            min_confidence=0.3,
            full_body_aspect_ratio=0.75,
        )
        rules = (
            ("first", lambda c, e: [Layer("hat", 0.1, Provenance.ACCESSORY_DETECTION, detected=False)]),
            ("second", lambda c, e: [Layer("hat", 0.9, Provenance.ACCESSORY_DETECTION)]),
            ("third", lambda c, e: [Layer("hat", 0.5, Provenance.STYLE_HEURISTIC)]),
        )

        tentative = run_rules(ctx, rules)

        assert [(l.confidence, l.detected) for l in tentative] == [(0.1, False), (0.9, True)]

    def test_provenance_summary(self):
        layers = run(make_detection(), make_props(10_000))

        assert provenance_summary(layers) == {"always": 1, "fallback": 2}
