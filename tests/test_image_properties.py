"""
Tests for file-derived image properties and upload reading.
"""

import io

import pytest

from autorig.core.config import HeuristicSettings
from autorig.core.exceptions import InvalidImageError, UploadError
from autorig.pipelines.image_properties import (
    analyze_image,
    classify_size,
    name_tokens,
    properties_from_size,
)
from autorig.utils.image_loader import load_from_path, read_upload

from conftest import THRESHOLDS, png_bytes


class TestSizeClasses:

    @pytest.mark.parametrize("size,small,large,detailed", [
        (1, True, False, False),
        (49_999, True, False, False),
        (50_000, False, False, False),
        (500_000, False, False, False),
        (500_001, False, True, False),
        (1_000_000, False, True, False),
        (1_000_001, False, True, True),
    ])
    def test_cutoffs(self, size, small, large, detailed):
        flags = classify_size(size, THRESHOLDS)

        assert flags == {"is_small": small, "is_large": large, "is_detailed": detailed}

    def test_custom_thresholds(self):
        thresholds = HeuristicSettings(small_image_bytes=10, large_image_bytes=20, detailed_image_bytes=30)

        assert properties_from_size(25, thresholds=thresholds).is_large

    def test_detailed_cutoff_below_large_rejected(self):
        with pytest.raises(ValueError):
            HeuristicSettings(large_image_bytes=1000, detailed_image_bytes=500)

    def test_zero_size_rejected(self):
        with pytest.raises(ValueError):
            properties_from_size(0, thresholds=THRESHOLDS)


class TestNameTokens:

    def test_tokens_from_stem(self):
        assert name_tokens("My_Anime-Portrait 02.PNG") == frozenset({"my", "anime", "portrait", "02"})

    def test_no_filename(self):
        assert name_tokens(None) == frozenset()

    def test_directory_is_ignored(self):
        assert name_tokens("photos/cat.jpg") == frozenset({"cat"})


class TestAnalyzeImage:

    def test_decodes_dimensions_and_format(self):
        props = analyze_image(png_bytes(30, 60), "hero.png", thresholds=THRESHOLDS)

        assert (props.width, props.height) == (30, 60)
        assert props.image_format == "png"
        assert props.aspect_ratio == 0.5
        assert props.is_small
        assert props.name_hints == frozenset({"hero"})

    def test_empty_upload(self):
        with pytest.raises(UploadError):
            analyze_image(b"", thresholds=THRESHOLDS)

    def test_undecodable_bytes(self):
        with pytest.raises(InvalidImageError):
            analyze_image(b"definitely not an image", thresholds=THRESHOLDS)

    def test_disallowed_format(self):
        with pytest.raises(InvalidImageError) as exc_info:
            analyze_image(png_bytes(), thresholds=THRESHOLDS, allowed_formats=frozenset({"jpeg"}))

        assert "Unsupported" in exc_info.value.message


class _Upload:
    """Minimal stand-in for fastapi.UploadFile."""

    def __init__(self, data, filename="upload.png"):
        self.file = io.BytesIO(data)
        self.filename = filename


class TestReadUpload:

    def test_missing_file(self):
        with pytest.raises(UploadError) as exc_info:
            read_upload(None)

        assert exc_info.value.message == "No file uploaded"

    def test_empty_file(self):
        with pytest.raises(UploadError):
            read_upload(_Upload(b""))

    def test_too_large(self):
        with pytest.raises(InvalidImageError):
            read_upload(_Upload(b"x" * 11), max_bytes=10)

    def test_returns_contents_and_name(self):
        assert read_upload(_Upload(b"abc", "a.png")) == (b"abc", "a.png")


class TestLoadFromPath:

    def test_reads_file(self, tmp_path):
        path = tmp_path / "cat.png"
        path.write_bytes(b"data")

        assert load_from_path(str(path)) == (b"data", "cat.png")

    def test_missing_file(self, tmp_path):
        with pytest.raises(UploadError):
            load_from_path(str(tmp_path / "nope.png"))
