"""
Shared fixtures and fakes for the AutoRig test suite.
"""

import io
import random

import pytest
from PIL import Image

from autorig.core.config import HeuristicSettings
from autorig.ml.client import DetectionClient
from autorig.ml.detectors import JOB_FAILED, JOB_PENDING, JOB_SUCCEEDED, JobStatus
from autorig.ml.results import (
    DetectedObject,
    DetectionResult,
    FacialFeatures,
    StyleClassification,
)
from autorig.pipelines.image_properties import properties_from_size


THRESHOLDS = HeuristicSettings(
    small_image_bytes=50_000,
    large_image_bytes=500_000,
    detailed_image_bytes=1_000_000,
    min_layer_confidence=0.3,
    full_body_aspect_ratio=0.75,
)


class ScriptedDetector:
    """Detector fake that replays a fixed list of poll statuses."""

    def __init__(self, statuses, submit_error=None):
        self.statuses = list(statuses)
        self.submit_error = submit_error
        self.submitted = []
        self.polls = 0

    def submit(self, image_bytes):
        if self.submit_error is not None:
            raise self.submit_error
        self.submitted.append(image_bytes)
        return f"job-{len(self.submitted)}"

    def poll(self, job_id):
        index = min(self.polls, len(self.statuses) - 1)
        self.polls += 1
        return self.statuses[index]


def pending():
    return JobStatus(state=JOB_PENDING)


def succeeded(output):
    return JobStatus(state=JOB_SUCCEEDED, output=output)


def failed(error="boom"):
    return JobStatus(state=JOB_FAILED, error=error)


class SleepRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def sleep():
    return SleepRecorder()


@pytest.fixture
def make_client(sleep):
    def _make(detectors, max_attempts=30, poll_interval=2.0):
        return DetectionClient(
            detectors,
            poll_interval=poll_interval,
            max_attempts=max_attempts,
            sleep=sleep,
        )
    return _make


def make_props(byte_size=100_000, filename=None):
    return properties_from_size(byte_size, filename=filename, thresholds=THRESHOLDS)


def make_detection(
    face_count=0,
    confidence=None,
    eyes=2,
    mouth=1,
    style="unknown",
    style_confidence=0.0,
    used_live_detection=True,
    **objects,
):
    """DetectionResult builder; object categories are passed as lists of (type, conf)."""
    facial = FacialFeatures()
    if face_count:
        facial = FacialFeatures(has_face=True, eye_count=eyes, mouth_count=mouth, confidence=confidence)
    return DetectionResult(
        face_count=face_count,
        facial_features=facial,
        objects={
            category: [DetectedObject(type=t, confidence=c) for t, c in items]
            for category, items in objects.items()
        },
        style=StyleClassification(style=style, confidence=style_confidence),
        source_confidence=0.8,
        used_live_detection=used_live_detection,
    )


def png_bytes(width=8, height=8, noise=False):
    """Encode a PNG; noisy images do not compress and so stay large."""
    if noise:
        data = random.Random(42).getrandbits(8 * width * height * 3).to_bytes(width * height * 3, "little")
        img = Image.frombytes("RGB", (width, height), data)
    else:
        img = Image.new("RGB", (width, height), (200, 120, 40))
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def small_png():
    return png_bytes()


@pytest.fixture
def noisy_png():
    # ~120 KB: above the small cutoff, below the large one
    return png_bytes(200, 200, noise=True)
