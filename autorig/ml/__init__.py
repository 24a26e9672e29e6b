"""
ML Module

Detector capability adapters, the polling detection client, and the
normalized detection result types.
"""

from .results import (
    DetectedObject,
    FacialFeatures,
    StyleClassification,
    DetectionResult,
)
from .detectors import Detector, JobStatus, ReplicateDetector
from .client import DetectionClient, GatherResult, build_detection_client
from .normalize import normalize_payload, split_output

__all__ = [
    # Results
    "DetectedObject",
    "FacialFeatures",
    "StyleClassification",
    "DetectionResult",
    # Detectors
    "Detector",
    "JobStatus",
    "ReplicateDetector",
    # Client
    "DetectionClient",
    "GatherResult",
    "build_detection_client",
    # Normalization
    "normalize_payload",
    "split_output",
]
