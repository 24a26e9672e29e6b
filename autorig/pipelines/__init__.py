"""
Pipelines Module

Business logic for image analysis, segmentation and rig generation.
Separates the derivation engine from API route handling.
"""

from .image_properties import ImageProperties, analyze_image, properties_from_size
from .fallback import FallbackStrategy
from .segmentation import Layer, Provenance, segment
from .rigging import Bone, RiggedModel, generate_rig, is_valid_tree
from .processing import DetectionOutcome, ProcessingResult, detect_with_fallback, process_image

__all__ = [
    # Image properties
    "ImageProperties",
    "analyze_image",
    "properties_from_size",
    # Fallback
    "FallbackStrategy",
    # Segmentation
    "Layer",
    "Provenance",
    "segment",
    # Rigging
    "Bone",
    "RiggedModel",
    "generate_rig",
    "is_valid_tree",
    # Processing
    "DetectionOutcome",
    "ProcessingResult",
    "detect_with_fallback",
    "process_image",
]
