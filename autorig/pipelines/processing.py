"""
Processing Pipeline

End-to-end request flow:
    image properties -> detection (or fallback) -> segmentation -> rig
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from autorig.core.config import settings
from autorig.core.exceptions import DetectionError, PipelineError
from autorig.core.logger import get_logger
from autorig.ml.client import DetectionClient
from autorig.ml.normalize import merge_sections, normalize_payload
from autorig.ml.results import DetectionResult
from autorig.schemas.analysis import ClientAnalysis

from .fallback import FallbackStrategy
from .image_properties import ImageProperties, analyze_image
from .rigging import RiggedModel, generate_rig, is_valid_tree
from .segmentation import Layer, provenance_summary, segment

logger = get_logger(__name__)


@dataclass
class DetectionOutcome:
    """Detection result plus how it was obtained."""
    detection: DetectionResult
    used_fallback: bool = False
    fallback_reason: Optional[str] = None
    detectors: List[str] = field(default_factory=list)
    failed_detectors: Dict[str, str] = field(default_factory=dict)


@dataclass
class ProcessingResult:
    """Result of processing one uploaded image."""
    layers: Tuple[Layer, ...]
    rig: RiggedModel
    props: ImageProperties
    outcome: DetectionOutcome
    client_analysis_used: bool = False
    started_at: float = 0.0
    finished_at: float = 0.0

    @property
    def processing_time_ms(self) -> int:
        return int(round((self.finished_at - self.started_at) * 1000))

    def processing_info(self) -> Dict[str, Any]:
        return {
            "aiUsed": self.outcome.detection.used_live_detection,
            "fallback": self.outcome.used_fallback,
            "fallbackReason": self.outcome.fallback_reason,
            "processingTime": self.processing_time_ms,
            "detectors": self.outcome.detectors,
            "failedDetectors": self.outcome.failed_detectors,
            "sourceConfidence": self.outcome.detection.source_confidence,
            "clientAnalysisUsed": self.client_analysis_used,
            "layerCount": len(self.layers),
            "boneCount": len(self.rig.bones),
            "layerProvenance": provenance_summary(self.layers),
        }


def detect_with_fallback(
    image_bytes: bytes,
    props: ImageProperties,
    detection_client: Optional[DetectionClient],
    fallback: FallbackStrategy,
) -> DetectionOutcome:
    """
    Run live detection, substituting fallback data for whatever fails.

    A detector that fails while its siblings succeed is replaced by its
    individual fallback section; if every detector fails (or none is
    configured) the whole result comes from the fallback strategy.
    """
    if detection_client is None or not detection_client.kinds:
        return DetectionOutcome(
            detection=fallback.substitute(props, "no detector configured"),
            used_fallback=True,
            fallback_reason="no detector configured",
        )

    gathered = detection_client.gather(image_bytes)
    failed = {kind: error.reason.value for kind, error in gathered.errors.items()}

    if gathered.all_failed:
        first = next(iter(gathered.errors.values()))
        return DetectionOutcome(
            detection=fallback.substitute(props, str(first)),
            used_fallback=True,
            fallback_reason=first.reason.value,
            detectors=detection_client.kinds,
            failed_detectors=failed,
        )

    sections = dict(gathered.sections)
    for kind in gathered.errors:
        sections[kind] = fallback.section(kind, props)

    # Live sections take precedence over substituted ones
    ordered = [sections[k] for k in gathered.sections] + [sections[k] for k in gathered.errors]
    merged = merge_sections(ordered)

    try:
        detection = normalize_payload(merged, used_live_detection=True)
    except DetectionError as e:
        return DetectionOutcome(
            detection=fallback.substitute(props, str(e)),
            used_fallback=True,
            fallback_reason=e.reason.value,
            detectors=detection_client.kinds,
            failed_detectors=failed,
        )

    return DetectionOutcome(
        detection=detection,
        used_fallback=bool(failed),
        fallback_reason=", ".join(f"{k}: {v}" for k, v in failed.items()) or None,
        detectors=detection_client.kinds,
        failed_detectors=failed,
    )


def process_image(
    image_bytes: bytes,
    filename: Optional[str] = None,
    client_analysis: Optional[ClientAnalysis] = None,
    detection_client: Optional[DetectionClient] = None,
    fallback: Optional[FallbackStrategy] = None,
    props: Optional[ImageProperties] = None,
) -> ProcessingResult:
    """
    Process an uploaded image into layers and a rig.

    Args:
        image_bytes: Raw upload contents
        filename: Original filename
        client_analysis: Parsed frontend analysis (or None)
        detection_client: Live detection client (None = fallback only)
        fallback: Fallback strategy (default instance when omitted)
        props: Precomputed image properties (analyzed from bytes when omitted)

    Raises:
        UploadError / InvalidImageError: unusable upload
        PipelineError: segmentation or rig generation broke its contract
    """
    started = time.time()
    fallback = fallback or FallbackStrategy()
    props = props or analyze_image(image_bytes, filename)

    outcome = detect_with_fallback(image_bytes, props, detection_client, fallback)

    layers: Tuple[Layer, ...] = ()
    try:
        layers = segment(
            outcome.detection,
            props,
            client_analysis,
            min_confidence=settings.heuristics.min_layer_confidence,
            full_body_aspect_ratio=settings.heuristics.full_body_aspect_ratio,
        )
        if not layers or layers[0].name != "background":
            raise PipelineError("segmentation", details="background layer missing")
    except PipelineError:
        logger.error(f"Segmentation contract violated: detection={outcome.detection.to_dict()}")
        raise
    except Exception as e:
        logger.exception(f"Segmentation failed: detection={outcome.detection.to_dict()}")
        raise PipelineError("segmentation", details=str(e))

    try:
        rig = generate_rig(layers)
        if not is_valid_tree(rig.bones):
            raise PipelineError("rigging", details="bone hierarchy is not a tree rooted at root")
    except PipelineError:
        logger.error(f"Rig contract violated: layers={[l.name for l in layers]}")
        raise
    except Exception as e:
        logger.exception(f"Rig generation failed: layers={[l.name for l in layers]}")
        raise PipelineError("rigging", details=str(e))

    result = ProcessingResult(
        layers=layers,
        rig=rig,
        props=props,
        outcome=outcome,
        client_analysis_used=client_analysis is not None,
        started_at=started,
        finished_at=time.time(),
    )
    logger.info(
        f"Processed {filename or 'upload'}: {len(layers)} layers, {len(rig.bones)} bones, "
        f"rig={rig.rig_type}, quality={rig.quality}, ai={outcome.detection.used_live_detection}"
    )
    return result


__all__ = [
    "DetectionOutcome",
    "ProcessingResult",
    "detect_with_fallback",
    "process_image",
]
