"""
Detection Client

Drives detector jobs through submit + bounded polling and normalizes the
results. Independent detectors (face / objects / style) run concurrently
and are joined before segmentation; a failing detector never cancels its
siblings.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional

from autorig.core.config import DetectorSettings
from autorig.core.exceptions import DetectionError, DetectionFailureReason
from autorig.core.logger import get_logger

from .detectors import Detector, ReplicateDetector
from .normalize import SECTIONS_BY_KIND, merge_sections, normalize_payload, split_output
from .results import DetectionResult

logger = get_logger(__name__)

DEFAULT_POLL_INTERVAL = 2.0
MAX_POLL_ATTEMPTS = 30


@dataclass
class GatherResult:
    """Per-kind outcome of running all configured detectors."""
    sections: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    errors: Dict[str, DetectionError] = field(default_factory=dict)

    @property
    def any_succeeded(self) -> bool:
        return bool(self.sections)

    @property
    def all_failed(self) -> bool:
        return not self.sections

    def merged_payload(self) -> Dict[str, Any]:
        return merge_sections(self.sections.values())


class DetectionClient:
    """
    Runs one or more detectors against an image.

    Args:
        detectors: Mapping of detector kind ("face", "objects", "style" or
            "combined") to adapter
        poll_interval: Seconds to wait before each poll
        max_attempts: Number of polls per job before giving up (at most 30)
        sleep: Sleep function, injectable for tests
    """

    def __init__(
        self,
        detectors: Mapping[str, Detector],
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_attempts: int = MAX_POLL_ATTEMPTS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        unknown = set(detectors) - set(SECTIONS_BY_KIND)
        if unknown:
            raise ValueError(f"Unknown detector kinds: {sorted(unknown)}")
        if not 1 <= max_attempts <= MAX_POLL_ATTEMPTS:
            raise ValueError(f"max_attempts must be between 1 and {MAX_POLL_ATTEMPTS}")
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self.detectors = dict(detectors)
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self._sleep = sleep

    @property
    def kinds(self):
        return list(self.detectors)

    @property
    def max_wait_seconds(self) -> float:
        return self.poll_interval * self.max_attempts

    def run_job(self, kind: str, detector: Detector, image_bytes: bytes) -> Any:
        """
        Submit an image and poll until the job settles.

        Returns:
            The raw output of the succeeded job

        Raises:
            DetectionError: job failed, polling was exhausted, or the
                provider misbehaved
        """
        try:
            job_id = detector.submit(image_bytes)
        except DetectionError:
            raise
        except Exception as e:
            raise DetectionError(
                DetectionFailureReason.UPSTREAM_FAILURE,
                message="Submit failed",
                detector=kind,
                details=str(e),
            )

        for attempt in range(1, self.max_attempts + 1):
            self._sleep(self.poll_interval)
            try:
                status = detector.poll(job_id)
            except DetectionError:
                raise
            except Exception as e:
                raise DetectionError(
                    DetectionFailureReason.UPSTREAM_FAILURE,
                    message="Poll failed",
                    detector=kind,
                    details=str(e),
                )

            if status.succeeded:
                logger.debug(f"{kind}: job {job_id} succeeded after {attempt} poll(s)")
                return status.output
            if not status.is_pending:
                raise DetectionError(
                    DetectionFailureReason.UPSTREAM_FAILURE,
                    message="Detector job failed",
                    detector=kind,
                    details=status.error,
                )

        raise DetectionError(
            DetectionFailureReason.TIMEOUT,
            message=f"Job {job_id} still pending after {self.max_attempts} polls",
            detector=kind,
        )

    def _run_kind(self, kind: str, image_bytes: bytes) -> Dict[str, Any]:
        output = self.run_job(kind, self.detectors[kind], image_bytes)
        if output is None:
            raise DetectionError(
                DetectionFailureReason.MALFORMED_RESPONSE,
                message="Succeeded job returned no output",
                detector=kind,
            )
        return split_output(kind, output)

    def gather(self, image_bytes: bytes) -> GatherResult:
        """
        Run every configured detector concurrently and wait for all of them.

        Failures are collected per kind instead of raised.
        """
        result = GatherResult()
        if not self.detectors:
            return result

        with ThreadPoolExecutor(
            max_workers=len(self.detectors),
            thread_name_prefix="detector",
        ) as executor:
            futures = {
                kind: executor.submit(self._run_kind, kind, image_bytes)
                for kind in self.detectors
            }
            for kind, future in futures.items():
                try:
                    result.sections[kind] = future.result()
                except DetectionError as e:
                    logger.warning(f"Detector '{kind}' failed: {e}")
                    result.errors[kind] = e

        return result

    def detect(self, image_bytes: bytes) -> DetectionResult:
        """
        Run all detectors and normalize their combined output.

        Raises:
            DetectionError: no detector is configured or none succeeded
        """
        if not self.detectors:
            raise DetectionError(
                DetectionFailureReason.UPSTREAM_FAILURE,
                message="No detector configured",
            )

        gathered = self.gather(image_bytes)
        if gathered.all_failed:
            raise next(iter(gathered.errors.values()))

        return normalize_payload(gathered.merged_payload(), used_live_detection=True)


def build_detection_client(
    detector_settings: DetectorSettings,
    sleep: Callable[[float], None] = time.sleep,
) -> Optional[DetectionClient]:
    """
    Build a DetectionClient from settings.

    Returns None when detection is disabled (no provider, token or model).
    """
    if not detector_settings.enabled:
        logger.warning("Live detection disabled: no provider token configured")
        return None

    if detector_settings.provider != "replicate":
        logger.warning(f"Unsupported detector provider '{detector_settings.provider}'")
        return None

    versions = detector_settings.model_versions
    if not versions:
        logger.warning("Live detection disabled: no detector models configured")
        return None

    detectors = {
        kind: ReplicateDetector(
            model_version=version,
            api_token=detector_settings.api_token,
            base_url=detector_settings.base_url,
            timeout=detector_settings.request_timeout,
            name=kind,
        )
        for kind, version in versions.items()
    }
    logger.info(f"Detection client ready: {', '.join(detectors)}")
    return DetectionClient(
        detectors,
        poll_interval=detector_settings.poll_interval,
        max_attempts=detector_settings.max_attempts,
        sleep=sleep,
    )


__all__ = [
    "DEFAULT_POLL_INTERVAL",
    "MAX_POLL_ATTEMPTS",
    "GatherResult",
    "DetectionClient",
    "build_detection_client",
]
