"""
Custom Exceptions for AutoRig API

Provides domain-specific exceptions for better error handling and debugging.

Usage:
    from autorig.core.exceptions import DetectionError, DetectionFailureReason

    raise DetectionError(DetectionFailureReason.TIMEOUT, detector="face")
"""

from enum import Enum
from typing import Optional, Any


class AutoRigError(Exception):
    """
    Base exception for all AutoRig errors.

    All custom exceptions inherit from this class, allowing
    catch-all handling when needed.
    """

    def __init__(
        self,
        message: str = "AutoRig error occurred",
        details: Optional[Any] = None,
    ):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class UploadError(AutoRigError):
    """Raised when the request carries no usable image file."""

    def __init__(
        self,
        message: str = "No file uploaded",
        details: Optional[Any] = None,
    ):
        super().__init__(message, details)


class InvalidImageError(UploadError):
    """Raised when the uploaded file is not a decodable, supported image."""

    def __init__(
        self,
        message: str = "Invalid or unsupported image",
        details: Optional[Any] = None,
    ):
        super().__init__(message, details)


class DetectionFailureReason(str, Enum):
    TIMEOUT = "timeout"
    UPSTREAM_FAILURE = "upstream_failure"
    MALFORMED_RESPONSE = "malformed_response"


class DetectionError(AutoRigError):
    """
    Raised when an external detector cannot produce a usable result.

    Never surfaced to API callers: the pipeline substitutes the
    fallback detection result instead.
    """

    def __init__(
        self,
        reason: DetectionFailureReason,
        message: Optional[str] = None,
        detector: Optional[str] = None,
        details: Optional[Any] = None,
    ):
        self.reason = DetectionFailureReason(reason)
        self.detector = detector
        if message is None:
            message = f"Detection failed ({self.reason.value})"
        if detector:
            message = f"{message} [{detector}]"
        super().__init__(message, details)


class ClientAnalysisParseError(AutoRigError):
    """Raised when the client-supplied analysis report cannot be parsed."""

    def __init__(
        self,
        message: str = "Could not parse frontend analysis",
        details: Optional[Any] = None,
    ):
        super().__init__(message, details)


class PipelineError(AutoRigError):
    """Raised when segmentation or rig generation breaks its contract."""

    def __init__(
        self,
        stage: str,
        message: str = "Processing pipeline failed",
        details: Optional[Any] = None,
    ):
        self.stage = stage
        super().__init__(f"{message}: {stage}", details)


__all__ = [
    "AutoRigError",
    "UploadError",
    "InvalidImageError",
    "DetectionFailureReason",
    "DetectionError",
    "ClientAnalysisParseError",
    "PipelineError",
]
