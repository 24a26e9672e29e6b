"""
Core module for AutoRig API.

Contains centralized configuration, logging, exceptions, and application state.
"""

from .config import settings, get_settings, Settings
from .logger import logger, get_logger
from .exceptions import (
    AutoRigError,
    UploadError,
    InvalidImageError,
    DetectionFailureReason,
    DetectionError,
    ClientAnalysisParseError,
    PipelineError,
)

__all__ = [
    # Config
    "settings",
    "get_settings",
    "Settings",
    # Logger
    "logger",
    "get_logger",
    # Exceptions
    "AutoRigError",
    "UploadError",
    "InvalidImageError",
    "DetectionFailureReason",
    "DetectionError",
    "ClientAnalysisParseError",
    "PipelineError",
]
