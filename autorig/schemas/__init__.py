"""
Pydantic Schemas for AutoRig API

Contains request/response models for all API endpoints.
"""

from .analysis import (
    BasicInfo,
    ColorAnalysis,
    ShapeDetection,
    ClientStyle,
    DetailLevel,
    ClientAnalysis,
    parse_client_analysis,
)
from .processing import (
    LayerResponse,
    BoneResponse,
    RiggedModelResponse,
    ProcessingInfo,
    ProcessImageResponse,
)
from .common import (
    RootResponse,
    HealthResponse,
    DetectorStatusResponse,
    ErrorResponse,
)

__all__ = [
    # Client analysis
    "BasicInfo",
    "ColorAnalysis",
    "ShapeDetection",
    "ClientStyle",
    "DetailLevel",
    "ClientAnalysis",
    "parse_client_analysis",
    # Processing
    "LayerResponse",
    "BoneResponse",
    "RiggedModelResponse",
    "ProcessingInfo",
    "ProcessImageResponse",
    # Common
    "RootResponse",
    "HealthResponse",
    "DetectorStatusResponse",
    "ErrorResponse",
]
