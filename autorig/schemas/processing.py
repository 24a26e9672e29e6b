"""
Processing Schemas

Response models for the /process-image endpoint.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class LayerResponse(BaseModel):
    """Single layer in the decomposition."""

    name: str = Field(description="Layer name, unique within the response")
    confidence: float = Field(ge=0.0, le=1.0, description="Layer confidence")
    provenance: str = Field(description="Rule or source that produced the layer")
    url: str = Field(description="URL of the rendered layer image")


class BoneResponse(BaseModel):
    """Single rig joint."""

    name: str = Field(description="Bone name (root first)")
    position: List[float] = Field(description="Position [x, y, z]; z is 0 for planar rigs")
    parentName: Optional[str] = Field(default=None, description="Parent bone name (None for root)")


class RiggedModelResponse(BaseModel):
    """Rig derived from the layer set."""

    bones: List[BoneResponse] = Field(description="Bones in creation order")
    animations: List[str] = Field(description="Supported animation identifiers")
    quality: str = Field(description="basic | standard | medium | high | professional")
    complexity: str = Field(description="low | medium | high")
    rigType: str = Field(description="character | animal | hybrid | mascot | object | generic | unknown")


class ProcessingInfo(BaseModel):
    """How the result was produced."""

    aiUsed: bool = Field(description="Whether live detection contributed")
    fallback: bool = Field(description="Whether any fallback data was substituted")
    fallbackReason: Optional[str] = Field(default=None, description="Why fallback data was used")
    processingTime: int = Field(description="Processing time in milliseconds")
    detectors: List[str] = Field(default_factory=list, description="Configured detector kinds")
    failedDetectors: Dict[str, str] = Field(
        default_factory=dict,
        description="Failure reason per failed detector kind"
    )
    sourceConfidence: float = Field(description="Overall detection confidence")
    clientAnalysisUsed: bool = Field(description="Whether frontendAnalysis was applied")
    layerCount: int
    boneCount: int
    layerProvenance: Dict[str, int] = Field(
        default_factory=dict,
        description="Number of layers per provenance"
    )


class ProcessImageResponse(BaseModel):
    """Response model for /process-image."""

    layers: List[LayerResponse]
    riggedModel: RiggedModelResponse
    processingInfo: ProcessingInfo

    class Config:
        json_schema_extra = {
            "example": {
                "layers": [
                    {"name": "background", "confidence": 0.95, "provenance": "always",
                     "url": "/processed/background.png"},
                    {"name": "main_object", "confidence": 0.8, "provenance": "fallback",
                     "url": "/processed/main_object.png"},
                ],
                "riggedModel": {
                    "bones": [{"name": "root", "position": [0.0, 0.0, 0.0], "parentName": None}],
                    "animations": ["idle", "bounce"],
                    "quality": "basic",
                    "complexity": "low",
                    "rigType": "object",
                },
                "processingInfo": {
                    "aiUsed": False,
                    "fallback": True,
                    "fallbackReason": "timeout",
                    "processingTime": 12,
                    "sourceConfidence": 0.5,
                    "clientAnalysisUsed": False,
                    "layerCount": 3,
                    "boneCount": 8,
                },
            }
        }


__all__ = [
    "LayerResponse",
    "BoneResponse",
    "RiggedModelResponse",
    "ProcessingInfo",
    "ProcessImageResponse",
]
