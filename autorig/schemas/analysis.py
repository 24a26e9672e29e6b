"""
Client Analysis Schemas

Optional visual-analysis report computed in the browser and sent along with
the upload as the `frontendAnalysis` form field. Every section and field is
optional; unknown keys are ignored.
"""

import json
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from autorig.core.exceptions import ClientAnalysisParseError
from autorig.core.logger import get_logger

logger = get_logger(__name__)


class _AnalysisSection(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class BasicInfo(_AnalysisSection):
    width: Optional[float] = Field(default=None, ge=0)
    height: Optional[float] = Field(default=None, ge=0)
    aspect_ratio: Optional[float] = Field(default=None, alias="aspectRatio", gt=0)
    total_pixels: Optional[float] = Field(default=None, alias="totalPixels", ge=0)
    is_large_image: Optional[bool] = Field(default=None, alias="isLargeImage")

    @property
    def effective_aspect_ratio(self) -> Optional[float]:
        """Reported aspect ratio, else width / height when both are known."""
        if self.aspect_ratio:
            return self.aspect_ratio
        if self.width and self.height:
            return self.width / self.height
        return None


class ColorAnalysis(_AnalysisSection):
    color_complexity: Optional[float] = Field(default=None, alias="colorComplexity")


class ShapeDetection(_AnalysisSection):
    circular_regions: Optional[int] = Field(default=None, alias="circularRegions", ge=0)
    triangular_regions: Optional[int] = Field(default=None, alias="triangularRegions", ge=0)


class ClientStyle(_AnalysisSection):
    style: Optional[str] = None


class DetailLevel(_AnalysisSection):
    level: Optional[str] = None
    score: Optional[float] = None


class ClientAnalysis(_AnalysisSection):
    """Browser-side analysis report (all fields optional)."""

    basic_info: Optional[BasicInfo] = Field(default=None, alias="basicInfo")
    color_analysis: Optional[ColorAnalysis] = Field(default=None, alias="colorAnalysis")
    shape_detection: Optional[ShapeDetection] = Field(default=None, alias="shapeDetection")
    style_classification: Optional[ClientStyle] = Field(default=None, alias="styleClassification")
    detail_level: Optional[DetailLevel] = Field(default=None, alias="detailLevel")

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        json_schema_extra={
            "example": {
                "basicInfo": {"width": 600, "height": 1200, "aspectRatio": 0.5},
                "styleClassification": {"style": "anime"},
                "detailLevel": {"level": "high", "score": 0.8},
            }
        },
    )

    @property
    def aspect_ratio(self) -> Optional[float]:
        if self.basic_info is None:
            return None
        return self.basic_info.effective_aspect_ratio

    @property
    def style(self) -> Optional[str]:
        if self.style_classification is None or not self.style_classification.style:
            return None
        return self.style_classification.style.strip().lower()


def parse_client_analysis(raw: Optional[str]) -> Optional[ClientAnalysis]:
    """
    Parse the `frontendAnalysis` form field.

    Returns None for an absent or blank field. Sections are validated one
    at a time; a section with invalid fields is dropped with a warning and
    the remaining sections are kept.

    Raises:
        ClientAnalysisParseError: not JSON or not a JSON object
    """
    if raw is None or not raw.strip():
        return None
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise ClientAnalysisParseError(details=str(e))
    if not isinstance(data, dict):
        raise ClientAnalysisParseError(details="expected a JSON object")

    sections = {}
    for name, field in ClientAnalysis.model_fields.items():
        key = field.alias if field.alias in data else name
        if data.get(key) is None:
            continue
        try:
            section = ClientAnalysis.model_validate({key: data[key]})
        except ValidationError as e:
            logger.warning(f"Ignoring client analysis section '{key}': {e.error_count()} invalid field(s)")
            continue
        sections[name] = getattr(section, name)

    return ClientAnalysis(**sections)


__all__ = [
    "BasicInfo",
    "ColorAnalysis",
    "ShapeDetection",
    "ClientStyle",
    "DetailLevel",
    "ClientAnalysis",
    "parse_client_analysis",
]
