"""
API Routes

HTTP endpoints for image processing, health and detector status.
"""

import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from autorig.core.config import settings
from autorig.core.exceptions import ClientAnalysisParseError, UploadError
from autorig.core.logger import get_logger
from autorig.core.state import AppState
from autorig.ml.client import DetectionClient
from autorig.pipelines import FallbackStrategy, ProcessingResult, process_image
from autorig.schemas import (
    BoneResponse,
    DetectorStatusResponse,
    ErrorResponse,
    HealthResponse,
    LayerResponse,
    ProcessImageResponse,
    ProcessingInfo,
    RiggedModelResponse,
    RootResponse,
    parse_client_analysis,
)
from autorig.utils.image_loader import read_upload

from .deps import get_detection_client, get_fallback_strategy, get_state

logger = get_logger(__name__)

router = APIRouter()


def layer_url(name: str) -> str:
    return f"{settings.image.processed_url_prefix.rstrip('/')}/{name}.png"


def build_response(result: ProcessingResult) -> ProcessImageResponse:
    """Convert a ProcessingResult into the API response model."""
    rig = result.rig
    return ProcessImageResponse(
        layers=[
            LayerResponse(
                name=layer.name,
                confidence=layer.confidence,
                provenance=layer.provenance.value,
                url=layer_url(layer.name),
            )
            for layer in result.layers
        ],
        riggedModel=RiggedModelResponse(
            bones=[
                BoneResponse(name=b.name, position=list(b.position), parentName=b.parent_name)
                for b in rig.bones
            ],
            animations=list(rig.animations),
            quality=rig.quality,
            complexity=rig.complexity,
            rigType=rig.rig_type,
        ),
        processingInfo=ProcessingInfo(**result.processing_info()),
    )


# =============================================================================
# HEALTH ENDPOINTS
# =============================================================================

@router.get("/", response_model=RootResponse, tags=["Health"])
async def root():
    return RootResponse()


@router.get("/health", response_model=HealthResponse, tags=["Health"])
@router.get("/api/v1/health", response_model=HealthResponse, tags=["Health"])
async def health():
    """Health check endpoint."""
    return HealthResponse(
        status="ok",
        time=datetime.datetime.now(datetime.timezone.utc).isoformat().replace("+00:00", "Z")
    )


@router.get("/api/v1/detectors", response_model=DetectorStatusResponse, tags=["Health"])
async def detector_status(state: AppState = Depends(get_state)):
    """Configured detectors and polling bounds."""
    client = state.detection_client
    if client is None:
        return DetectorStatusResponse(
            available=False,
            requests_processed=state.requests_processed,
            fallback_count=state.fallback_count,
        )
    return DetectorStatusResponse(
        available=True,
        detectors=client.kinds,
        poll_interval=client.poll_interval,
        max_attempts=client.max_attempts,
        max_wait_seconds=client.max_wait_seconds,
        requests_processed=state.requests_processed,
        fallback_count=state.fallback_count,
    )


# =============================================================================
# PROCESSING ENDPOINTS
# =============================================================================

@router.post(
    "/process-image",
    response_model=ProcessImageResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    tags=["Processing"],
)
@router.post(
    "/api/v1/process-image",
    response_model=ProcessImageResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    tags=["Processing"],
)
async def process_image_api(
    image: UploadFile = File(None),
    frontendAnalysis: Optional[str] = Form(None),
    detection_client: Optional[DetectionClient] = Depends(get_detection_client),
    fallback: FallbackStrategy = Depends(get_fallback_strategy),
    state: AppState = Depends(get_state),
):
    """
    Segment an uploaded image into layers and derive a matching rig.

    Detection failures fall back to size-based heuristics; a malformed
    `frontendAnalysis` field is ignored.
    """
    contents, filename = read_upload(image, settings.image.max_upload_bytes)
    logger.info(f"File received: {filename} ({len(contents)} bytes)")

    client_analysis = None
    try:
        client_analysis = parse_client_analysis(frontendAnalysis)
    except ClientAnalysisParseError as e:
        logger.warning(f"Ignoring frontendAnalysis: {e}")

    try:
        result = await run_in_threadpool(
            process_image,
            contents,
            filename,
            client_analysis,
            detection_client,
            fallback,
        )
    except UploadError:
        raise
    except Exception as e:
        logger.error(f"Processing error: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": f"Processing failed: {e}", "fallback": True},
        )

    state.record_request(result.outcome.used_fallback)
    return build_response(result)


__all__ = ["router", "build_response", "layer_url"]
