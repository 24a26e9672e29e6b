"""
API Dependencies

FastAPI dependency providers shared by the routes.
"""

from typing import Optional

from fastapi import Depends

from autorig.core.state import AppState, get_app_state
from autorig.ml.client import DetectionClient
from autorig.pipelines.fallback import FallbackStrategy


def get_state() -> AppState:
    return get_app_state()


def get_detection_client(state: AppState = Depends(get_state)) -> Optional[DetectionClient]:
    """Live detection client, or None when only fallback detection is available."""
    return state.detection_client


def get_fallback_strategy() -> FallbackStrategy:
    return FallbackStrategy()


__all__ = [
    "get_state",
    "get_detection_client",
    "get_fallback_strategy",
]
