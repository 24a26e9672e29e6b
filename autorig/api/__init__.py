"""
API Module

HTTP routes and dependencies for the AutoRig service.
"""

from .routes import router as api_router

__all__ = ["api_router"]
