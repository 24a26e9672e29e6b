"""
Application State Management

Provides a singleton AppState class to hold the objects built at startup
instead of using scattered global variables.

Usage:
    from autorig.core.state import app_state

    # During startup
    app_state.detection_client = build_detection_client(settings.detector)

    # In routes/services
    client = app_state.detection_client
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional
import threading


@dataclass
class AppState:
    """
    Singleton class to hold application-wide state.

    Attributes:
        detection_client: Detection client built from settings (None when
            no detector is configured; the pipeline then uses the fallback)
        initialized: Whether startup initialization is complete
        requests_processed: Number of completed /process-image requests
        fallback_count: Number of requests served from fallback detection
    """

    detection_client: Optional[Any] = None
    initialized: bool = False
    requests_processed: int = 0
    fallback_count: int = 0

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def reset(self) -> None:
        """Reset all state to initial values."""
        with self._lock:
            self.detection_client = None
            self.initialized = False
            self.requests_processed = 0
            self.fallback_count = 0

    def record_request(self, used_fallback: bool) -> None:
        """Count a finished request."""
        with self._lock:
            self.requests_processed += 1
            if used_fallback:
                self.fallback_count += 1

    @property
    def detection_available(self) -> bool:
        """Check if a live detection client is configured."""
        return self.detection_client is not None

    def get_status(self) -> Dict[str, Any]:
        """Get current state status for health checks."""
        return {
            "initialized": self.initialized,
            "detection_available": self.detection_available,
            "requests_processed": self.requests_processed,
            "fallback_count": self.fallback_count,
        }


# Singleton instance
app_state = AppState()


def get_app_state() -> AppState:
    """
    Get the application state singleton.

    Used as a FastAPI dependency in api.deps.
    """
    return app_state


__all__ = [
    "AppState",
    "app_state",
    "get_app_state",
]
