"""
Detector Adapters

A detector is any external capability that accepts image bytes, returns a
job handle, and can be polled for the job's outcome:

    submit(image_bytes) -> job_id
    poll(job_id)        -> JobStatus(pending | succeeded(output) | failed(error))

ReplicateDetector talks to a Replicate-style predictions API over HTTP.
Other providers only need to implement the same two methods.
"""

import base64
from dataclasses import dataclass
from typing import Any, Optional, Protocol

import requests

from autorig.core.exceptions import DetectionError, DetectionFailureReason
from autorig.core.logger import get_logger

logger = get_logger(__name__)


JOB_PENDING = "pending"
JOB_SUCCEEDED = "succeeded"
JOB_FAILED = "failed"


@dataclass(frozen=True)
class JobStatus:
    """Outcome of a single poll."""
    state: str
    output: Any = None
    error: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.state == JOB_PENDING

    @property
    def succeeded(self) -> bool:
        return self.state == JOB_SUCCEEDED


class Detector(Protocol):
    """Capability contract every detector adapter fulfils."""

    def submit(self, image_bytes: bytes) -> str:
        ...

    def poll(self, job_id: str) -> JobStatus:
        ...


def encode_image(image_bytes: bytes, mime_type: str = "image/png") -> str:
    """Encode image bytes as a data URL for JSON transport."""
    encoded = base64.b64encode(image_bytes).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def guess_mime_type(image_bytes: bytes) -> str:
    """Sniff the image MIME type from magic bytes."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if image_bytes.startswith((b"GIF87a", b"GIF89a")):
        return "image/gif"
    if image_bytes.startswith(b"BM"):
        return "image/bmp"
    return "application/octet-stream"


# Provider status -> normalized job state
REPLICATE_STATES = {
    "starting": JOB_PENDING,
    "processing": JOB_PENDING,
    "queued": JOB_PENDING,
    "succeeded": JOB_SUCCEEDED,
    "failed": JOB_FAILED,
    "canceled": JOB_FAILED,
    "cancelled": JOB_FAILED,
}


class ReplicateDetector:
    """Detector backed by the Replicate predictions API."""

    def __init__(
        self,
        model_version: str,
        api_token: str,
        base_url: str = "https://api.replicate.com/v1",
        timeout: float = 30.0,
        name: str = "replicate",
        session: Optional[requests.Session] = None,
    ):
        if not model_version:
            raise ValueError("model_version is required")
        if not api_token:
            raise ValueError("api_token is required")
        self.model_version = model_version
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.name = name
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {api_token}",
            "Content-Type": "application/json",
        })

    def __repr__(self) -> str:
        return f"ReplicateDetector(name={self.name!r}, model_version={self.model_version!r})"

    def _request(self, method: str, url: str, **kwargs) -> dict:
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.Timeout as e:
            raise DetectionError(
                DetectionFailureReason.TIMEOUT,
                message=f"Request to {url} timed out",
                detector=self.name,
                details=str(e),
            )
        except requests.RequestException as e:
            raise DetectionError(
                DetectionFailureReason.UPSTREAM_FAILURE,
                message=f"Request to {url} failed",
                detector=self.name,
                details=str(e),
            )

        try:
            data = response.json()
        except ValueError as e:
            raise DetectionError(
                DetectionFailureReason.MALFORMED_RESPONSE,
                message="Provider returned non-JSON body",
                detector=self.name,
                details=str(e),
            )
        if not isinstance(data, dict):
            raise DetectionError(
                DetectionFailureReason.MALFORMED_RESPONSE,
                message="Provider returned unexpected JSON",
                detector=self.name,
            )
        return data

    def submit(self, image_bytes: bytes) -> str:
        """Create a prediction and return its id."""
        body = {
            "version": self.model_version,
            "input": {"image": encode_image(image_bytes, guess_mime_type(image_bytes))},
        }
        data = self._request("POST", f"{self.base_url}/predictions", json=body)
        job_id = data.get("id")
        if not job_id:
            raise DetectionError(
                DetectionFailureReason.MALFORMED_RESPONSE,
                message="Prediction response has no id",
                detector=self.name,
            )
        logger.debug(f"{self.name}: submitted prediction {job_id}")
        return str(job_id)

    def poll(self, job_id: str) -> JobStatus:
        """Fetch the current status of a prediction."""
        data = self._request("GET", f"{self.base_url}/predictions/{job_id}")
        status = str(data.get("status", "")).lower()
        state = REPLICATE_STATES.get(status)
        if state is None:
            raise DetectionError(
                DetectionFailureReason.MALFORMED_RESPONSE,
                message=f"Unknown prediction status '{status}'",
                detector=self.name,
            )
        if state == JOB_FAILED:
            return JobStatus(state=JOB_FAILED, error=str(data.get("error") or status))
        if state == JOB_SUCCEEDED:
            return JobStatus(state=JOB_SUCCEEDED, output=data.get("output"))
        return JobStatus(state=JOB_PENDING)


__all__ = [
    "JOB_PENDING",
    "JOB_SUCCEEDED",
    "JOB_FAILED",
    "JobStatus",
    "Detector",
    "ReplicateDetector",
    "encode_image",
    "guess_mime_type",
]
