"""Service error hierarchy for generation, polling and upload operations.

Every error carries a short ``error_tag`` and the HTTP status the proxy layer
answers with, so route handlers can translate any ``ServiceError`` into the
same JSON shape: ``{"error": <tag>, "detail": <detail>}``.

- MissingConfigurationError / InvalidInputError: caught before any network call
- UpstreamError: an external service answered with a non-success status
- TransportError: network failure or unparseable response
- SemanticError: upstream succeeded but the payload lacked an expected field

Nothing in this package retries; these errors are surfaced to the caller as-is.
"""

from typing import Any


class ServiceError(Exception):
    """Base exception for all service errors."""

    error_tag: str = "unexpected"
    status_code: int = 500

    def __init__(self, message: str, detail: Any = None):
        super().__init__(message)
        self.detail = detail if detail is not None else message

    def to_payload(self) -> dict[str, Any]:
        """Build the JSON body returned to HTTP callers."""
        return {"error": self.error_tag, "detail": self.detail}


class MissingConfigurationError(ServiceError):
    """Required API key or endpoint is not configured."""

    error_tag = "missing_configuration"


class InvalidInputError(ServiceError):
    """Required caller input is absent (no prompt, no image, empty batch)."""

    error_tag = "invalid_input"
    status_code = 400


class UpstreamError(ServiceError):
    """External service returned a non-success status; body forwarded opaquely."""

    error_tag = "upstream_failed"

    def __init__(self, status_code: int, detail: Any, message: str | None = None):
        super().__init__(message or f"Upstream request failed ({status_code})", detail)
        self.status_code = status_code


class JobCreateError(UpstreamError):
    """FLUX job creation rejected."""

    error_tag = "create_failed"


class PollError(UpstreamError):
    """FLUX status poll rejected."""

    error_tag = "poll_failed"


class SampleFetchError(UpstreamError):
    """Signed sample URL could not be downloaded."""

    error_tag = "fetch_image_failed"

    def __init__(self, upstream_status: int, detail: Any):
        super().__init__(502, detail, f"Failed to fetch generated image ({upstream_status})")
        self.upstream_status = upstream_status


class GenerationError(UpstreamError):
    """Gemini generation call rejected."""

    error_tag = "generation_failed"


class UploadRejectedError(UpstreamError):
    """Storage endpoint answered non-2xx or ``success: false``."""

    error_tag = "upload_failed"


class TransportError(ServiceError):
    """Network error or malformed upstream response."""

    error_tag = "unexpected"


class SemanticError(ServiceError):
    """Upstream succeeded but the payload lacked an expected field."""

    error_tag = "semantic_failure"


class NoSampleError(SemanticError):
    """Ready status payload carries no resolvable sample URL."""

    error_tag = "no_sample_url"

    def __init__(self, info: Any):
        super().__init__("No sample available for ready job", detail=None)
        self.info = info

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.error_tag, "info": self.info}


class NoImageReturnedError(SemanticError):
    """Generation response contained no image part."""

    error_tag = "no_image_returned"

    def __init__(self, message: str = "No image returned from the API."):
        super().__init__(message)
