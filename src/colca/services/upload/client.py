"""Storage endpoint client (cloud function that files images and logs prompts)."""

import httpx
import structlog

from colca.models.upload_item import UploadLinks
from colca.services.exceptions import (
    MissingConfigurationError,
    TransportError,
    UploadRejectedError,
)

logger = structlog.get_logger(__name__)


class UploadClient:
    """Posts one base64 image per call to the storage endpoint."""

    def __init__(
        self,
        endpoint: str,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize upload client.

        Args:
            endpoint: Storage function URL (from UPLOAD_ENDPOINT env var)
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests inject a MockTransport)

        Raises:
            MissingConfigurationError: If endpoint is empty
        """
        if not endpoint:
            raise MissingConfigurationError("UPLOAD_ENDPOINT not configured")

        self.endpoint = endpoint
        self.timeout = timeout
        self.transport = transport

    async def upload(
        self,
        base64_body: str,
        filename: str,
        prompt: str = "",
        caption: str = "",
        mime_type: str | None = None,
    ) -> UploadLinks:
        """Upload one image.

        Args:
            base64_body: Image bytes as base64 without a ``data:`` prefix
            filename: Target filename
            prompt: Scene prompt logged alongside the image
            caption: Ad headline logged alongside the image
            mime_type: Image mime type, omitted when unknown

        Returns:
            Links to the stored file

        Raises:
            UploadRejectedError: Non-2xx response or ``success`` not true
            TransportError: Network failure
        """
        payload = {
            "base64Body": base64_body,
            "filename": filename,
            "prompt": prompt,
            # The storage function names the caption field "headline"
            "headline": caption,
        }
        if mime_type:
            payload["mimeType"] = mime_type

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.endpoint, json=payload)
        except httpx.HTTPError as e:
            raise TransportError(f"Network error: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if response.is_error or body.get("success") is not True:
            message = body.get("error") or f"Upload failed ({response.status_code})"
            raise UploadRejectedError(response.status_code, message, str(message))

        return UploadLinks(
            file_id=body.get("fileId"),
            view_url=body.get("viewUrl"),
            direct_url=body.get("directUrl"),
        )
