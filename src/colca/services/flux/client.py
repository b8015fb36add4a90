"""FLUX (Black Forest Labs) HTTP client for job creation, status polls and sample downloads."""

from typing import Any

import httpx
import structlog

from colca.services.exceptions import (
    JobCreateError,
    MissingConfigurationError,
    PollError,
    SampleFetchError,
    TransportError,
)

logger = structlog.get_logger(__name__)


class FluxClient:
    """Thin async client around the FLUX job API.

    Each method performs exactly one HTTP request and never retries.
    """

    def __init__(
        self,
        api_key: str,
        create_url: str = "https://api.bfl.ai/v1/flux-kontext-pro",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize FLUX client.

        Args:
            api_key: FLUX API key (from BFL_API_KEY env var)
            create_url: Job creation endpoint for the chosen model
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests inject a MockTransport)

        Raises:
            MissingConfigurationError: If api_key is empty
        """
        if not api_key:
            raise MissingConfigurationError("BFL_API_KEY not configured")

        self.create_url = create_url
        self.timeout = timeout
        self.transport = transport
        self.headers = {
            "x-key": api_key,
            "accept": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def create_job(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Submit a generation request.

        Args:
            payload: JSON body forwarded verbatim to the create endpoint

        Returns:
            Upstream JSON body (contains ``id`` and ``polling_url``)

        Raises:
            JobCreateError: Upstream answered non-2xx (status and body preserved)
            TransportError: Network failure or non-JSON body
        """
        try:
            async with self._client() as client:
                response = await client.post(self.create_url, headers=self.headers, json=payload)
                if response.is_error:
                    raise JobCreateError(response.status_code, response.text)
                return response.json()

        except httpx.HTTPError as e:
            raise TransportError(f"Network error: {e}") from e
        except ValueError as e:
            raise TransportError(f"Malformed create response: {e}") from e

    async def get_status(self, polling_url: str) -> Any:
        """Fetch the current status payload for a job.

        Raises:
            PollError: Upstream answered non-2xx (status and body preserved)
            TransportError: Network failure or non-JSON body
        """
        try:
            async with self._client() as client:
                response = await client.get(polling_url, headers=self.headers)
                if response.is_error:
                    raise PollError(response.status_code, response.text)
                return response.json()

        except httpx.HTTPError as e:
            raise TransportError(f"Network error: {e}") from e
        except ValueError as e:
            raise TransportError(f"Malformed status response: {e}") from e

    async def fetch_sample(self, sample_url: str) -> bytes:
        """Download a signed result URL into memory.

        The signed URL is unauthenticated, so no API key header is sent.

        Raises:
            SampleFetchError: Upstream answered non-2xx
            TransportError: Network failure
        """
        try:
            async with self._client() as client:
                response = await client.get(sample_url)
                if response.is_error:
                    raise SampleFetchError(response.status_code, response.text)
                return response.content

        except httpx.HTTPError as e:
            raise TransportError(f"Network error: {e}") from e
