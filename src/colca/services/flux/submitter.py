"""FLUX job submission: shape the request, forward it, return the job handle."""

from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict

from colca.models.generation_job import GenerationJob
from colca.services.exceptions import TransportError
from colca.services.flux.client import FluxClient

logger = structlog.get_logger(__name__)

MAX_REFERENCE_IMAGES = 4


class FluxJobRequest(BaseModel):
    """Generation request body.

    Fields are passed through untyped: the FLUX API owns validation and its
    status and error body are forwarded verbatim. Reference images are base64
    payloads (no ``data:`` prefix).
    """

    model_config = ConfigDict(extra="ignore")

    prompt: Any = None
    aspect_ratio: Any = "1:1"
    input_image: Any = None
    input_image_2: Any = None
    input_image_3: Any = None
    input_image_4: Any = None
    output_format: Any = "jpeg"
    seed: Any = None

    @classmethod
    def from_images(cls, prompt: str, images: list[str], **kwargs) -> "FluxJobRequest":
        """Build a request placing up to four base64 images into their slots.

        Keyword arguments left as None are treated as not supplied.

        Raises:
            ValueError: If more than four images are supplied
        """
        if len(images) > MAX_REFERENCE_IMAGES:
            raise ValueError(
                f"At most {MAX_REFERENCE_IMAGES} reference images are supported (got {len(images)})"
            )
        slots = ["input_image", "input_image_2", "input_image_3", "input_image_4"]
        options = {key: value for key, value in kwargs.items() if value is not None}
        return cls(prompt=prompt, **dict(zip(slots, images)), **options)

    def to_upstream_payload(self) -> dict:
        """JSON body for the create endpoint.

        Keys the caller sent are forwarded as given, explicit nulls included.
        Absent keys are omitted, except aspect_ratio and output_format which
        fall back to their defaults.
        """
        payload = self.model_dump(exclude_unset=True)
        payload.setdefault("aspect_ratio", self.aspect_ratio)
        payload.setdefault("output_format", self.output_format)
        return payload


async def submit_job(client: FluxClient, request: FluxJobRequest) -> GenerationJob:
    """Submit a generation request and return the pending job.

    Args:
        client: Configured FLUX client
        request: Generation request

    Returns:
        GenerationJob in Pending state with id and polling_url

    Raises:
        JobCreateError: Upstream rejected the request (status code preserved)
        TransportError: Network failure or response missing id / polling_url
    """
    body = await client.create_job(request.to_upstream_payload())

    job_id = body.get("id") if isinstance(body, dict) else None
    polling_url = body.get("polling_url") if isinstance(body, dict) else None
    if not job_id or not polling_url:
        raise TransportError(f"Malformed create response: missing id or polling_url in {body!r}")

    logger.info(
        "flux.job.submitted",
        job_id=job_id,
        aspect_ratio=request.aspect_ratio,
        output_format=request.output_format,
        reference_images=sum(
            1
            for image in (
                request.input_image,
                request.input_image_2,
                request.input_image_3,
                request.input_image_4,
            )
            if image
        ),
    )
    return GenerationJob(id=str(job_id), polling_url=str(polling_url))
