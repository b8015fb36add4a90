"""Caller-side polling loop for FLUX jobs.

The poll relay performs one step per call; this loop plays the role of the
front-end: it calls the relay at a fixed cadence until the job is terminal or
the attempt budget runs out. Polls for one job never overlap.
"""

import asyncio
from typing import Awaitable, Callable, Optional

import structlog

from colca.models.generation_job import GenerationJob
from colca.services.exceptions import ServiceError
from colca.services.flux.client import FluxClient
from colca.services.flux.poll_relay import ReadyAssetCache, poll_once

logger = structlog.get_logger(__name__)


class PollTimeoutError(ServiceError):
    """Job did not reach a terminal state within the attempt budget."""

    error_tag = "poll_timeout"
    status_code = 504


async def wait_for_job(
    client: FluxClient,
    job: GenerationJob,
    output_format: str = "jpeg",
    interval_seconds: float = 1.5,
    max_attempts: int = 120,
    cache: Optional[ReadyAssetCache] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> GenerationJob:
    """Poll until the job is Ready or Failed.

    Args:
        client: Configured FLUX client
        job: Pending job returned by submit_job (mutated in place)
        output_format: Output encoding the job was created with
        interval_seconds: Delay between polls
        max_attempts: Maximum number of poll calls
        cache: Optional ready-asset cache passed through to the relay
        sleep: Awaitable sleep function (tests pass a no-op)

    Returns:
        The same job, now terminal

    Raises:
        PollTimeoutError: Still pending after max_attempts polls
        ServiceError: Any relay failure, propagated unchanged
    """
    for attempt in range(1, max_attempts + 1):
        outcome = await poll_once(client, job.polling_url, output_format, cache=cache)
        job.apply_poll(outcome)

        logger.debug(
            "flux.job.polled",
            job_id=job.id,
            attempt=attempt,
            status=job.status.value,
        )

        if job.is_terminal:
            logger.info("flux.job.finished", job_id=job.id, status=job.status.value, polls=attempt)
            return job

        await sleep(interval_seconds)

    raise PollTimeoutError(f"Job {job.id} still pending after {max_attempts} polls")
