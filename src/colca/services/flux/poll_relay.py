"""Single-step FLUX status relay.

One call to :func:`poll_once` performs exactly one status request. It never
loops or sleeps; the caller owns the polling cadence and decides when to stop.

When the job is ``Ready`` the relay downloads the signed sample URL
server-side and returns the image inline. The signed URL is short-lived and
served without CORS headers, so browsers cannot fetch it directly.
"""

from collections import OrderedDict
from typing import Any, Optional

import structlog

from colca.models.asset import InlineAsset, mime_type_for_format
from colca.models.generation_job import JobStatus, PollOutcome, normalize_status
from colca.services.exceptions import NoSampleError
from colca.services.flux.client import FluxClient

logger = structlog.get_logger(__name__)


class ReadyAssetCache:
    """Bounded LRU of materialized Ready outcomes keyed by poll handle.

    Lets a repeated Ready poll succeed after the signed URL has expired.
    """

    def __init__(self, max_entries: int = 32):
        self.max_entries = max_entries
        self._entries: OrderedDict[str, PollOutcome] = OrderedDict()

    def get(self, polling_url: str) -> Optional[PollOutcome]:
        outcome = self._entries.get(polling_url)
        if outcome is not None:
            self._entries.move_to_end(polling_url)
        return outcome

    def put(self, polling_url: str, outcome: PollOutcome) -> None:
        self._entries[polling_url] = outcome
        self._entries.move_to_end(polling_url)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def __len__(self) -> int:
        return len(self._entries)


def extract_sample_url(info: dict[str, Any]) -> Optional[str]:
    """Find the signed result URL in a Ready payload.

    Prefers ``result.sample`` and falls back to ``result.images[0].url``.
    """
    result = info.get("result") or {}
    if not isinstance(result, dict):
        return None

    sample = result.get("sample")
    if sample:
        return str(sample)

    images = result.get("images") or []
    if isinstance(images, list) and images and isinstance(images[0], dict):
        url = images[0].get("url")
        if url:
            return str(url)

    return None


async def poll_once(
    client: FluxClient,
    polling_url: str,
    output_format: str = "jpeg",
    cache: Optional[ReadyAssetCache] = None,
) -> PollOutcome:
    """Perform one poll step for a job.

    Args:
        client: Configured FLUX client
        polling_url: Opaque poll handle returned at submission
        output_format: Output encoding the job was created with (sets the mime type)
        cache: Optional ready-asset cache; when given, a handle that already
            reached Ready is answered without contacting upstream

    Returns:
        PollOutcome. Non-ready outcomes carry the raw upstream payload.

    Raises:
        PollError: Status request answered non-2xx
        NoSampleError: Status is Ready but no sample URL is present
        SampleFetchError: Signed URL download answered non-2xx
        TransportError: Network failure or malformed status body
    """
    if cache is not None:
        cached = cache.get(polling_url)
        if cached is not None:
            logger.debug("flux.poll.cache_hit", polling_url=polling_url)
            return cached

    info = await client.get_status(polling_url)
    raw_status = info.get("status") if isinstance(info, dict) else None
    status = normalize_status(raw_status)

    if status != JobStatus.READY:
        logger.debug("flux.poll.status", status=raw_status, normalized=status.value)
        return PollOutcome(status=status, payload=info)

    sample_url = extract_sample_url(info)
    if not sample_url:
        logger.warning("flux.poll.no_sample_url", job_id=info.get("id"))
        raise NoSampleError(info)

    image_bytes = await client.fetch_sample(sample_url)
    result = info.get("result") or {}

    outcome = PollOutcome(
        status=JobStatus.READY,
        payload=info,
        asset=InlineAsset(data=image_bytes, mime_type=mime_type_for_format(output_format)),
        width=result.get("width"),
        height=result.get("height"),
    )

    logger.info(
        "flux.poll.ready",
        job_id=info.get("id"),
        width=outcome.width,
        height=outcome.height,
        bytes=len(image_bytes),
    )

    if cache is not None:
        cache.put(polling_url, outcome)

    return outcome
