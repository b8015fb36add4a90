"""Sequential upload of finished images to the storage endpoint.

Items are uploaded one at a time, in order. Progress is reported after every
state change so observers see each item move pending → uploading → done|error.
The first failure marks that item as error and stops the sequence: earlier
items stay done, later items stay pending and are never fetched.
"""

from typing import Awaitable, Callable, Optional

import structlog

from colca.models.asset import InlineAsset
from colca.models.upload_item import UploadBatch, UploadItem, UploadLinks
from colca.services.exceptions import InvalidInputError, ServiceError, TransportError
from colca.services.upload.assets import (
    build_batch_filename,
    build_upload_filename,
    fetch_asset,
    guess_extension,
    now_ms,
)
from colca.services.upload.client import UploadClient

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[UploadBatch], None]
AssetFetcher = Callable[[str], Awaitable[InlineAsset]]


class UploadSequencer:
    """Drives an UploadBatch through the storage endpoint one item at a time."""

    def __init__(
        self,
        client: UploadClient,
        fetcher: AssetFetcher = fetch_asset,
        clock: Callable[[], int] = now_ms,
        filename_prefix: str = "car-gen",
    ):
        self.client = client
        self.fetcher = fetcher
        self.clock = clock
        self.filename_prefix = filename_prefix

    def _filename(self, item: UploadItem, index: int, asset: InlineAsset) -> str:
        if item.filename_hint:
            return build_upload_filename(item.filename_hint, self.clock())
        extension = guess_extension(item.source, asset.mime_type)
        return build_batch_filename(index, extension, self.clock(), self.filename_prefix)

    async def _upload_item(self, item: UploadItem, index: int, prompt: str) -> UploadLinks:
        asset = await self.fetcher(item.source)
        return await self.client.upload(
            base64_body=asset.base64,
            filename=self._filename(item, index, asset),
            prompt=prompt,
            caption=item.caption,
            mime_type=asset.mime_type or None,
        )

    async def upload_all(
        self,
        batch: UploadBatch,
        prompt: str = "",
        on_progress: Optional[ProgressCallback] = None,
    ) -> list[UploadLinks]:
        """Upload every item of the batch in order.

        Args:
            batch: Items to upload (mutated in place)
            prompt: Scene prompt logged with every image
            on_progress: Called with the batch after every state change

        Returns:
            Links for every item, in order

        Raises:
            InvalidInputError: Batch is empty
            ServiceError: First failure; the remaining items are not attempted
        """
        if not batch.items:
            raise InvalidInputError("No images to upload.")

        def notify() -> None:
            if on_progress is not None:
                on_progress(batch)

        notify()
        links: list[UploadLinks] = []

        for index, item in enumerate(batch.items):
            item.mark_uploading()
            notify()

            try:
                item_links = await self._upload_item(item, index, prompt)
            except ServiceError as e:
                item.mark_error(str(e))
                notify()
                logger.error(
                    "upload.item.failed",
                    index=index,
                    error=str(e),
                    error_type=type(e).__name__,
                    remaining=len(batch.items) - index - 1,
                )
                raise
            except Exception as e:
                item.mark_error(str(e))
                notify()
                logger.error(
                    "upload.item.failed",
                    index=index,
                    error=str(e),
                    error_type=type(e).__name__,
                    remaining=len(batch.items) - index - 1,
                    exc_info=True,
                )
                raise TransportError(f"Unexpected error: {e}") from e

            item.mark_done(item_links)
            links.append(item_links)
            notify()
            logger.info("upload.item.done", index=index, view_url=item_links.view_url)

        logger.info("upload.batch.completed", items=len(batch.items))
        return links
