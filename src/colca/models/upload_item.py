"""UploadItem entity - one finished image queued for the storage endpoint."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from colca.models.generation_job import InvalidStateTransition


class UploadStatus(str, Enum):
    """Upload lifecycle status."""

    PENDING = "pending"
    UPLOADING = "uploading"
    DONE = "done"
    ERROR = "error"


class UploadLinks(BaseModel):
    """Links returned by the storage endpoint on success."""

    file_id: Optional[str] = None
    view_url: Optional[str] = None
    direct_url: Optional[str] = None


class UploadItem(BaseModel):
    """A single image (URL or data URL) plus its caption.

    Status moves strictly pending → uploading → (done | error) and never reverts.
    """

    source: str
    caption: str = ""
    filename_hint: Optional[str] = None
    status: UploadStatus = UploadStatus.PENDING
    links: Optional[UploadLinks] = None
    error: Optional[str] = None

    def mark_uploading(self) -> None:
        """Transition from pending to uploading.

        Raises:
            InvalidStateTransition: If current status is not pending
        """
        if self.status != UploadStatus.PENDING:
            raise InvalidStateTransition(
                f"Cannot mark uploading from {self.status.value}. Item must be pending."
            )
        self.status = UploadStatus.UPLOADING

    def mark_done(self, links: UploadLinks) -> None:
        """Transition from uploading to done.

        Raises:
            InvalidStateTransition: If current status is not uploading
        """
        if self.status != UploadStatus.UPLOADING:
            raise InvalidStateTransition(
                f"Cannot mark done from {self.status.value}. Item must be uploading."
            )
        self.links = links
        self.status = UploadStatus.DONE

    def mark_error(self, error: str) -> None:
        """Transition from uploading to error.

        Raises:
            InvalidStateTransition: If current status is not uploading
        """
        if self.status != UploadStatus.UPLOADING:
            raise InvalidStateTransition(
                f"Cannot mark error from {self.status.value}. Item must be uploading."
            )
        self.error = error
        self.status = UploadStatus.ERROR


class UploadBatch(BaseModel):
    """Ordered upload items owned by a single upload flow."""

    items: list[UploadItem] = Field(default_factory=list)

    @property
    def statuses(self) -> list[UploadStatus]:
        return [item.status for item in self.items]

    @property
    def links(self) -> list[Optional[UploadLinks]]:
        return [item.links for item in self.items]

    def __len__(self) -> int:
        return len(self.items)
