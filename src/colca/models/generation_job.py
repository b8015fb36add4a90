"""GenerationJob entity - long-running FLUX job with caller-driven status tracking."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from colca.models.asset import InlineAsset


class JobStatus(str, Enum):
    """Normalized job status."""

    PENDING = "Pending"
    READY = "Ready"
    FAILED = "Failed"


# Upstream statuses that end a job without a result
FAILED_UPSTREAM_STATUSES = frozenset(
    {"Error", "Failed", "Request Moderated", "Content Moderated", "Task not found"}
)


def normalize_status(raw_status: Any) -> JobStatus:
    """Collapse an upstream status string into Pending / Ready / Failed."""
    if raw_status == JobStatus.READY.value:
        return JobStatus.READY
    if raw_status in FAILED_UPSTREAM_STATUSES:
        return JobStatus.FAILED
    return JobStatus.PENDING


class InvalidStateTransition(Exception):
    """Raised when attempting an invalid job or upload state transition."""

    pass


class PollOutcome(BaseModel):
    """Result of exactly one poll step.

    For non-ready outcomes ``payload`` is the raw upstream status body, passed
    through unchanged. Ready outcomes carry the materialized asset instead.
    """

    status: JobStatus
    payload: Any = Field(default_factory=dict)
    asset: Optional[InlineAsset] = None
    width: Optional[int] = None
    height: Optional[int] = None

    def to_response(self) -> Any:
        """Body returned by the status proxy endpoint."""
        if self.status == JobStatus.READY and self.asset is not None:
            return {
                "status": JobStatus.READY.value,
                "width": self.width,
                "height": self.height,
                "dataUrl": self.asset.to_data_url(),
            }
        return self.payload


class GenerationJob(BaseModel):
    """A submitted FLUX job.

    Created by the job submitter, mutated only through ``apply_poll`` (one
    transition per poll). Ready and Failed are terminal.
    """

    id: str
    polling_url: str
    status: JobStatus = JobStatus.PENDING
    result_asset: Optional[InlineAsset] = None
    width: Optional[int] = None
    height: Optional[int] = None
    last_payload: Any = Field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.READY, JobStatus.FAILED)

    def apply_poll(self, outcome: PollOutcome) -> None:
        """Record one poll observation.

        Raises:
            InvalidStateTransition: If the job already reached a terminal state,
                or a ready outcome arrives without an asset
        """
        if self.is_terminal:
            raise InvalidStateTransition(
                f"Cannot apply poll to job {self.id} in terminal state {self.status.value}."
            )

        if outcome.status == JobStatus.READY:
            if outcome.asset is None:
                raise InvalidStateTransition(
                    f"Cannot mark job {self.id} ready without a materialized asset."
                )
            self.result_asset = outcome.asset
            self.width = outcome.width
            self.height = outcome.height

        self.last_payload = outcome.payload
        self.status = outcome.status
