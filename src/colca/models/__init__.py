"""Domain entities for jobs, assets and uploads."""

from colca.models.asset import InlineAsset, mime_type_for_format
from colca.models.generation_job import (
    GenerationJob,
    InvalidStateTransition,
    JobStatus,
    PollOutcome,
    normalize_status,
)
from colca.models.upload_item import UploadBatch, UploadItem, UploadLinks, UploadStatus

__all__ = [
    "InlineAsset",
    "mime_type_for_format",
    "GenerationJob",
    "InvalidStateTransition",
    "JobStatus",
    "PollOutcome",
    "normalize_status",
    "UploadBatch",
    "UploadItem",
    "UploadLinks",
    "UploadStatus",
]
