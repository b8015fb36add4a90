"""State transition tests for GenerationJob and UploadItem.

Tests focus on validating both lifecycle state machines:
- Job: Pending → (Pending | Ready | Failed), terminal states never left
- Upload item: pending → uploading → (done | error), never reverts
"""

import pytest

from colca.models.asset import InlineAsset
from colca.models.generation_job import (
    GenerationJob,
    InvalidStateTransition,
    JobStatus,
    PollOutcome,
    normalize_status,
)
from colca.models.upload_item import UploadItem, UploadLinks, UploadStatus


def make_job() -> GenerationJob:
    return GenerationJob(id="job-1", polling_url="https://api.bfl.test/v1/get_result?id=job-1")


def ready_outcome() -> PollOutcome:
    return PollOutcome(
        status=JobStatus.READY,
        payload={"status": "Ready"},
        asset=InlineAsset(data=b"img", mime_type="image/jpeg"),
        width=1024,
        height=768,
    )


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Ready", JobStatus.READY),
        ("Pending", JobStatus.PENDING),
        ("Processing", JobStatus.PENDING),
        (None, JobStatus.PENDING),
        ("Error", JobStatus.FAILED),
        ("Failed", JobStatus.FAILED),
        ("Content Moderated", JobStatus.FAILED),
        ("Request Moderated", JobStatus.FAILED),
        ("Task not found", JobStatus.FAILED),
    ],
)
def test_normalize_status(raw, expected):
    assert normalize_status(raw) == expected


def test_pending_poll_keeps_job_pending():
    job = make_job()

    job.apply_poll(PollOutcome(status=JobStatus.PENDING, payload={"status": "Pending"}))

    assert job.status == JobStatus.PENDING
    assert job.last_payload == {"status": "Pending"}
    assert not job.is_terminal


def test_ready_poll_materializes_asset():
    job = make_job()

    job.apply_poll(ready_outcome())

    assert job.status == JobStatus.READY
    assert job.result_asset.data == b"img"
    assert (job.width, job.height) == (1024, 768)
    assert job.is_terminal


def test_ready_without_asset_is_rejected():
    job = make_job()

    with pytest.raises(InvalidStateTransition, match="without a materialized asset"):
        job.apply_poll(PollOutcome(status=JobStatus.READY, payload={"status": "Ready"}))

    assert job.status == JobStatus.PENDING


@pytest.mark.parametrize("terminal", [JobStatus.READY, JobStatus.FAILED])
def test_terminal_states_cannot_be_left(terminal):
    job = make_job()
    if terminal == JobStatus.READY:
        job.apply_poll(ready_outcome())
    else:
        job.apply_poll(PollOutcome(status=JobStatus.FAILED, payload={"status": "Error"}))

    with pytest.raises(InvalidStateTransition, match="terminal state"):
        job.apply_poll(PollOutcome(status=JobStatus.PENDING, payload={"status": "Pending"}))

    assert job.status == terminal


def test_ready_response_shape():
    outcome = ready_outcome()

    body = outcome.to_response()

    assert body["status"] == "Ready"
    assert body["width"] == 1024
    assert body["height"] == 768
    assert body["dataUrl"].startswith("data:image/jpeg;base64,")


def test_pending_response_is_raw_payload():
    payload = {"id": "job-1", "status": "Pending", "progress": 0.4}

    assert PollOutcome(status=JobStatus.PENDING, payload=payload).to_response() == payload


def test_upload_item_happy_path():
    item = UploadItem(source="data:image/png;base64,AAAA", caption="Own the Road")
    assert item.status == UploadStatus.PENDING

    item.mark_uploading()
    assert item.status == UploadStatus.UPLOADING

    links = UploadLinks(file_id="f1", view_url="https://v", direct_url="https://d")
    item.mark_done(links)
    assert item.status == UploadStatus.DONE
    assert item.links == links


def test_upload_item_error_path():
    item = UploadItem(source="https://img.test/a.png")
    item.mark_uploading()

    item.mark_error("Upload failed (500)")

    assert item.status == UploadStatus.ERROR
    assert item.error == "Upload failed (500)"


def test_upload_item_cannot_skip_uploading():
    item = UploadItem(source="https://img.test/a.png")

    with pytest.raises(InvalidStateTransition):
        item.mark_done(UploadLinks())
    with pytest.raises(InvalidStateTransition):
        item.mark_error("boom")


def test_upload_item_never_reverts():
    item = UploadItem(source="https://img.test/a.png")
    item.mark_uploading()
    item.mark_done(UploadLinks(file_id="f1"))

    with pytest.raises(InvalidStateTransition):
        item.mark_uploading()
    with pytest.raises(InvalidStateTransition):
        item.mark_error("late failure")

    assert item.status == UploadStatus.DONE
