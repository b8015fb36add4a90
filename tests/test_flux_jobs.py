"""Tests for FLUX job submission, the single-step poll relay and the caller poll loop."""

import json

import httpx
import pytest

from colca.models.generation_job import GenerationJob, JobStatus
from colca.services.exceptions import (
    JobCreateError,
    MissingConfigurationError,
    NoSampleError,
    PollError,
    SampleFetchError,
    TransportError,
)
from colca.services.flux.client import FluxClient
from colca.services.flux.poll_relay import ReadyAssetCache, extract_sample_url, poll_once
from colca.services.flux.poller import PollTimeoutError, wait_for_job
from colca.services.flux.submitter import FluxJobRequest, submit_job

CREATE_URL = "https://api.bfl.test/v1/flux-kontext-pro"
POLL_URL = "https://api.bfl.test/v1/get_result?id=job-1"
SAMPLE_URL = "https://delivery.bfl.test/sample/job-1.jpg?sig=abc"


def make_client(recorder) -> FluxClient:
    return FluxClient(api_key="bfl-test-key", create_url=CREATE_URL, transport=recorder.transport)


def ready_payload(**result_overrides):
    result = {"sample": SAMPLE_URL, "width": 1024, "height": 768}
    result.update(result_overrides)
    return {"id": "job-1", "status": "Ready", "result": result}


class TestSubmitJob:
    """Job submission forwards the request and returns the poll handle."""

    @pytest.mark.asyncio
    async def test_returns_id_and_polling_url(self, route_recorder):
        recorder = route_recorder(
            {CREATE_URL: httpx.Response(200, json={"id": "job-1", "polling_url": POLL_URL})}
        )
        request = FluxJobRequest.from_images(
            "Blue sedan on a cliff road", ["aW1nMQ==", "aW1nMg=="], seed=7
        )

        job = await submit_job(make_client(recorder), request)

        assert job.id == "job-1"
        assert job.polling_url == POLL_URL
        assert job.status == JobStatus.PENDING

        sent = recorder.requests[0]
        assert sent.method == "POST"
        assert sent.headers["x-key"] == "bfl-test-key"
        assert json.loads(sent.content) == {
            "prompt": "Blue sedan on a cliff road",
            "aspect_ratio": "1:1",
            "input_image": "aW1nMQ==",
            "input_image_2": "aW1nMg==",
            "output_format": "jpeg",
            "seed": 7,
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [400, 402, 422, 429, 500])
    async def test_upstream_status_and_body_are_preserved(self, route_recorder, status_code):
        recorder = route_recorder(
            {CREATE_URL: httpx.Response(status_code, text='{"detail":"nope"}')}
        )

        with pytest.raises(JobCreateError) as exc_info:
            await submit_job(make_client(recorder), FluxJobRequest(prompt="x"))

        assert exc_info.value.status_code == status_code
        assert exc_info.value.detail == '{"detail":"nope"}'
        assert exc_info.value.to_payload() == {
            "error": "create_failed",
            "detail": '{"detail":"nope"}',
        }
        assert len(recorder.requests) == 1

    @pytest.mark.asyncio
    async def test_network_error_is_unexpected(self, route_recorder):
        recorder = route_recorder({CREATE_URL: httpx.ConnectError("connection refused")})

        with pytest.raises(TransportError, match="connection refused") as exc_info:
            await submit_job(make_client(recorder), FluxJobRequest(prompt="x"))

        assert exc_info.value.error_tag == "unexpected"

    @pytest.mark.asyncio
    async def test_malformed_body_is_unexpected(self, route_recorder):
        recorder = route_recorder({CREATE_URL: httpx.Response(200, text="<html>oops</html>")})

        with pytest.raises(TransportError):
            await submit_job(make_client(recorder), FluxJobRequest(prompt="x"))

    @pytest.mark.asyncio
    async def test_missing_polling_url_is_unexpected(self, route_recorder):
        recorder = route_recorder({CREATE_URL: httpx.Response(200, json={"id": "job-1"})})

        with pytest.raises(TransportError, match="polling_url"):
            await submit_job(make_client(recorder), FluxJobRequest(prompt="x"))

    def test_missing_api_key_fails_before_network(self):
        with pytest.raises(MissingConfigurationError, match="BFL_API_KEY"):
            FluxClient(api_key="")

    def test_more_than_four_images_rejected(self):
        with pytest.raises(ValueError, match="At most 4"):
            FluxJobRequest.from_images("x", ["a", "b", "c", "d", "e"])

    def test_unknown_fields_ignored_and_unset_fields_omitted(self):
        request = FluxJobRequest.model_validate({"prompt": "x", "bogus": 1})

        assert request.to_upstream_payload() == {
            "prompt": "x",
            "aspect_ratio": "1:1",
            "output_format": "jpeg",
        }

    def test_caller_values_forwarded_untyped(self):
        request = FluxJobRequest.model_validate(
            {"prompt": "x", "seed": "abc", "aspect_ratio": None, "input_image": 42}
        )

        assert request.to_upstream_payload() == {
            "prompt": "x",
            "seed": "abc",
            "aspect_ratio": None,
            "input_image": 42,
            "output_format": "jpeg",
        }

    def test_from_images_drops_options_left_as_none(self):
        request = FluxJobRequest.from_images("x", ["aW1n"], seed=None, output_format="png")

        assert request.to_upstream_payload() == {
            "prompt": "x",
            "input_image": "aW1n",
            "aspect_ratio": "1:1",
            "output_format": "png",
        }


class TestPollOnce:
    """One status request per call; Ready is materialized server-side."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [["queued", 1], "Pending", 42])
    async def test_non_object_status_body_passed_through(self, route_recorder, body):
        recorder = route_recorder({POLL_URL: httpx.Response(200, json=body)})

        outcome = await poll_once(make_client(recorder), POLL_URL)

        assert outcome.status == JobStatus.PENDING
        assert outcome.to_response() == body

    @pytest.mark.asyncio
    async def test_pending_passes_raw_payload_through(self, route_recorder):
        payload = {"id": "job-1", "status": "Pending", "progress": 0.3}
        recorder = route_recorder({POLL_URL: httpx.Response(200, json=payload)})

        outcome = await poll_once(make_client(recorder), POLL_URL)

        assert outcome.status == JobStatus.PENDING
        assert outcome.to_response() == payload
        assert recorder.urls() == [POLL_URL]
        assert recorder.requests[0].headers["x-key"] == "bfl-test-key"

    @pytest.mark.asyncio
    async def test_failed_status_passes_raw_payload_through(self, route_recorder):
        payload = {"id": "job-1", "status": "Content Moderated"}
        recorder = route_recorder({POLL_URL: httpx.Response(200, json=payload)})

        outcome = await poll_once(make_client(recorder), POLL_URL)

        assert outcome.status == JobStatus.FAILED
        assert outcome.to_response() == payload

    @pytest.mark.asyncio
    async def test_ready_fetches_sample_and_inlines_it(self, route_recorder):
        recorder = route_recorder(
            {
                POLL_URL: httpx.Response(200, json=ready_payload()),
                SAMPLE_URL: httpx.Response(200, content=b"\xff\xd8jpegbytes"),
            }
        )

        outcome = await poll_once(make_client(recorder), POLL_URL, output_format="jpeg")

        assert outcome.status == JobStatus.READY
        assert outcome.asset.data == b"\xff\xd8jpegbytes"
        assert outcome.asset.mime_type == "image/jpeg"
        body = outcome.to_response()
        assert body["status"] == "Ready"
        assert body["width"] == 1024 and body["height"] == 768
        assert body["dataUrl"].startswith("data:image/jpeg;base64,")
        # Signed URL is fetched without the API key
        assert "x-key" not in recorder.requests[1].headers

    @pytest.mark.asyncio
    async def test_mime_type_follows_output_format(self, route_recorder):
        recorder = route_recorder(
            {
                POLL_URL: httpx.Response(200, json=ready_payload()),
                SAMPLE_URL: httpx.Response(200, content=b"png"),
            }
        )

        outcome = await poll_once(make_client(recorder), POLL_URL, output_format="png")

        assert outcome.asset.mime_type == "image/png"

    @pytest.mark.asyncio
    async def test_ready_falls_back_to_images_list(self, route_recorder):
        payload = ready_payload(sample=None, images=[{"url": SAMPLE_URL}])
        recorder = route_recorder(
            {
                POLL_URL: httpx.Response(200, json=payload),
                SAMPLE_URL: httpx.Response(200, content=b"img"),
            }
        )

        outcome = await poll_once(make_client(recorder), POLL_URL)

        assert outcome.status == JobStatus.READY

    @pytest.mark.asyncio
    async def test_ready_without_sample_is_semantic_failure(self, route_recorder):
        payload = {"id": "job-1", "status": "Ready", "result": {"width": 1024}}
        recorder = route_recorder({POLL_URL: httpx.Response(200, json=payload)})

        with pytest.raises(NoSampleError) as exc_info:
            await poll_once(make_client(recorder), POLL_URL)

        assert exc_info.value.to_payload() == {"error": "no_sample_url", "info": payload}
        assert exc_info.value.status_code == 500
        assert recorder.urls() == [POLL_URL]

    @pytest.mark.asyncio
    async def test_poll_upstream_failure_is_tagged(self, route_recorder):
        recorder = route_recorder({POLL_URL: httpx.Response(403, text="forbidden")})

        with pytest.raises(PollError) as exc_info:
            await poll_once(make_client(recorder), POLL_URL)

        assert exc_info.value.status_code == 403
        assert exc_info.value.to_payload() == {"error": "poll_failed", "detail": "forbidden"}

    @pytest.mark.asyncio
    async def test_expired_sample_is_bad_gateway(self, route_recorder):
        recorder = route_recorder(
            {
                POLL_URL: httpx.Response(200, json=ready_payload()),
                SAMPLE_URL: httpx.Response(403, text="Request has expired"),
            }
        )

        with pytest.raises(SampleFetchError) as exc_info:
            await poll_once(make_client(recorder), POLL_URL)

        assert exc_info.value.status_code == 502
        assert exc_info.value.upstream_status == 403
        assert exc_info.value.to_payload()["error"] == "fetch_image_failed"

    @pytest.mark.asyncio
    async def test_repeat_ready_poll_refetches_without_cache(self, route_recorder):
        recorder = route_recorder(
            {
                POLL_URL: [
                    httpx.Response(200, json=ready_payload()),
                    httpx.Response(200, json=ready_payload()),
                ],
                SAMPLE_URL: [
                    httpx.Response(200, content=b"img"),
                    httpx.Response(403, text="Request has expired"),
                ],
            }
        )
        client = make_client(recorder)

        await poll_once(client, POLL_URL)
        with pytest.raises(SampleFetchError):
            await poll_once(client, POLL_URL)

    @pytest.mark.asyncio
    async def test_repeat_ready_poll_served_from_cache_after_expiry(self, route_recorder):
        recorder = route_recorder(
            {
                POLL_URL: httpx.Response(200, json=ready_payload()),
                SAMPLE_URL: [
                    httpx.Response(200, content=b"img"),
                    httpx.Response(403, text="Request has expired"),
                ],
            }
        )
        client = make_client(recorder)
        cache = ReadyAssetCache()

        first = await poll_once(client, POLL_URL, cache=cache)
        second = await poll_once(client, POLL_URL, cache=cache)

        assert second.status == JobStatus.READY
        assert second.asset.data == first.asset.data == b"img"
        assert second.width == 1024 and second.height == 768
        assert len(recorder.requests) == 2

    def test_cache_evicts_least_recently_used(self):
        cache = ReadyAssetCache(max_entries=2)
        outcome = object()

        cache.put("a", outcome)
        cache.put("b", outcome)
        cache.get("a")
        cache.put("c", outcome)

        assert cache.get("b") is None
        assert cache.get("a") is outcome
        assert len(cache) == 2

    def test_extract_sample_url_handles_missing_result(self):
        assert extract_sample_url({"status": "Ready"}) is None
        assert extract_sample_url({"status": "Ready", "result": {"images": []}}) is None


class TestWaitForJob:
    """The caller loop owns cadence and termination."""

    @pytest.mark.asyncio
    async def test_polls_until_ready(self, route_recorder):
        recorder = route_recorder(
            {
                POLL_URL: [
                    httpx.Response(200, json={"status": "Pending"}),
                    httpx.Response(200, json={"status": "Pending"}),
                    httpx.Response(200, json=ready_payload()),
                ],
                SAMPLE_URL: httpx.Response(200, content=b"img"),
            }
        )
        sleeps = []

        async def fake_sleep(seconds):
            sleeps.append(seconds)

        job = GenerationJob(id="job-1", polling_url=POLL_URL)
        result = await wait_for_job(
            make_client(recorder), job, interval_seconds=0.5, sleep=fake_sleep
        )

        assert result.status == JobStatus.READY
        assert result.result_asset.data == b"img"
        assert sleeps == [0.5, 0.5]

    @pytest.mark.asyncio
    async def test_stops_on_failed(self, route_recorder):
        recorder = route_recorder({POLL_URL: httpx.Response(200, json={"status": "Error"})})

        async def fake_sleep(seconds):
            pass

        job = GenerationJob(id="job-1", polling_url=POLL_URL)
        result = await wait_for_job(make_client(recorder), job, sleep=fake_sleep)

        assert result.status == JobStatus.FAILED
        assert len(recorder.requests) == 1

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, route_recorder):
        recorder = route_recorder(
            {POLL_URL: lambda request: httpx.Response(200, json={"status": "Pending"})}
        )

        async def fake_sleep(seconds):
            pass

        job = GenerationJob(id="job-1", polling_url=POLL_URL)
        with pytest.raises(PollTimeoutError):
            await wait_for_job(make_client(recorder), job, max_attempts=3, sleep=fake_sleep)

        assert len(recorder.requests) == 3
