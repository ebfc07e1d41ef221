"""Tests for :mod:`fluxrelay.aiservices.bflimagegenerationclient`."""

from __future__ import annotations

import asyncio
import base64
import json
import sys
from pathlib import Path
from typing import Callable, List

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from fluxrelay.aiservices.bflimagegenerationclient import BFLImageGenerationClient
from fluxrelay.config import Settings
from fluxrelay.errors import (
    ConfigError,
    MissingResult,
    SubmitError,
    Timeout,
    TransportError,
    UnexpectedStatus,
    UpstreamError,
    ValidationError,
)
from fluxrelay.profiles import CREATE_PROFILE, GENERATE_PROFILE
from fluxrelay.prompts import DEFAULT_PROMPT
from fluxrelay.schemas import GenerationRequest

POLLING_URL = "https://api.bfl.ai/v1/get_result?id=job-1"


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def _make_client(handler: Callable[[httpx.Request], httpx.Response]):
    requests: List[httpx.Request] = []

    def _recording_handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    sleep = RecordingSleep()
    client = BFLImageGenerationClient(
        Settings(bfl_api_key="test-key", bfl_api_base_url="https://api.bfl.ai/v1"),
        transport=httpx.MockTransport(_recording_handler),
        sleep=sleep,
    )
    return client, requests, sleep


def _status_sequence(*payloads: dict) -> Callable[[httpx.Request], httpx.Response]:
    remaining = list(payloads)

    def _handler(request: httpx.Request) -> httpx.Response:
        payload = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        return httpx.Response(200, json=payload)

    return _handler


def _poll(client: BFLImageGenerationClient, max_attempts: int = 5, delay: float = 1.0, initial_delay: float = 0.0) -> str:
    return asyncio.run(client.poll_until_ready(POLLING_URL, max_attempts, delay, initial_delay))


# ---------------------------------------------------------------------------
# Polling
# ---------------------------------------------------------------------------

def test_poll_returns_nested_sample_and_stops_after_ready() -> None:
    client, requests, sleep = _make_client(
        _status_sequence(
            {"status": "Pending"},
            {"status": "Pending"},
            {"status": "Ready", "result": {"sample": "https://x/img.jpg"}},
        )
    )

    image_url = _poll(client, max_attempts=10)

    assert image_url == "https://x/img.jpg"
    assert len(requests) == 3
    assert all(str(request.url) == POLLING_URL for request in requests)
    assert sleep.calls == [1.0, 1.0]


def test_poll_returns_top_level_sample() -> None:
    client, requests, _ = _make_client(_status_sequence({"status": "Ready", "sample": "https://y/img.png"}))

    assert _poll(client) == "https://y/img.png"
    assert len(requests) == 1


def test_poll_times_out_after_exactly_max_attempts() -> None:
    client, requests, sleep = _make_client(_status_sequence({"status": "Pending"}))

    with pytest.raises(Timeout) as exc_info:
        _poll(client, max_attempts=4, delay=2.5)

    assert exc_info.value.attempts == 4
    assert exc_info.value.status_code == 500
    assert len(requests) == 4
    # One delay between each pair of fetches.
    assert sleep.calls == [2.5, 2.5, 2.5]


def test_poll_accepts_ready_on_final_attempt() -> None:
    client, requests, sleep = _make_client(
        _status_sequence(
            {"status": "Pending"},
            {"status": "Pending"},
            {"status": "Ready", "result": {"sample": "https://x/img.jpg"}},
        )
    )

    assert _poll(client, max_attempts=3) == "https://x/img.jpg"
    assert len(requests) == 3
    assert sleep.calls == [1.0, 1.0]


def test_poll_fails_on_unexpected_status_after_one_fetch() -> None:
    client, requests, sleep = _make_client(_status_sequence({"status": "Error"}))

    with pytest.raises(UnexpectedStatus) as exc_info:
        _poll(client)

    assert exc_info.value.job_status == "Error"
    assert exc_info.value.message == "Unexpected status: Error"
    assert len(requests) == 1
    assert sleep.calls == []


def test_poll_fails_on_unexpected_status_after_pending() -> None:
    client, requests, _ = _make_client(
        _status_sequence({"status": "Pending"}, {"status": "Content Moderated"})
    )

    with pytest.raises(UnexpectedStatus):
        _poll(client)

    assert len(requests) == 2


def test_poll_transport_error_is_not_retried() -> None:
    client, requests, sleep = _make_client(lambda request: httpx.Response(503, text="unavailable"))

    with pytest.raises(TransportError) as exc_info:
        _poll(client)

    assert exc_info.value.message == "Failed to fetch polling status"
    assert len(requests) == 1
    assert sleep.calls == []


def test_poll_network_failure_becomes_transport_error() -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client, _, _ = _make_client(_handler)

    with pytest.raises(TransportError):
        _poll(client)


def test_poll_non_json_body_becomes_transport_error() -> None:
    client, _, _ = _make_client(lambda request: httpx.Response(200, text="<html>oops</html>"))

    with pytest.raises(TransportError):
        _poll(client)


def test_poll_ready_without_sample_is_missing_result() -> None:
    client, _, _ = _make_client(_status_sequence({"status": "Ready", "result": {}}))

    with pytest.raises(MissingResult) as exc_info:
        _poll(client)

    assert exc_info.value.payload["status"] == "Ready"


def test_poll_waits_initial_delay_before_first_fetch() -> None:
    client, requests, sleep = _make_client(
        _status_sequence({"status": "Ready", "result": {"sample": "https://x/img.jpg"}})
    )

    _poll(client, initial_delay=20.0)

    assert sleep.calls == [20.0]
    assert len(requests) == 1


def test_poll_with_real_sleep_spaces_fetches_by_delay() -> None:
    timestamps: List[float] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        timestamps.append(asyncio.get_running_loop().time())
        return httpx.Response(200, json={"status": "Pending"})

    client = BFLImageGenerationClient(
        Settings(bfl_api_key="test-key"),
        transport=httpx.MockTransport(_handler),
    )

    with pytest.raises(Timeout):
        asyncio.run(client.poll_until_ready(POLLING_URL, max_attempts=3, delay=0.05))

    assert len(timestamps) == 3
    gaps = [later - earlier for earlier, later in zip(timestamps, timestamps[1:])]
    # Allow for event loop clock resolution.
    assert all(gap >= 0.049 for gap in gaps)


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------

def _submit(client: BFLImageGenerationClient, request: GenerationRequest, profile=GENERATE_PROFILE, api_key: str | None = "test-key"):
    return asyncio.run(client.submit(request, api_key, profile))


def _accepting_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"id": "job-1", "polling_url": POLLING_URL})


def test_submit_sends_encoded_image_and_profile_constants() -> None:
    client, requests, _ = _make_client(_accepting_handler)

    job = _submit(client, GenerationRequest(image=b"\x89PNG-bytes", prompt="a red fox", width=512, height=768))

    assert job.polling_url == POLLING_URL
    assert job.id == "job-1"
    assert len(requests) == 1

    sent = requests[0]
    assert sent.method == "POST"
    assert str(sent.url) == "https://api.bfl.ai/v1/flux-2-pro"
    assert sent.headers["x-key"] == "test-key"

    body = json.loads(sent.content)
    assert body["prompt"] == "a red fox"
    assert base64.b64decode(body["input_image"]) == b"\x89PNG-bytes"
    assert body["input_image_2"] == "https://storage.googleapis.com/eva-assets/aignite_2.jpg"
    assert body["input_image_3"] == "https://storage.googleapis.com/eva-assets/aignite_3.webp"
    assert body["seed"] == 1
    assert body["width"] == 512
    assert body["height"] == 768
    assert body["safety_tolerance"] == 4
    assert body["output_format"] == "jpeg"


def test_submit_without_api_key_is_config_error() -> None:
    client, requests, _ = _make_client(_accepting_handler)

    with pytest.raises(ConfigError) as exc_info:
        _submit(client, GenerationRequest(image=b"img", prompt="x"), api_key="")

    assert exc_info.value.status_code == 500
    assert requests == []


def test_submit_without_image_fails_before_network_call() -> None:
    client, requests, _ = _make_client(_accepting_handler)

    with pytest.raises(ValidationError) as exc_info:
        _submit(client, GenerationRequest(prompt="a prompt"))

    assert exc_info.value.status_code == 400
    assert requests == []


def test_submit_empty_prompt_uses_default_on_lenient_profile() -> None:
    client, requests, _ = _make_client(_accepting_handler)

    job = _submit(client, GenerationRequest(image=b"img", prompt=""), profile=GENERATE_PROFILE)

    assert job.polling_url == POLLING_URL
    assert json.loads(requests[0].content)["prompt"] == DEFAULT_PROMPT


def test_submit_empty_prompt_rejected_on_strict_profile() -> None:
    client, requests, _ = _make_client(_accepting_handler)

    with pytest.raises(ValidationError):
        _submit(client, GenerationRequest(image=b"img", prompt="   "), profile=CREATE_PROFILE)

    assert requests == []


def test_submit_upstream_failure_carries_status_and_body() -> None:
    client, _, _ = _make_client(lambda request: httpx.Response(402, text='{"detail":"Insufficient credits"}'))

    with pytest.raises(UpstreamError) as exc_info:
        _submit(client, GenerationRequest(image=b"img", prompt="x"))

    assert exc_info.value.upstream_status == 402
    assert "Insufficient credits" in exc_info.value.message
    assert exc_info.value.message.startswith("BFL API error: ")


def test_submit_without_polling_url_is_submit_error() -> None:
    client, _, _ = _make_client(lambda request: httpx.Response(200, json={"id": "job-1"}))

    with pytest.raises(SubmitError) as exc_info:
        _submit(client, GenerationRequest(image=b"img", prompt="x"))

    assert exc_info.value.message == "No polling URL returned from BFL API"


# ---------------------------------------------------------------------------
# Download
# ---------------------------------------------------------------------------

def test_fetch_image_returns_bytes_and_content_type() -> None:
    client, _, _ = _make_client(
        lambda request: httpx.Response(200, content=b"png-bytes", headers={"Content-Type": "image/png"})
    )

    content, content_type = asyncio.run(client.fetch_image("https://x/img.png"))

    assert content == b"png-bytes"
    assert content_type == "image/png"


def test_fetch_image_defaults_content_type_to_jpeg() -> None:
    client, _, _ = _make_client(lambda request: httpx.Response(200, content=b"jpeg-bytes"))

    _, content_type = asyncio.run(client.fetch_image("https://x/img.jpg"))

    assert content_type == "image/jpeg"


def test_fetch_image_failure_is_transport_error() -> None:
    client, _, _ = _make_client(lambda request: httpx.Response(404))

    with pytest.raises(TransportError):
        asyncio.run(client.fetch_image("https://x/img.jpg"))
