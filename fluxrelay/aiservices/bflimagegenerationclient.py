"""httpx client for the Black Forest Labs asynchronous image API."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Tuple

import httpx

from ..config import Settings, get_settings
from ..errors import (
    ConfigError,
    MissingResult,
    SubmitError,
    Timeout,
    TransportError,
    UnexpectedStatus,
    UpstreamError,
    ValidationError,
)
from ..profiles import EndpointProfile
from ..prompts import get_effective_prompt
from ..schemas import GenerationRequest, PollingJob, StatusPayload
from ..utils import encode_image_base64, extract_sample_url
from .imagegenerationclient import ImageGenerationClient

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class BFLImageGenerationClient(ImageGenerationClient):
    """
    Submits jobs to ``{bfl_api_base_url}/{profile.model}`` and polls the
    returned status URL with a fixed delay and a hard attempt ceiling.

    ``transport`` and ``sleep`` exist so tests can replace the network and the
    clock; production code leaves both at their defaults.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.settings = settings or get_settings()
        self._transport = transport
        self._sleep = sleep

    # --- Submission -----------------------------------------------------------

    async def submit(
        self,
        request: GenerationRequest,
        api_key: Optional[str],
        profile: EndpointProfile,
    ) -> PollingJob:
        if not api_key:
            raise ConfigError("API key missing")

        if not request.image:
            raise ValidationError("Image file required")

        prompt = get_effective_prompt(request.prompt, profile.allow_prompt_fallback)
        if prompt is None:
            raise ValidationError("Prompt required")
        if prompt != (request.prompt or "").strip():
            logger.info("Empty prompt on %s, using the default prompt", profile.name)

        body = profile.build_body(
            prompt=prompt,
            encoded_image=encode_image_base64(request.image),
            width=request.width,
            height=request.height,
        )
        url = f"{self.settings.bfl_api_base_url.rstrip('/')}/{profile.model}"
        headers = {"x-key": api_key, "Content-Type": "application/json"}

        try:
            async with self._client() as client:
                response = await client.post(url, json=body, headers=headers)
        except httpx.RequestError as exc:
            raise TransportError(f"Failed to reach BFL API: {exc}") from exc

        if not response.is_success:
            logger.warning("BFL API rejected %s submission with status %s", profile.name, response.status_code)
            raise UpstreamError(response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as exc:
            raise SubmitError("No polling URL returned from BFL API") from exc

        polling_url = data.get("polling_url") if isinstance(data, dict) else None
        if not polling_url:
            raise SubmitError("No polling URL returned from BFL API")

        logger.info("Submitted %s job %s", profile.name, data.get("id"))
        return PollingJob(polling_url=polling_url, id=data.get("id"))

    # --- Polling --------------------------------------------------------------

    async def poll_until_ready(
        self,
        polling_url: str,
        max_attempts: int,
        delay: float,
        initial_delay: float = 0.0,
    ) -> str:
        if initial_delay > 0:
            await self._sleep(initial_delay)

        attempts = 0
        payload: Optional[StatusPayload] = None

        async with self._client() as client:
            while attempts < max_attempts:
                payload = await self._fetch_status(client, polling_url)
                attempts += 1

                logger.info("Poll attempt %s: status = %s", attempts, payload.status)

                if payload.is_ready:
                    break

                if payload.is_pending:
                    if attempts < max_attempts:
                        await self._sleep(delay)
                    continue

                raise UnexpectedStatus(payload.status)

        if payload is None or not payload.is_ready:
            raise Timeout(attempts)

        data = payload.model_dump()
        image_url = extract_sample_url(data)
        if not image_url:
            logger.warning("Ready payload without image URL: %s", data)
            raise MissingResult(data)

        logger.info("Success after %s attempts", attempts)
        return image_url

    async def _fetch_status(self, client: httpx.AsyncClient, polling_url: str) -> StatusPayload:
        try:
            response = await client.get(polling_url)
        except httpx.RequestError as exc:
            raise TransportError("Failed to fetch polling status") from exc

        if not response.is_success:
            raise TransportError("Failed to fetch polling status")

        try:
            data = response.json()
        except ValueError as exc:
            raise TransportError("Failed to fetch polling status") from exc

        if not isinstance(data, dict):
            raise TransportError("Failed to fetch polling status")
        return StatusPayload.model_validate(data)

    # --- Download -------------------------------------------------------------

    async def fetch_image(self, url: str) -> Tuple[bytes, str]:
        try:
            async with self._client() as client:
                response = await client.get(url)
        except httpx.RequestError as exc:
            raise TransportError("Failed to download generated image") from exc

        if not response.is_success:
            raise TransportError("Failed to download generated image")

        content_type = response.headers.get("Content-Type") or "image/jpeg"
        return response.content, content_type

    # --- Internals ------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.settings.http_timeout_seconds,
            transport=self._transport,
            follow_redirects=True,
        )
