"""Orchestrates submission and polling for the relay routes."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional, Tuple

from .aiservices.bflimagegenerationclient import BFLImageGenerationClient
from .aiservices.imagegenerationclient import ImageGenerationClient
from .config import Settings, get_settings
from .errors import ValidationError
from .profiles import CREATE_PROFILE, GENERATE_PROFILE, GET_IMAGE_PROFILE, EndpointProfile, resolve_profiles
from .schemas import GenerationRequest

logger = logging.getLogger(__name__)


class ImageRelayService:
    """High-level orchestrator for the BFL image routes."""

    def __init__(
        self,
        settings: Settings | None = None,
        image_client: Optional[ImageGenerationClient] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._image_client = image_client or BFLImageGenerationClient(self.settings)
        self._profiles = resolve_profiles(self.settings)

    def profile(self, name: str) -> EndpointProfile:
        return self._profiles[name]

    # ------------------------------------------------------------------
    # Submit and poll
    # ------------------------------------------------------------------
    async def generate(self, request: GenerationRequest) -> str:
        """Submit a job and wait for its image URL."""
        profile = self.profile(GENERATE_PROFILE.name)
        job = await self._image_client.submit(request, self.settings.api_key, profile)
        logger.debug("Polling %s job %s at %s", profile.name, job.id, job.polling_url)
        return await self._image_client.poll_until_ready(
            job.polling_url,
            max_attempts=profile.max_attempts,
            delay=profile.poll_delay_seconds,
            initial_delay=profile.initial_delay_seconds,
        )

    # ------------------------------------------------------------------
    # Submit only
    # ------------------------------------------------------------------
    async def create(self, request: GenerationRequest) -> str:
        """Submit a job and return its polling URL for a later ``get_image`` call."""
        profile = self.profile(CREATE_PROFILE.name)
        job = await self._image_client.submit(request, self.settings.api_key, profile)
        return job.polling_url

    # ------------------------------------------------------------------
    # Poll only
    # ------------------------------------------------------------------
    async def get_image(self, polling_url: Optional[str]) -> str:
        if not polling_url or not polling_url.strip():
            raise ValidationError("imageUrl is required")

        profile = self.profile(GET_IMAGE_PROFILE.name)
        return await self._image_client.poll_until_ready(
            polling_url.strip(),
            max_attempts=profile.max_attempts,
            delay=profile.poll_delay_seconds,
            initial_delay=profile.initial_delay_seconds,
        )

    async def download(self, image_url: str) -> Tuple[bytes, str]:
        return await self._image_client.fetch_image(image_url)


@lru_cache
def get_image_relay_service() -> ImageRelayService:
    return ImageRelayService(get_settings())
