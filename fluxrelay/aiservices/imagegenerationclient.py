from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Tuple

from ..profiles import EndpointProfile
from ..schemas import GenerationRequest, PollingJob

class ImageGenerationClient(ABC):
    """Abstract interface for an asynchronous image generation client.

    Implementations submit a job, poll its status URL and download the
    result. All methods are coroutines so a poll loop never blocks other
    requests on the event loop.
    """

    @abstractmethod
    async def submit(
        self,
        request: GenerationRequest,
        api_key: Optional[str],
        profile: EndpointProfile,
    ) -> PollingJob:
        """Submit a generation job and return its polling handle."""

    @abstractmethod
    async def poll_until_ready(
        self,
        polling_url: str,
        max_attempts: int,
        delay: float,
        initial_delay: float = 0.0,
    ) -> str:
        """Poll ``polling_url`` until the job is ready and return the image URL."""

    @abstractmethod
    async def fetch_image(self, url: str) -> Tuple[bytes, str]:
        """Download a finished image, returning its bytes and content type."""
