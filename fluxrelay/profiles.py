"""Named generation and polling constants, one profile per route."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Tuple

from .config import Settings

REFERENCE_IMAGES: Tuple[str, ...] = (
    "https://storage.googleapis.com/eva-assets/aignite_2.jpg",
    "https://storage.googleapis.com/eva-assets/aignite_3.webp",
)


@dataclass(frozen=True)
class EndpointProfile:
    """Fixed parameters for one route.

    Seed, safety tolerance and output format are never taken from the caller.
    ``max_attempts`` is ``0`` for routes that only submit.
    """

    name: str
    model: str = "flux-2-pro"
    seed: int = 1
    safety_tolerance: int = 4
    output_format: str = "jpeg"
    reference_images: Tuple[str, ...] = field(default_factory=tuple)
    allow_prompt_fallback: bool = False
    max_attempts: int = 0
    poll_delay_seconds: float = 1.0
    initial_delay_seconds: float = 0.0

    def build_body(self, prompt: str, encoded_image: str, width: int, height: int) -> dict:
        body = {"prompt": prompt, "input_image": encoded_image}
        # Extra references are numbered from 2; input_image is reference 1.
        for index, url in enumerate(self.reference_images, start=2):
            body[f"input_image_{index}"] = url
        body.update(
            seed=self.seed,
            width=width,
            height=height,
            safety_tolerance=self.safety_tolerance,
            output_format=self.output_format,
        )
        return body


GENERATE_PROFILE = EndpointProfile(
    name="generate",
    reference_images=REFERENCE_IMAGES,
    allow_prompt_fallback=True,
    max_attempts=30,
    initial_delay_seconds=20.0,
)

CREATE_PROFILE = EndpointProfile(
    name="create",
    reference_images=REFERENCE_IMAGES,
)

GET_IMAGE_PROFILE = EndpointProfile(
    name="get_image",
    max_attempts=45,
)


def resolve_profiles(settings: Settings) -> dict[str, EndpointProfile]:
    """Apply the deployment's polling budgets to the named profiles."""
    return {
        GENERATE_PROFILE.name: replace(
            GENERATE_PROFILE,
            max_attempts=settings.generate_max_attempts,
            poll_delay_seconds=settings.poll_delay_seconds,
            initial_delay_seconds=settings.generate_initial_delay_seconds,
        ),
        CREATE_PROFILE.name: CREATE_PROFILE,
        GET_IMAGE_PROFILE.name: replace(
            GET_IMAGE_PROFILE,
            max_attempts=settings.get_image_max_attempts,
            poll_delay_seconds=settings.poll_delay_seconds,
        ),
    }
