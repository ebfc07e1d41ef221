from __future__ import annotations

# Used by lenient endpoints when the caller leaves the prompt empty. The photo
# references point at input_image, input_image_2 and input_image_3 in that order.
DEFAULT_PROMPT = (
    "[photo reference 1] people with minimal cybernetic enhancements: "
    "Illuminated seam detailing on jacket collar reacting to ambient light, "
    "Subtle holographic data stream projection floating around the person. "
    "Background from [photo reference 2] (text removed) with cyberpunk color grading, "
    "Photorealistic, sci-fi. take inspiration from [photo reference 3]"
)


def get_effective_prompt(prompt: str | None, allow_fallback: bool) -> str | None:
    """Return the prompt to send upstream.

    A blank prompt becomes :data:`DEFAULT_PROMPT` when ``allow_fallback`` is set,
    otherwise ``None`` so the caller can reject the request.
    """
    if prompt is not None and prompt.strip():
        return prompt.strip()
    if allow_fallback:
        return DEFAULT_PROMPT
    return None
