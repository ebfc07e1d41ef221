import base64
import re
from typing import Any, Mapping, Optional

DEFAULT_DIMENSION = 1024

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def encode_image_base64(image: bytes) -> str:
    """
    Encode raw image bytes for inline transmission in a JSON body.

    Args:
        image (bytes): The uploaded image payload.

    Returns:
        str: The standard base64 alphabet encoding, without line breaks.
    """
    return base64.b64encode(image).decode("ascii")


def parse_dimension(value: Any, default: int = DEFAULT_DIMENSION) -> int:
    """
    Parse a form field as a positive pixel size, falling back to ``default``.

    Only the leading integer counts, so ``"512.5"`` and ``"512px"`` give 512.
    """
    if value is None:
        return default
    match = _LEADING_INT.match(str(value))
    if match is None:
        return default
    parsed = int(match.group(1))
    return parsed if parsed > 0 else default


def extract_sample_url(payload: Mapping[str, Any]) -> Optional[str]:
    """
    Find the generated image URL in a terminal status payload.

    Two shapes are known: ``{"result": {"sample": url}}`` and ``{"sample": url}``.
    The nested form wins when both are present.
    """
    result = payload.get("result")
    if isinstance(result, Mapping):
        sample = result.get("sample")
        if isinstance(sample, str) and sample:
            return sample

    sample = payload.get("sample")
    if isinstance(sample, str) and sample:
        return sample
    return None
