"""Error taxonomy shared by the BFL client, the relay service and the routes."""

from __future__ import annotations

from typing import Any

from fastapi import status


class RelayError(Exception):
    """Base class for failures that map onto a JSON ``{"error": ...}`` response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigError(RelayError):
    """The upstream API key is not configured."""


class ValidationError(RelayError):
    status_code = status.HTTP_400_BAD_REQUEST


class UpstreamError(RelayError):
    """The generation API rejected a submission."""

    def __init__(self, upstream_status: int, body: str) -> None:
        super().__init__(f"BFL API error: {body}")
        self.upstream_status = upstream_status
        self.body = body


class SubmitError(RelayError):
    pass


class TransportError(RelayError):
    """A status or result fetch failed; never retried."""


class UnexpectedStatus(RelayError):
    def __init__(self, job_status: Any) -> None:
        super().__init__(f"Unexpected status: {job_status}")
        self.job_status = job_status


class Timeout(RelayError):
    def __init__(self, attempts: int) -> None:
        super().__init__("Image processing timed out after multiple attempts")
        self.attempts = attempts


class MissingResult(RelayError):
    def __init__(self, payload: dict[str, Any]) -> None:
        super().__init__("No image URL in result")
        self.payload = payload
