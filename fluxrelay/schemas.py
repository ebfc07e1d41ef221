"""Pydantic models shared by the FastAPI endpoints and the BFL client."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class JobStatus(str, Enum):
    PENDING = "Pending"
    READY = "Ready"


class StatusPayload(BaseModel):
    """Body returned by a BFL polling URL.

    Only ``status`` drives the poll loop. Unknown fields are kept so the full
    payload can be logged when no image URL can be found.
    """

    model_config = ConfigDict(extra="allow")

    status: Any = None
    result: Any = None
    sample: Any = None

    @property
    def is_ready(self) -> bool:
        return self.status == JobStatus.READY.value

    @property
    def is_pending(self) -> bool:
        return self.status == JobStatus.PENDING.value


class GenerationRequest(BaseModel):
    image: bytes = Field(b"", description="Raw bytes of the uploaded source image")
    prompt: Optional[str] = Field(None, description="Text prompt; may be empty on lenient endpoints")
    width: int = Field(1024, gt=0, description="Target width in pixels")
    height: int = Field(1024, gt=0, description="Target height in pixels")


class PollingJob(BaseModel):
    polling_url: str = Field(..., description="Opaque status URL returned by the BFL API")
    id: Optional[str] = Field(None, description="Upstream job id, when provided")


class GetImageRequest(BaseModel):
    imageUrl: Optional[str] = Field(None, description="Polling URL returned by POST /api/create")


class ImageResponse(BaseModel):
    image: str = Field(..., description="URL of the generated image, or the polling URL for /api/create")


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None


class IndexResponse(BaseModel):
    message: str
    endpoints: Dict[str, str]


class HealthResponse(BaseModel):
    status: str
    apiBaseUrl: str
    apiKeyConfigured: bool
