"""FastAPI entry point exposing the FluxRelay REST API."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import Depends, FastAPI, File, Form, Request, UploadFile, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from .config import get_settings
from .errors import RelayError
from .schemas import (
    ErrorResponse,
    GenerationRequest,
    GetImageRequest,
    HealthResponse,
    ImageResponse,
    IndexResponse,
)
from .service import ImageRelayService, get_image_relay_service
from .utils import parse_dimension

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

ENDPOINTS = {
    "generateAndGet": "POST /api/generate with form-data {prompt: string, image: file, width?: number, height?: number}",
    "generate": "POST /api/create with form-data {prompt: string, image: file, width?: number, height?: number}",
    "get_image": "POST /api/getImage with JSON {imageUrl: string}",
}

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


async def _read_generation_request(
    prompt: Optional[str],
    image: Optional[UploadFile],
    width: Optional[str],
    height: Optional[str],
) -> GenerationRequest:
    image_bytes = await image.read() if image is not None else b""
    return GenerationRequest(
        image=image_bytes,
        prompt=prompt,
        width=parse_dimension(width),
        height=parse_dimension(height),
    )


def _internal_error(message: str, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(error=message, details=str(exc)).model_dump(),
    )


app = FastAPI(title="FluxRelay", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RelayError)
async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(error="Invalid request", details=str(exc.errors())).model_dump(),
    )


# Failures outside a route body, e.g. while building the service dependency.
@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("%s %s failed", request.method, request.url.path, exc_info=exc)
    return _internal_error("Failed to process image request", exc)


@app.get("/", response_model=IndexResponse, summary="List available endpoints")
async def index():
    return IndexResponse(message="BFL Image API", endpoints=ENDPOINTS)


@app.get("/health", response_model=HealthResponse, summary="Health Check Endpoint")
async def healthcheck():
    settings = get_settings()
    return HealthResponse(
        status="ok",
        apiBaseUrl=settings.bfl_api_base_url,
        apiKeyConfigured=bool(settings.api_key),
    )


@app.post(
    "/api/generate",
    response_model=ImageResponse,
    responses=_ERROR_RESPONSES,
    summary="Generate an image and wait for the result",
)
async def generate(
    prompt: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    width: Optional[str] = Form(None),
    height: Optional[str] = Form(None),
    download: bool = False,
    service: ImageRelayService = Depends(get_image_relay_service),
):
    try:
        request = await _read_generation_request(prompt, image, width, height)
        image_url = await service.generate(request)
        if download:
            content, content_type = await service.download(image_url)
            return Response(content=content, media_type=content_type)
    except RelayError:
        raise
    except Exception as exc:
        logger.exception("Image generation failed")
        return _internal_error("failed to generate Image", exc)

    return ImageResponse(image=image_url)


@app.post(
    "/api/create",
    response_model=ImageResponse,
    responses=_ERROR_RESPONSES,
    summary="Submit an image job and return its polling URL",
)
async def create(
    prompt: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    width: Optional[str] = Form(None),
    height: Optional[str] = Form(None),
    service: ImageRelayService = Depends(get_image_relay_service),
):
    try:
        request = await _read_generation_request(prompt, image, width, height)
        polling_url = await service.create(request)
    except RelayError:
        raise
    except Exception as exc:
        logger.exception("Image submission failed")
        return _internal_error("failed to submit Image", exc)

    return ImageResponse(image=polling_url)


@app.post(
    "/api/getImage",
    response_model=ImageResponse,
    responses=_ERROR_RESPONSES,
    summary="Poll a job created by /api/create until its image is ready",
)
async def get_image(
    payload: GetImageRequest,
    service: ImageRelayService = Depends(get_image_relay_service),
):
    try:
        image_url = await service.get_image(payload.imageUrl)
    except RelayError:
        raise
    except Exception as exc:
        logger.exception("Error fetching image")
        return _internal_error("Failed to process image request", exc)

    return ImageResponse(image=image_url)


__all__ = ["app"]


if __name__ == "__main__":  # pragma: no cover - convenience entry point
    import uvicorn

    uvicorn.run("fluxrelay.main:app", host="0.0.0.0", port=8000, reload=True)
