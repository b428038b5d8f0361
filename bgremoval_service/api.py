"""
FastAPI layer exposing background removal.

Endpoints:
 - POST /api/remove-background
 - GET|POST /api/test
 - GET /api/ping
 - GET /health
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import config
from .encoding import strip_data_uri_prefix
from .fallback import FallbackTransform
from .pipeline import BackgroundRemover
from .provider import BackgroundRemovalProvider, ProviderError, build_provider

logger = logging.getLogger(__name__)

NO_IMAGE_DATA = "No image data provided"
PROCESSING_FAILED = "Failed to process image. Please try again."
METHOD_NOT_ALLOWED = "Method not allowed"

CORS_HEADERS = {
    "Access-Control-Allow-Credentials": "true",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,OPTIONS,PATCH,DELETE,POST,PUT",
    "Access-Control-Allow-Headers": (
        "X-CSRF-Token, X-Requested-With, Accept, Accept-Version, Content-Length, "
        "Content-MD5, Content-Type, Date, X-Api-Version"
    ),
}


class RemovalRequest(BaseModel):
    imageData: Optional[str] = None  # base64, with or without a data: prefix


class RemovalResult(BaseModel):
    success: bool
    processedImageUrl: Optional[str] = None
    error: Optional[str] = None
    degraded: Optional[bool] = None  # only set when the fallback echoed the input


def _failure(status_code: int, message: str) -> JSONResponse:
    body = RemovalResult(success=False, error=message)
    return JSONResponse(body.model_dump(exclude_none=True), status_code=status_code)


def create_app(
    settings: Optional[config.Settings] = None,
    provider: Optional[BackgroundRemovalProvider] = None,
    transform: Optional[FallbackTransform] = None,
) -> FastAPI:
    """
    Build the application around resolved settings.

    `provider` defaults to a remove.bg client when `REMOVE_BG_API_KEY` is set;
    passing one explicitly takes precedence over the key.
    """
    settings = settings or config.get_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

    if provider is None:
        provider = build_provider(settings)
    remover = BackgroundRemover(settings, provider=provider, transform=transform)

    app = FastAPI(title="Background Removal Service", version="0.1.0")
    app.state.settings = settings
    app.state.remover = remover

    @app.middleware("http")
    async def cors(request: Request, call_next):
        if request.method == "OPTIONS":
            response = Response(status_code=200)
        else:
            response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 405:
            return JSONResponse(
                {"error": METHOD_NOT_ALLOWED}, status_code=405, headers=exc.headers
            )
        return await http_exception_handler(request, exc)

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError):
        logger.info("Rejected request body on %s: %s", request.url.path, exc.errors())
        return _failure(400, NO_IMAGE_DATA)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/api/ping")
    def ping():
        return {"message": "Hello from the background removal service!"}

    @app.api_route("/api/test", methods=["GET", "POST"])
    def api_test(request: Request):
        return {
            "message": "API is working!",
            "method": request.method,
            "hasApiKey": remover.uses_provider,
            "timestamp": datetime.now(timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
        }

    @app.post(
        "/api/remove-background",
        response_model=RemovalResult,
        response_model_exclude_none=True,
    )
    async def remove_background(body: RemovalRequest):
        image_data = strip_data_uri_prefix(body.imageData or "")
        if not image_data:
            return _failure(400, NO_IMAGE_DATA)

        if len(image_data) > settings.max_payload_bytes:
            limit_mb = settings.max_payload_bytes / (1024 * 1024)
            return _failure(413, f"Image exceeds the {limit_mb:g} MB upload limit")

        try:
            outcome = await remover.remove(image_data)
        except ProviderError as exc:
            logger.exception("Background removal failed: %s", exc)
            return _failure(500, PROCESSING_FAILED)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected error during background removal: %s", exc)
            return _failure(500, PROCESSING_FAILED)

        return RemovalResult(
            success=True,
            processedImageUrl=outcome.processed_image_url,
            degraded=True if outcome.degraded else None,
        )

    return app


app = create_app()
