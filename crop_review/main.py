"""
FastAPI application entry point for the Crop Review backend.
"""
import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from crop_review.config import APP_VERSION, settings
from crop_review.routers import crops, health
from crop_review.services.lifecycle import CropLifecycleManager
from crop_review.utils.errors import APIError, ErrorCodes, create_error_response

# Configure logging with both stdout and file handlers
log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

log_dir = Path(settings.LOG_DIR)
log_dir.mkdir(parents=True, exist_ok=True)
log_file = log_dir / "app.log"

root_logger = logging.getLogger()
root_logger.setLevel(log_level)

# Remove existing handlers to avoid duplicates
root_logger.handlers.clear()

stream_handler = logging.StreamHandler()
stream_handler.setLevel(log_level)
stream_handler.setFormatter(logging.Formatter(log_format))
root_logger.addHandler(stream_handler)

file_handler = logging.FileHandler(log_file)
file_handler.setLevel(log_level)
file_handler.setFormatter(logging.Formatter(log_format))
root_logger.addHandler(file_handler)

logger = logging.getLogger("crop_review")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all HTTP requests with correlation IDs."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        request.state.request_id = request_id

        client_ip = request.client.host if request.client else "unknown"

        start_time = time.time()
        logger.info(
            f"RequestStart request={request_id} method={request.method} path={request.url.path} "
            f"client_ip={client_ip}"
        )

        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception as e:
            status_code = 500
            response = JSONResponse(
                status_code=500,
                content={"error": {"code": ErrorCodes.INTERNAL_ERROR, "message": "An unexpected error occurred."}},
            )
            logger.error(
                f"RequestError request={request_id} method={request.method} path={request.url.path} "
                f"error={type(e).__name__}",
                exc_info=True,
            )

        duration_ms = int((time.time() - start_time) * 1000)
        # The router writes path_params into the shared scope
        crop_id = request.scope.get("path_params", {}).get("crop_id")
        crop_field = f" crop={crop_id}" if crop_id else ""
        logger.info(
            f"RequestEnd request={request_id} method={request.method} path={request.url.path} "
            f"status={status_code} durationMs={duration_ms}{crop_field}"
        )

        response.headers["X-Request-Id"] = request_id
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI app.

    Creates the process-wide lifecycle manager (job store plus storage
    directories) and records startup_time for uptime tracking. Job state is
    in memory only and is discarded at shutdown.
    """
    app.state.startup_time = datetime.now(timezone.utc)

    lifecycle = CropLifecycleManager.from_settings()
    lifecycle.ensure_directories()
    app.state.lifecycle = lifecycle

    logger.info("ConfigStart")
    logger.info(f"Config HOST={settings.HOST} PORT={settings.PORT}")
    logger.info(f"Config LOG_LEVEL={settings.LOG_LEVEL}")
    logger.info(f"Config TRACE_CALLS={settings.TRACE_CALLS}")
    logger.info(f"Config UPLOAD_DIR={lifecycle.upload_dir}")
    logger.info(f"Config CROPPED_DIR={lifecycle.cropped_dir}")
    logger.info(f"Config MAX_UPLOAD_MB={settings.MAX_UPLOAD_MB}")
    logger.info(f"Config OUTPUT_JPEG_QUALITY={settings.OUTPUT_JPEG_QUALITY}")
    logger.info(f"Config ALLOW_UPSCALE={settings.ALLOW_UPSCALE}")
    logger.info(f"Config MAX_CUSTOM_DIMENSION_PX={settings.MAX_CUSTOM_DIMENSION_PX}")
    logger.info("ConfigEnd")
    logger.info("Application startup complete")
    yield
    logger.info("Application shutdown")


app = FastAPI(
    title="Crop Review API",
    description="Image crop service with a pending/approved review workflow",
    version=APP_VERSION,
    lifespan=lifespan,
)

# Request logging middleware (must be first to capture all requests)
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware for development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict this
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError):
    """Handle APIError exceptions."""
    if exc.http_status >= 500:
        request_id = getattr(request.state, "request_id", "unknown")
        logger.warning(
            f"APIError request={request_id} code={exc.code} message={exc.message}"
        )
    return create_error_response(exc)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    request_id = getattr(request.state, "request_id", "unknown")
    logger.error(
        f"UnhandledException request={request_id} error={type(exc).__name__} message={str(exc)}",
        exc_info=True,
    )
    return create_error_response(
        APIError(
            code=ErrorCodes.INTERNAL_ERROR,
            message="An unexpected error occurred.",
            http_status=500,
        )
    )


app.include_router(health.router)
app.include_router(crops.router)


def run() -> None:
    """Serve the app with uvicorn on the configured host and port."""
    uvicorn.run("crop_review.main:app", host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
