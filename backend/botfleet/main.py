"""FastAPI application entry point.

Wires the supervisor into the REST command surface, the observer
WebSocket and the metrics endpoint.
"""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from botfleet import __version__
from botfleet.api import bots_router, profiles_router
from botfleet.config import get_settings
from botfleet.logging_config import bind_context, clear_context, configure_logging, get_logger
from botfleet.middleware.prometheus import setup_prometheus
from botfleet.schemas import ErrorDetail, ErrorResponse, HealthResponse
from botfleet.supervisor.supervisor import get_supervisor, init_supervisor, shutdown_supervisor
from botfleet.utils.errors import ErrorCode, SupervisorError
from botfleet.utils.json_utils import ORJSONResponse
from botfleet.ws.gateway import router as ws_router

settings = get_settings()

configure_logging(
    log_level=settings.log_level,
    json_logs=settings.app_env == "production",
    app_env=settings.app_env,
)
logger = get_logger(__name__)

API_PREFIX = "/api"
REQUEST_ID_HEADER = "X-Request-ID"


# =============================================================================
# Lifespan Events
# =============================================================================


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Start the supervisor with the app and tear every session down on exit."""
    supervisor = await init_supervisor()
    logger.info(
        "app_started",
        version=__version__,
        env=settings.app_env,
        supervisor_running=supervisor.is_running,
    )

    yield

    await shutdown_supervisor()
    logger.info("app_stopped")


app = FastAPI(
    title="Bot Fleet Supervisor",
    description="Supervises game-server bot sessions and streams their state to observers",
    version=__version__,
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
)

setup_prometheus(app, app_version=__version__)


# =============================================================================
# Middleware
# =============================================================================


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tag each HTTP request with a trace id and log its outcome.

    The id comes from the ``X-Request-ID`` header when the caller sends one
    and is echoed back on the response.
    """

    async def dispatch(self, request: Request, call_next):
        # WebSocket upgrades bypass BaseHTTPMiddleware
        if request.headers.get("upgrade", "").lower() == "websocket":
            return await call_next(request)

        trace_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = trace_id
        bind_context(trace_id=trace_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        finally:
            clear_context()

        response.headers[REQUEST_ID_HEADER] = trace_id
        logger.info(
            "http_request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
            trace_id=trace_id,
        )
        return response


app.add_middleware(RequestIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_origins.split(",")],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", REQUEST_ID_HEADER],
    expose_headers=[REQUEST_ID_HEADER],
)


# =============================================================================
# Error Handlers
# =============================================================================

_STATUS_BY_CODE = {
    ErrorCode.ALREADY_CONNECTED.value: status.HTTP_409_CONFLICT,
    ErrorCode.CONFIG_NOT_FOUND.value: status.HTTP_404_NOT_FOUND,
    ErrorCode.UNKNOWN_SESSION.value: status.HTTP_404_NOT_FOUND,
    ErrorCode.PROFILE_NOT_FOUND.value: status.HTTP_404_NOT_FOUND,
    ErrorCode.TRANSPORT_ERROR.value: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.INVALID_REQUEST.value: status.HTTP_400_BAD_REQUEST,
}


def _trace_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request.headers.get(
        REQUEST_ID_HEADER, str(uuid.uuid4())
    )


def error_envelope(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> ORJSONResponse:
    """Render the shared ``{"error": ..., "traceId": ...}`` body."""
    body = ErrorResponse(
        error=ErrorDetail(code=code, message=message, details=details or {}),
        trace_id=_trace_id(request),
    )
    return ORJSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True),
        headers=headers,
    )


@app.exception_handler(SupervisorError)
async def supervisor_error_handler(request: Request, exc: SupervisorError) -> ORJSONResponse:
    logger.warning("supervisor_error", code=exc.code, message=exc.message)
    return error_envelope(
        request,
        _STATUS_BY_CODE.get(exc.code, status.HTTP_400_BAD_REQUEST),
        exc.code,
        exc.message,
        exc.details,
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> ORJSONResponse:
    return error_envelope(
        request,
        exc.status_code,
        "HTTP_ERROR",
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    logger.error(
        "unhandled_error",
        error_type=type(exc).__name__,
        error_message=str(exc),
        path=request.url.path,
        exc_info=True,
    )
    message = f"{type(exc).__name__}: {exc}" if settings.app_debug else "Internal server error"
    return error_envelope(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorCode.INTERNAL_ERROR.value,
        message,
    )


# =============================================================================
# Routes
# =============================================================================


@app.get("/health", tags=["Health"], response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness plus session and observer counts."""
    supervisor = get_supervisor()
    return HealthResponse(
        status="healthy" if supervisor.is_running else "starting",
        version=__version__,
        sessions=supervisor.session_count,
        observers=supervisor.broadcaster.observer_count,
    )


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    return {"name": "botfleet", "version": __version__, "docs": "/docs"}


app.include_router(bots_router, prefix=API_PREFIX)
app.include_router(profiles_router, prefix=API_PREFIX)
app.include_router(ws_router)
