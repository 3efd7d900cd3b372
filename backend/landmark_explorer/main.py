import uuid

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from landmark_explorer.api.routes import credential, health, tour
from landmark_explorer.capabilities.client import build_capability_client
from landmark_explorer.errors import (
    CapabilityError,
    LandmarkExplorerError,
    LedgerIndexError,
    ResourceError,
    TourStateError,
    ValidationError,
)
from landmark_explorer.logging import configure_logging
from landmark_explorer.models.contracts import ErrorResponse
from landmark_explorer.tour.session import TourSession
from landmark_explorer.workflows.tour_stop import TourStepMachine

configure_logging()

logger = structlog.get_logger()

# Most specific first; the first isinstance match wins.
_ERROR_STATUS: list[tuple[type[LandmarkExplorerError], int, str]] = [
    (ValidationError, 422, "validation_error"),
    (ResourceError, 422, "audio_unavailable"),
    (TourStateError, 409, "wrong_step"),
    (LedgerIndexError, 404, "stop_not_found"),
    (CapabilityError, 502, "capability_error"),
]


def _with_request_id(request: Request, response: JSONResponse) -> JSONResponse:
    response.headers["X-Request-ID"] = getattr(
        request.state, "request_id", request.headers.get("X-Request-ID", "")
    )
    return response


async def request_id_middleware(request: Request, call_next):
    """Attach a request ID to the structlog context and the X-Request-ID header."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Return ErrorResponse JSON instead of FastAPI's default {"detail": [...]}."""
    messages = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err["loc"])
        messages.append(f"{loc}: {err['msg']}")
    content = ErrorResponse(
        error="validation_error", message="; ".join(messages), retryable=False
    )
    return _with_request_id(request, JSONResponse(status_code=422, content=content.model_dump()))


async def domain_exception_handler(request: Request, exc: LandmarkExplorerError) -> JSONResponse:
    status, code = 400, "bad_request"
    for error_type, error_status, error_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            status, code = error_status, error_code
            break
    retryable = exc.retryable if isinstance(exc, CapabilityError) else False
    logger.info("request_rejected", path=request.url.path, error=code, status=status)
    content = ErrorResponse(error=code, message=str(exc), retryable=retryable)
    return _with_request_id(request, JSONResponse(status_code=status, content=content.model_dump()))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Consistent ErrorResponse JSON instead of a bare 500."""
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error_type=type(exc).__name__,
        exc_info=exc,
    )
    content = ErrorResponse(
        error="internal_error", message="An unexpected error occurred", retryable=True
    )
    return _with_request_id(request, JSONResponse(status_code=500, content=content.model_dump()))


def create_app(session: TourSession | None = None) -> FastAPI:
    """Build the app around one tour session (a fresh one unless given)."""
    app = FastAPI(
        title="Landmark Explorer API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url=None,
    )
    session = session or TourSession(build_capability_client())
    app.state.session = session
    app.state.machine = TourStepMachine(session)

    app.middleware("http")(request_id_middleware)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(LandmarkExplorerError, domain_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health.router)
    app.include_router(credential.router, prefix="/api/v1")
    app.include_router(tour.router, prefix="/api/v1")
    return app


app = create_app()
