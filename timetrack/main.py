import logging
import time
from typing import Any
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from timetrack.errors import ApiError, error_response
from timetrack.logging_utils import setup_json_logging
from timetrack.routers import auth, policies, reports, time_entries
from timetrack.settings import get_cors_origins, get_settings

logger = logging.getLogger("timetrack.request")

HTTP_ERROR_CODES = {
    401: "INVALID_TOKEN",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


async def request_context_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-Id") or uuid4().hex
    request.state.request_id = request_id

    started = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        response.headers["X-Request-Id"] = request_id
        return response
    finally:
        logger.info(
            "request_complete",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "latency_ms": round((time.perf_counter() - started) * 1000, 2),
                "actor": getattr(request.state, "actor", None),
                "actor_id": getattr(request.state, "actor_id", None),
                "entry_id": getattr(request.state, "entry_id", None),
            },
        )


async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
    return error_response(request, status_code=exc.status_code, code=exc.code, message=exc.message)


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    return error_response(
        request,
        status_code=exc.status_code,
        code=HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR"),
        message=str(exc.detail) if exc.detail else "Request failed.",
    )


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(request, status_code=422, code="VALIDATION_ERROR", message=str(exc.errors()))


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "unhandled_error",
        extra={
            "request_id": getattr(request.state, "request_id", None),
            "method": request.method,
            "path": request.url.path,
        },
    )
    return error_response(request, status_code=500, code="INTERNAL_ERROR", message="Unexpected server error.")


def create_app() -> FastAPI:
    settings = get_settings()
    setup_json_logging(settings.log_level, service=settings.app_name)

    application = FastAPI(title=settings.app_name, version="0.1.0")
    application.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.middleware("http")(request_context_middleware)

    application.add_exception_handler(ApiError, handle_api_error)
    application.add_exception_handler(HTTPException, handle_http_exception)
    application.add_exception_handler(RequestValidationError, handle_validation_error)
    application.add_exception_handler(Exception, handle_unexpected_error)

    for router in (auth.router, time_entries.router, policies.router, reports.router):
        application.include_router(router)

    @application.get("/health")
    def health() -> dict[str, Any]:
        return {"status": "ok", "app": settings.app_name}

    return application


app = create_app()
