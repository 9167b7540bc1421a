from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from structlog.contextvars import bind_contextvars, reset_contextvars

from sprout_connector.api.routes import router
from sprout_connector.dependencies import get_settings, get_telemetry
from sprout_connector.logging_config import configure_application_logging
from sprout_connector.services.errors import (
    InvalidInputError,
    SproutVideoApiError,
    VideoDataError,
    VideoNotFoundError,
)

LOGGER = logging.getLogger("sprout_connector.http")


def health_check() -> dict[str, str]:
    return {"status": "ok"}


@asynccontextmanager
async def app_lifespan(_: FastAPI) -> AsyncIterator[None]:
    configure_application_logging(get_settings())
    yield


def _error_response(status_code: int, detail: str, *, source: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail, "source": source})


async def _invalid_input_handler(_: Request, exc: Exception) -> Response:
    return _error_response(400, str(exc), source="input")


async def _request_validation_handler(_: Request, exc: Exception) -> Response:
    assert isinstance(exc, RequestValidationError)
    return _error_response(422, _describe_validation_errors(exc), source="input")


async def _video_not_found_handler(_: Request, exc: Exception) -> Response:
    return _error_response(404, str(exc), source="input")


async def _sproutvideo_api_error_handler(_: Request, exc: Exception) -> Response:
    assert isinstance(exc, SproutVideoApiError)
    if exc.auth_failed:
        return _error_response(401, "SproutVideo rejected the API key.", source="remote")
    LOGGER.warning("sproutvideo request failed status=%s", exc.status_code)
    return _error_response(502, str(exc), source="remote")


async def _video_data_error_handler(_: Request, exc: Exception) -> Response:
    LOGGER.error("inconsistent sproutvideo data: %s", exc)
    return _error_response(502, str(exc), source="remote")


def _describe_validation_errors(exc: RequestValidationError) -> str:
    problems: list[str] = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        field = ".".join(location) or "body"
        problems.append(f"{field}: {error.get('msg', 'invalid value')}")
    return "; ".join(problems) or "Invalid request."


def create_app() -> FastAPI:
    app = FastAPI(title="SproutVideo Connector API", version="0.1.0", lifespan=app_lifespan)

    async def request_context_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        telemetry = get_telemetry()
        incoming_request_id = request.headers.get("X-Request-ID")
        request_id = (
            incoming_request_id.strip()
            if isinstance(incoming_request_id, str) and incoming_request_id.strip()
            else str(uuid4())
        )
        context_tokens = bind_contextvars(
            http_request_id=request_id,
            http_method=request.method,
            http_path=request.url.path,
        )
        started_at = perf_counter()
        telemetry.emit(
            "http.request.start",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        try:
            response = await call_next(request)
        except Exception as exc:
            telemetry.emit(
                "http.request.error",
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                duration_ms=int((perf_counter() - started_at) * 1000),
                error_type=type(exc).__name__,
            )
            raise
        else:
            response.headers["X-Request-ID"] = request_id
            telemetry.emit(
                "http.request.finish",
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                duration_ms=int((perf_counter() - started_at) * 1000),
                status_code=response.status_code,
            )
            return response
        finally:
            reset_contextvars(**context_tokens)

    app.middleware("http")(request_context_middleware)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(InvalidInputError, _invalid_input_handler)
    app.add_exception_handler(VideoNotFoundError, _video_not_found_handler)
    app.add_exception_handler(SproutVideoApiError, _sproutvideo_api_error_handler)
    app.add_exception_handler(VideoDataError, _video_data_error_handler)
    app.include_router(router)
    app.add_api_route(
        "/health",
        health_check,
        methods=["GET"],
        tags=["system"],
        operation_id="health_check",
    )
    return app


app = create_app()
