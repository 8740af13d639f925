"""API middleware: problem-details error handling, body limits and timing.

Every error leaves the service as ``application/problem+json`` carrying a
stable ``errorCode`` and a trace id. Stack traces are logged, never returned.
"""

from __future__ import annotations

import time
import uuid
from typing import TYPE_CHECKING, Any

import structlog
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from opentelemetry import trace
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from release_retention.api.dependencies import get_settings
from release_retention.api.errors import ApiErrorCode
from release_retention.api.schemas import ProblemDetails, ValidationMessageDto
from release_retention.domain.errors import DomainInvariantError, RetentionValidationError

if TYPE_CHECKING:
    from fastapi import FastAPI, Response
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

    from release_retention.settings import Settings

logger = structlog.get_logger(__name__)

PROBLEM_MEDIA_TYPE = "application/problem+json"


# ---------------------------------------------------------------------------
# Problem responses
# ---------------------------------------------------------------------------


def _trace_id() -> str:
    """Current OpenTelemetry trace id, or a fresh random id outside a trace."""
    context = trace.get_current_span().get_span_context()
    if context.is_valid:
        return trace.format_trace_id(context.trace_id)
    return uuid.uuid4().hex


def _correlation_id(request: Request) -> str | None:
    return request.headers.get(get_settings(request).api.correlation_header)


def problem_response(
    request: Request,
    *,
    status: int,
    title: str,
    detail: str | None,
    error_code: str,
    errors: list[ValidationMessageDto] | None = None,
) -> ORJSONResponse:
    """Build a problem+json response and log it once at the boundary."""
    trace_id = _trace_id()
    correlation_id = _correlation_id(request)
    problem = ProblemDetails(
        type=f"https://httpstatuses.com/{status}",
        title=title,
        status=status,
        detail=detail,
        instance=request.url.path,
        error_code=error_code,
        trace_id=trace_id,
        correlation_id=correlation_id,
        errors=errors,
    )
    logger.warning(
        "request_failed",
        status=status,
        error_code=error_code,
        trace_id=trace_id,
        correlation_id=correlation_id,
        path=request.url.path,
    )
    return ORJSONResponse(
        status_code=status,
        content=problem.model_dump(mode="json", by_alias=True, exclude_none=True),
        media_type=PROBLEM_MEDIA_TYPE,
    )


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


async def _retention_validation_error_handler(
    request: Request,
    exc: RetentionValidationError,
) -> ORJSONResponse:
    """Convert a dataset validation failure to a 400 problem."""
    return problem_response(
        request,
        status=400,
        title="Validation Error",
        detail=exc.message,
        error_code=exc.code,
        errors=[ValidationMessageDto(code=exc.code, message=exc.message)],
    )


async def _domain_invariant_error_handler(
    request: Request,
    exc: DomainInvariantError,
) -> ORJSONResponse:
    """Internal rule violations are server faults; the message stays in the logs."""
    logger.error("domain_invariant_violated", code=exc.code, message=exc.message)
    return problem_response(
        request,
        status=500,
        title="Domain Invariant Violation",
        detail="An internal rule violation occurred.",
        error_code=ApiErrorCode.DOMAIN_INVARIANT,
    )


async def _request_validation_error_handler(
    request: Request,
    exc: RequestValidationError,
) -> ORJSONResponse:
    """Malformed JSON or a body that does not match the request schema."""
    errors = [
        ValidationMessageDto(
            code=ApiErrorCode.INVALID_PAYLOAD,
            message=str(error.get("msg", "Invalid value")),
            path=".".join(str(part) for part in error.get("loc", ())) or None,
        )
        for error in exc.errors()
    ]
    return problem_response(
        request,
        status=400,
        title="Invalid Payload",
        detail="The request body could not be parsed or does not match the expected schema.",
        error_code=ApiErrorCode.INVALID_PAYLOAD,
        errors=errors,
    )


async def _generic_error_handler(
    request: Request,
    exc: Exception,
) -> ORJSONResponse:
    """Convert unhandled exceptions to a 500 problem without internals."""
    logger.error("unhandled_exception", exc_info=exc)
    return problem_response(
        request,
        status=500,
        title="Internal Server Error",
        detail="An unexpected error occurred.",
        error_code=ApiErrorCode.INTERNAL_ERROR,
    )


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


class BodySizeLimitMiddleware:
    """Rejects request bodies larger than ``max_body_bytes`` with a 413 problem.

    A declared Content-Length is checked up front. Bodies without one (chunked
    or streamed) are read and counted here, then replayed to the app.
    """

    def __init__(self, app: ASGIApp, max_body_bytes: int) -> None:
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        content_length = request.headers.get("content-length")
        if content_length is not None and content_length.isdigit():
            if int(content_length) > self.max_body_bytes:
                await self._reject(request, scope, receive, send)
            else:
                await self.app(scope, receive, send)
            return

        chunks: list[bytes] = []
        received = 0
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] == "http.disconnect":
                return
            chunk = message.get("body", b"")
            received += len(chunk)
            if received > self.max_body_bytes:
                await self._reject(request, scope, receive, send)
                return
            chunks.append(chunk)
            more_body = message.get("more_body", False)

        await self.app(scope, _replay(b"".join(chunks), receive), send)

    async def _reject(self, request: Request, scope: Scope, receive: Receive, send: Send) -> None:
        response = problem_response(
            request,
            status=413,
            title="Payload Too Large",
            detail=f"Request body exceeds the {self.max_body_bytes} byte limit.",
            error_code=ApiErrorCode.PAYLOAD_TOO_LARGE,
        )
        await response(scope, receive, send)


def _replay(body: bytes, receive: Receive) -> Receive:
    """Hand ``body`` to the app as one message, then defer to the server."""
    sent = False

    async def replay() -> Message:
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """Adds an X-Request-Time-Ms header to every response."""

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        start_time = time.monotonic()
        response: Response = await call_next(request)
        elapsed_ms = (time.monotonic() - start_time) * 1000
        response.headers["X-Request-Time-Ms"] = f"{elapsed_ms:.1f}"
        return response


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


def register_middleware(app: FastAPI, settings: Settings) -> None:
    """Attach all middleware and exception handlers to the app."""
    app.add_exception_handler(RetentionValidationError, _retention_validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(DomainInvariantError, _domain_invariant_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _request_validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_error_handler)
    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=settings.api.max_body_bytes)
    # Added last so it wraps everything, including 413 responses
    app.add_middleware(RequestTimingMiddleware)
