"""FastAPI app for the RPC gateway."""

from __future__ import annotations

import logging
from time import perf_counter

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError

from .config import get_settings
from .errors import (
    ApiError,
    ErrorKind,
    GatewayError,
    error_response,
    http_status_for,
    is_kind,
    public_code_for,
)
from .observability import configure_logging, get_metrics, log_event
from .routes import router

settings = get_settings()
configure_logging(settings.log_level)

app = FastAPI(title=settings.service_name, version=settings.service_version)
app.include_router(router)
logger = logging.getLogger("rpc_gateway")
_metrics = get_metrics()


@app.middleware("http")
async def access_log(request: Request, call_next):
    started = perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        seconds = perf_counter() - started
        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)
        log_event(
            logger,
            "http_request",
            path=request.url.path,
            method=request.method,
            status=status_code,
            client_ip=request.client.host if request.client else None,
            latency_ms=round(seconds * 1000.0, 3),
        )
        if settings.metrics_enabled:
            _metrics.record_request(endpoint, request.method, status_code, seconds)


@app.exception_handler(GatewayError)
async def handle_gateway_error(request: Request, exc: GatewayError):
    if settings.metrics_enabled:
        _metrics.record_error()
    status_code = http_status_for(exc)
    log_event(
        logger,
        "request_failed",
        level=logging.WARNING if status_code < 500 else logging.ERROR,
        path=request.url.path,
        method=request.method,
        kind=exc.kind.value,
        status=status_code,
        error=str(exc),
        context=exc.chain_context(),
    )
    details = None
    if is_kind(exc, ErrorKind.VALIDATION) or is_kind(exc, ErrorKind.NOT_FOUND):
        block_number = exc.context.get("block_number")
        if block_number is not None:
            details = [{"field": "block_number", "issue": f"{exc.message}: {block_number}"}]
    return error_response(
        status_code=status_code,
        code=public_code_for(exc),
        message=exc.message,
        trace_id=request.headers.get("x-trace-id"),
        details=details,
    )


@app.exception_handler(ApiError)
async def handle_api_error(request: Request, exc: ApiError):
    if settings.metrics_enabled:
        _metrics.record_error()
        if exc.status_code == 429:
            _metrics.record_rate_limited()
    return error_response(
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
        trace_id=exc.trace_id or request.headers.get("x-trace-id"),
        details=exc.details,
    )


@app.exception_handler(HTTPException)
async def handle_http_exception(request: Request, exc: HTTPException):
    if settings.metrics_enabled:
        _metrics.record_error()
    status_to_code = {
        400: "BAD_REQUEST",
        401: "UNAUTHORIZED",
        403: "FORBIDDEN",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        422: "UNPROCESSABLE_ENTITY",
        429: "RATE_LIMITED",
    }
    code = status_to_code.get(exc.status_code, "INTERNAL_SERVER_ERROR")
    return error_response(
        status_code=exc.status_code,
        code=code,
        message=str(exc.detail),
        trace_id=request.headers.get("x-trace-id"),
    )


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    if settings.metrics_enabled:
        _metrics.record_error()
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", [])),
            "issue": err.get("msg", "invalid value"),
        }
        for err in exc.errors()
    ]
    return error_response(
        status_code=422,
        code="UNPROCESSABLE_ENTITY",
        message="Validation failed.",
        trace_id=request.headers.get("x-trace-id"),
        details=details,
    )


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    if settings.metrics_enabled:
        _metrics.record_error()
    log_event(
        logger,
        "unhandled_exception",
        level=logging.ERROR,
        path=request.url.path,
        method=request.method,
        error_type=type(exc).__name__,
        error=str(exc),
    )
    return error_response(
        status_code=500,
        code="INTERNAL_SERVER_ERROR",
        message="Internal server error.",
        trace_id=request.headers.get("x-trace-id"),
    )
