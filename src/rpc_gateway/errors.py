"""Typed error taxonomy for the gateway and HTTP error envelope helpers."""

from __future__ import annotations

from enum import Enum
from typing import Any
from uuid import uuid4

from fastapi.responses import JSONResponse


class ErrorKind(str, Enum):
    """Closed set of failure kinds shared by the client and the HTTP layer."""

    INTERNAL = "internal_error"
    BLOCKCHAIN = "blockchain_error"
    VALIDATION = "validation_error"
    TIMEOUT = "timeout_error"
    NOT_FOUND = "not_found_error"
    PERMISSION = "permission_error"
    AUTH = "auth_error"
    AUTHORIZATION = "authorization_error"

    @property
    def status_code(self) -> int:
        return _STATUS_BY_KIND[self]

    @property
    def code(self) -> str:
        return self.value.upper()


_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.INTERNAL: 500,
    ErrorKind.BLOCKCHAIN: 503,
    ErrorKind.VALIDATION: 400,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.PERMISSION: 403,
    ErrorKind.AUTH: 401,
    ErrorKind.AUTHORIZATION: 403,
}


class GatewayError(Exception):
    """Failure raised by the gateway core.

    Carries a kind, a human-readable message, the lower-level cause (if any)
    and a context bag for diagnostics. Context is only ever extended.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        cause: BaseException | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.cause = cause
        self.context: dict[str, Any] = dict(context or {})
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.kind.value}: {self.message} - {self.cause}"
        return f"{self.kind.value}: {self.message}"

    def with_context(self, **fields: Any) -> GatewayError:
        self.context.update(fields)
        return self

    def caused_by(self, kind: ErrorKind) -> bool:
        """Return True if this error or any error in its cause chain has ``kind``."""

        current: BaseException | None = self
        seen: set[int] = set()
        while current is not None and id(current) not in seen:
            seen.add(id(current))
            if isinstance(current, GatewayError):
                if current.kind is kind:
                    return True
                current = current.cause or current.__cause__
            else:
                current = current.__cause__
        return False

    def chain_context(self) -> dict[str, Any]:
        """Context merged along the cause chain, outer keys winning."""

        merged: dict[str, Any] = {}
        current: BaseException | None = self
        while isinstance(current, GatewayError):
            for key, value in current.context.items():
                merged.setdefault(key, value)
            current = current.cause
        return merged


def internal_error(message: str, cause: BaseException | None = None) -> GatewayError:
    return GatewayError(ErrorKind.INTERNAL, message, cause=cause)


def blockchain_error(message: str, cause: BaseException | None = None) -> GatewayError:
    return GatewayError(ErrorKind.BLOCKCHAIN, message, cause=cause)


def validation_error(message: str, cause: BaseException | None = None) -> GatewayError:
    return GatewayError(ErrorKind.VALIDATION, message, cause=cause)


def timeout_error(message: str, cause: BaseException | None = None) -> GatewayError:
    return GatewayError(ErrorKind.TIMEOUT, message, cause=cause)


def not_found_error(message: str, cause: BaseException | None = None) -> GatewayError:
    return GatewayError(ErrorKind.NOT_FOUND, message, cause=cause)


def is_kind(error: BaseException, kind: ErrorKind) -> bool:
    return isinstance(error, GatewayError) and error.kind is kind


def http_status_for(error: GatewayError) -> int:
    """Map a gateway error to an HTTP status; timeouts win over wrapping kinds."""

    if error.caused_by(ErrorKind.TIMEOUT):
        return ErrorKind.TIMEOUT.status_code
    return error.kind.status_code


def public_code_for(error: GatewayError) -> str:
    if error.caused_by(ErrorKind.TIMEOUT):
        return ErrorKind.TIMEOUT.code
    return error.kind.code


class ApiError(Exception):
    """HTTP-layer error that is not part of the gateway taxonomy (e.g. rate limits)."""

    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        trace_id: str | None = None,
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.trace_id = trace_id
        self.details = details


def error_response(
    *,
    status_code: int,
    code: str,
    message: str,
    trace_id: str | None,
    details: list[dict[str, Any]] | None = None,
) -> JSONResponse:
    """Build standard error envelope response."""

    payload: dict[str, Any] = {
        "error": {
            "code": code,
            "message": message,
            "trace_id": trace_id or f"trc_{uuid4().hex[:8]}",
        }
    }
    if details:
        payload["error"]["details"] = details
    return JSONResponse(status_code=status_code, content=payload)
