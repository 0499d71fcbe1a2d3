"""JSON-RPC client for read-only queries against a single upstream node."""

from __future__ import annotations

from dataclasses import dataclass
from http.client import HTTPException, HTTPResponse
import logging
from time import monotonic, perf_counter
from typing import Callable, TypeVar
from urllib import error as url_error
from urllib import request as url_request

from pydantic import ValidationError

from .config import DEFAULT_TIMEOUT_SECONDS
from .errors import (
    GatewayError,
    blockchain_error,
    internal_error,
    not_found_error,
    timeout_error,
)
from .health import HEALTH_CHECK_TIMEOUT_SECONDS, HealthReport, describe_network, unhealthy
from .observability import NullReporter, RpcOutcomeReporter, log_event
from .schemas import (
    Block,
    BlockNumberResponse,
    BlockResponse,
    NetVersionResponse,
    RpcErrorEnvelope,
    RpcRequest,
    RpcResponse,
)

logger = logging.getLogger("rpc_gateway.rpc_client")

ResponseT = TypeVar("ResponseT", bound=RpcResponse)

_BODY_LOG_LIMIT = 500


@dataclass(frozen=True)
class Deadline:
    """Absolute point in monotonic time after which a call is abandoned."""

    expires_at: float

    @classmethod
    def after(cls, seconds: float) -> Deadline:
        return cls(expires_at=monotonic() + seconds)

    def remaining(self) -> float:
        return self.expires_at - monotonic()

    def expired(self) -> bool:
        return self.remaining() <= 0

    def earliest(self, other: Deadline | None) -> Deadline:
        if other is None or self.expires_at <= other.expires_at:
            return self
        return other


def _is_timeout(exc: BaseException) -> bool:
    if isinstance(exc, TimeoutError):
        return True
    if isinstance(exc, url_error.URLError) and isinstance(exc.reason, TimeoutError):
        return True
    return False


class RpcGatewayClient:
    """Issues one JSON-RPC call per operation and classifies every failure."""

    def __init__(
        self,
        *,
        rpc_url: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        reporter: RpcOutcomeReporter | None = None,
    ) -> None:
        if timeout_seconds <= 0:
            timeout_seconds = DEFAULT_TIMEOUT_SECONDS
        self._rpc_url = rpc_url
        self._timeout_seconds = float(timeout_seconds)
        self._reporter: RpcOutcomeReporter = reporter or NullReporter()
        log_event(
            logger,
            "rpc_client_initialized",
            level=logging.DEBUG,
            rpc_url=rpc_url,
            timeout_seconds=self._timeout_seconds,
        )

    @property
    def rpc_url(self) -> str:
        return self._rpc_url

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    def get_latest_block_number(self) -> str:
        """Return the latest block number exactly as the node reports it (hex)."""

        request = RpcRequest(method="eth_blockNumber")
        try:
            response = self.call(request, BlockNumberResponse)
        except GatewayError as exc:
            log_event(logger, "latest_block_number_failed", level=logging.ERROR, error=str(exc))
            raise blockchain_error(
                "Failed to get latest block number", exc
            ).with_context(**exc.context) from exc

        log_event(
            logger,
            "latest_block_number_received",
            level=logging.DEBUG,
            block_number=response.result,
        )
        return response.result

    def get_block_by_number(self, block_number: str, include_transactions: bool = True) -> Block:
        """Return the block for a ``0x`` hex number or tag.

        A ``null`` result means the node has no such block and is reported as
        not-found, separately from transport and decode failures.
        """

        request = RpcRequest(
            method="eth_getBlockByNumber",
            params=[block_number, include_transactions],
        )
        try:
            response = self.call(request, BlockResponse)
        except GatewayError as exc:
            log_event(
                logger,
                "block_lookup_failed",
                level=logging.ERROR,
                block_number=block_number,
                error=str(exc),
            )
            raise blockchain_error(
                f"Failed to get block data for block {block_number}", exc
            ).with_context(**exc.context).with_context(block_number=block_number) from exc

        if response.result is None:
            log_event(logger, "block_not_found", level=logging.WARNING, block_number=block_number)
            raise not_found_error("Block not found").with_context(block_number=block_number)
        return response.result

    def health_check(self, timeout_seconds: float | None = None) -> HealthReport:
        """Check the node with ``net_version`` under a short, independent deadline."""

        caller_deadline = None
        if timeout_seconds is not None:
            caller_deadline = Deadline.after(timeout_seconds)
        deadline = Deadline.after(HEALTH_CHECK_TIMEOUT_SECONDS).earliest(caller_deadline)

        try:
            response = self.call(
                RpcRequest(method="net_version"),
                NetVersionResponse,
                deadline=deadline,
                check=_require_network_id,
            )
        except GatewayError as exc:
            log_event(logger, "rpc_health_check_failed", level=logging.WARNING, error=str(exc))
            return unhealthy(exc)

        return describe_network(response.result)

    def call(
        self,
        request: RpcRequest,
        response_model: type[ResponseT],
        *,
        deadline: Deadline | None = None,
        check: Callable[[ResponseT], None] | None = None,
    ) -> ResponseT:
        """Send ``request`` and decode the body into ``response_model``.

        Without an explicit ``deadline`` the configured client timeout applies.
        ``check`` may reject a decoded response with a ``GatewayError``; the
        call is then reported as an error outcome.
        """

        if deadline is None:
            deadline = Deadline.after(self._timeout_seconds)

        started = perf_counter()
        try:
            response = self._send(request, response_model, deadline)
            if check is not None:
                check(response)
        except GatewayError:
            self._report(request.method, "error", perf_counter() - started)
            raise
        self._report(request.method, "success", perf_counter() - started)
        return response

    def _report(self, method: str, status: str, seconds: float) -> None:
        self._reporter.record_outcome(method, status)
        self._reporter.record_duration(method, seconds)

    def _send(
        self,
        request: RpcRequest,
        response_model: type[ResponseT],
        deadline: Deadline,
    ) -> ResponseT:
        try:
            payload = request.to_wire()
        except (TypeError, ValueError) as exc:
            raise internal_error("Failed to marshal JSON request", exc) from exc

        remaining = deadline.remaining()
        if remaining <= 0:
            raise timeout_error("RPC request timed out").with_context(method=request.method)

        http_request = url_request.Request(
            url=self._rpc_url,
            data=payload,
            method="POST",
            headers={"Content-Type": "application/json"},
        )

        log_event(logger, "rpc_request_sent", level=logging.DEBUG, method=request.method, url=self._rpc_url)
        started = perf_counter()

        try:
            with url_request.urlopen(http_request, timeout=remaining) as response:
                status_code = response.status
                body = self._read_body(request.method, response)
        except url_error.HTTPError as exc:
            body = _read_error_body(exc)
            raise self._non_200(request.method, exc.code, body) from exc
        except (url_error.URLError, OSError, HTTPException) as exc:
            elapsed_ms = round((perf_counter() - started) * 1000.0, 3)
            if _is_timeout(exc):
                log_event(
                    logger,
                    "rpc_request_timeout",
                    level=logging.WARNING,
                    method=request.method,
                    elapsed_ms=elapsed_ms,
                )
                raise timeout_error("RPC request timed out", exc).with_context(
                    method=request.method
                ) from exc
            log_event(
                logger,
                "rpc_request_failed",
                level=logging.ERROR,
                method=request.method,
                error=str(exc),
            )
            raise internal_error("Failed to execute HTTP request", exc).with_context(
                method=request.method
            ) from exc

        log_event(
            logger,
            "rpc_response_received",
            level=logging.DEBUG,
            method=request.method,
            status=status_code,
            elapsed_ms=round((perf_counter() - started) * 1000.0, 3),
        )

        if status_code != 200:
            raise self._non_200(request.method, status_code, body)

        return self._decode(request.method, body, response_model)

    def _read_body(self, method: str, response: HTTPResponse) -> bytes:
        try:
            return response.read()
        except (OSError, HTTPException) as exc:
            if _is_timeout(exc):
                raise timeout_error("RPC response read timed out", exc).with_context(
                    method=method
                ) from exc
            raise internal_error("Failed to read response body", exc).with_context(
                method=method
            ) from exc

    def _non_200(self, method: str, status_code: int, body: bytes) -> GatewayError:
        text = body.decode("utf-8", errors="replace")
        log_event(
            logger,
            "rpc_non_200_response",
            level=logging.WARNING,
            method=method,
            status=status_code,
            body=text[:_BODY_LOG_LIMIT],
        )
        return blockchain_error(
            f"RPC server returned non-200 response: {status_code}"
        ).with_context(status_code=status_code, response=text)

    def _decode(self, method: str, body: bytes, response_model: type[ResponseT]) -> ResponseT:
        text = body.decode("utf-8", errors="replace")
        decoded: ResponseT | None = None
        decode_failure: ValidationError | None = None
        try:
            decoded = response_model.model_validate_json(body)
        except ValidationError as exc:
            decode_failure = exc

        # An embedded error wins over whatever the typed decode produced.
        embedded = _embedded_error(body)
        if embedded is not None:
            code, message = embedded
            log_event(
                logger,
                "rpc_embedded_error",
                level=logging.ERROR,
                method=method,
                error_code=code,
                error_message=message,
            )
            raise blockchain_error(f"RPC error: {message} (code: {code})").with_context(
                error_code=code,
                error_message=message,
            )

        if decode_failure is not None or decoded is None:
            log_event(
                logger,
                "rpc_response_decode_failed",
                level=logging.ERROR,
                method=method,
                error=str(decode_failure),
                response=text[:_BODY_LOG_LIMIT],
            )
            raise internal_error("Failed to unmarshal JSON response", decode_failure).with_context(
                response=text
            ) from decode_failure

        if not decoded.has_result:
            raise blockchain_error("RPC response carried neither result nor error").with_context(
                response=text
            )
        return decoded


def _require_network_id(response: NetVersionResponse) -> None:
    if not response.result:
        raise blockchain_error("RPC node returned an empty network id")


def _embedded_error(body: bytes) -> tuple[int, str] | None:
    try:
        envelope = RpcErrorEnvelope.model_validate_json(body)
    except ValidationError:
        return None
    if envelope.error is None or envelope.error.code == 0:
        return None
    return envelope.error.code, envelope.error.message


def _read_error_body(exc: url_error.HTTPError) -> bytes:
    try:
        return exc.read() or b""
    except (OSError, ValueError):
        return b""
