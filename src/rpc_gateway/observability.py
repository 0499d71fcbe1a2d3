"""Structured logging, RPC outcome reporting and in-memory metrics."""

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
from threading import Lock
from typing import Any, Protocol


def configure_logging(level: str) -> None:
    """Configure service logging format once."""

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
    )


def log_event(
    logger: logging.Logger,
    event: str,
    *,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    """Emit one structured JSON log line."""

    if not logger.isEnabledFor(level):
        return
    payload = {
        "timestamp": datetime.now(tz=timezone.utc).isoformat(),
        "event": event,
        **fields,
    }
    logger.log(level, json.dumps(payload, default=str, separators=(",", ":")))


class RpcOutcomeReporter(Protocol):
    """Sink for per-call RPC outcomes, injected into the gateway client."""

    def record_outcome(self, method: str, status: str) -> None:
        """Count one RPC call for ``method`` with ``status`` success/error."""

    def record_duration(self, method: str, seconds: float) -> None:
        """Observe the wall-clock duration of one RPC call."""


class NullReporter:
    """Reporter that discards everything."""

    def record_outcome(self, method: str, status: str) -> None:
        return None

    def record_duration(self, method: str, seconds: float) -> None:
        return None


class GatewayMetrics:
    """Thread-safe in-memory metrics for gateway requests and RPC calls."""

    def __init__(self) -> None:
        self._lock = Lock()
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self.requests_total = 0
            self.errors_total = 0
            self.rate_limited_total = 0
            self.requests_by_endpoint: dict[tuple[str, str, int], int] = {}
            self.request_duration_seconds_sum: dict[tuple[str, str], float] = {}
            self.request_duration_seconds_count: dict[tuple[str, str], int] = {}
            self.rpc_requests: dict[tuple[str, str], int] = {}
            self.rpc_duration_seconds_sum: dict[str, float] = {}
            self.rpc_duration_seconds_count: dict[str, int] = {}
            self.blockchain_height: int | None = None

    def record_request(self, endpoint: str, method: str, status: int, seconds: float) -> None:
        key = (endpoint, method, status)
        timing_key = (endpoint, method)
        with self._lock:
            self.requests_total += 1
            self.requests_by_endpoint[key] = self.requests_by_endpoint.get(key, 0) + 1
            self.request_duration_seconds_sum[timing_key] = (
                self.request_duration_seconds_sum.get(timing_key, 0.0) + max(seconds, 0.0)
            )
            self.request_duration_seconds_count[timing_key] = (
                self.request_duration_seconds_count.get(timing_key, 0) + 1
            )

    def record_error(self) -> None:
        with self._lock:
            self.errors_total += 1

    def record_rate_limited(self) -> None:
        with self._lock:
            self.rate_limited_total += 1

    def record_outcome(self, method: str, status: str) -> None:
        key = (method, status)
        with self._lock:
            self.rpc_requests[key] = self.rpc_requests.get(key, 0) + 1

    def record_duration(self, method: str, seconds: float) -> None:
        with self._lock:
            self.rpc_duration_seconds_sum[method] = (
                self.rpc_duration_seconds_sum.get(method, 0.0) + max(seconds, 0.0)
            )
            self.rpc_duration_seconds_count[method] = (
                self.rpc_duration_seconds_count.get(method, 0) + 1
            )

    def set_blockchain_height(self, height: int) -> None:
        with self._lock:
            self.blockchain_height = height

    def render_prometheus(self) -> str:
        with self._lock:
            lines = [
                "# HELP rpc_gateway_requests_total Total gateway requests.",
                "# TYPE rpc_gateway_requests_total counter",
                f"rpc_gateway_requests_total {self.requests_total}",
                "# HELP rpc_gateway_errors_total Total gateway errors.",
                "# TYPE rpc_gateway_errors_total counter",
                f"rpc_gateway_errors_total {self.errors_total}",
                "# HELP rpc_gateway_rate_limited_total Total rate-limited requests.",
                "# TYPE rpc_gateway_rate_limited_total counter",
                f"rpc_gateway_rate_limited_total {self.rate_limited_total}",
            ]
            lines.extend(
                [
                    "# HELP rpc_gateway_http_requests_total Gateway requests by endpoint, method and status.",
                    "# TYPE rpc_gateway_http_requests_total counter",
                ]
            )
            for (endpoint, method, status), count in sorted(self.requests_by_endpoint.items()):
                lines.append(
                    f"rpc_gateway_http_requests_total{{endpoint=\"{endpoint}\",method=\"{method}\",status=\"{status}\"}} {count}"
                )
            lines.extend(
                [
                    "# HELP rpc_gateway_http_request_duration_seconds_sum Sum of request durations in seconds.",
                    "# TYPE rpc_gateway_http_request_duration_seconds_sum counter",
                ]
            )
            for (endpoint, method), total in sorted(self.request_duration_seconds_sum.items()):
                lines.append(
                    f"rpc_gateway_http_request_duration_seconds_sum{{endpoint=\"{endpoint}\",method=\"{method}\"}} {total:.6f}"
                )
            lines.extend(
                [
                    "# HELP rpc_gateway_http_request_duration_seconds_count Number of request duration observations.",
                    "# TYPE rpc_gateway_http_request_duration_seconds_count counter",
                ]
            )
            for (endpoint, method), count in sorted(self.request_duration_seconds_count.items()):
                lines.append(
                    f"rpc_gateway_http_request_duration_seconds_count{{endpoint=\"{endpoint}\",method=\"{method}\"}} {count}"
                )

            lines.extend(
                [
                    "# HELP rpc_gateway_rpc_requests_total Total RPC calls to the upstream node.",
                    "# TYPE rpc_gateway_rpc_requests_total counter",
                ]
            )
            for (method, status), count in sorted(self.rpc_requests.items()):
                lines.append(
                    f"rpc_gateway_rpc_requests_total{{method=\"{method}\",status=\"{status}\"}} {count}"
                )

            lines.extend(
                [
                    "# HELP rpc_gateway_rpc_duration_seconds_sum Sum of RPC call durations in seconds.",
                    "# TYPE rpc_gateway_rpc_duration_seconds_sum counter",
                ]
            )
            for method, total in sorted(self.rpc_duration_seconds_sum.items()):
                lines.append(f"rpc_gateway_rpc_duration_seconds_sum{{method=\"{method}\"}} {total:.6f}")
            lines.extend(
                [
                    "# HELP rpc_gateway_rpc_duration_seconds_count Number of RPC duration observations.",
                    "# TYPE rpc_gateway_rpc_duration_seconds_count counter",
                ]
            )
            for method, count in sorted(self.rpc_duration_seconds_count.items()):
                lines.append(f"rpc_gateway_rpc_duration_seconds_count{{method=\"{method}\"}} {count}")

            if self.blockchain_height is not None:
                lines.extend(
                    [
                        "# HELP rpc_gateway_blockchain_height Latest observed block height.",
                        "# TYPE rpc_gateway_blockchain_height gauge",
                        f"rpc_gateway_blockchain_height {self.blockchain_height}",
                    ]
                )
        return "\n".join(lines) + "\n"


_metrics = GatewayMetrics()


def get_metrics() -> GatewayMetrics:
    """Return singleton metrics collector."""

    return _metrics
