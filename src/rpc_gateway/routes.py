"""HTTP routes for the RPC gateway."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from time import perf_counter

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse

from .config import get_settings
from .identifiers import normalize_block_identifier
from .observability import get_metrics, log_event
from .rpc_client import RpcGatewayClient
from .schemas import Block, DependencyHealth, HealthCheckResponse, LatestBlockResponse
from .security import enforce_rate_limit

router = APIRouter()
api_router = APIRouter(prefix="/api/v1", dependencies=[Depends(enforce_rate_limit)])
logger = logging.getLogger("rpc_gateway")

_settings = get_settings()
_metrics = get_metrics()
_client = RpcGatewayClient(
    rpc_url=_settings.rpc_url,
    timeout_seconds=_settings.timeout_seconds,
    reporter=_metrics,
)


def _parse_height(block_number: str) -> int | None:
    if len(block_number) <= 2 or not block_number.startswith("0x"):
        return None
    try:
        return int(block_number[2:], 16)
    except ValueError:
        return None


@router.get("/health", response_model=HealthCheckResponse, response_model_exclude_none=True)
def health() -> HealthCheckResponse:
    started = perf_counter()
    report = _client.health_check()
    latency_ms = int((perf_counter() - started) * 1000.0)

    log_event(
        logger,
        "rpc_health_checked",
        healthy=report.healthy,
        description=report.description,
        network_id=report.network_id,
        error=str(report.error) if report.error else None,
        latency_ms=latency_ms,
    )

    return HealthCheckResponse(
        status="ok" if report.healthy else "degraded",
        service=_settings.service_name,
        version=_settings.service_version,
        timestamp=datetime.now(tz=timezone.utc),
        dependencies={
            "rpc": DependencyHealth(
                status="ok" if report.healthy else "down",
                description=report.description,
                network_id=report.network_id,
                chain_name=report.chain_name or None,
                latency_ms=latency_ms,
            )
        },
    )


@router.get("/metrics", response_class=PlainTextResponse)
def metrics() -> str:
    if not _settings.metrics_enabled:
        raise HTTPException(status_code=404, detail="metrics endpoint disabled")
    return _metrics.render_prometheus()


@api_router.get("/block/latest", response_model=LatestBlockResponse)
def latest_block_number() -> LatestBlockResponse:
    block_number = _client.get_latest_block_number()

    height = _parse_height(block_number)
    if height is not None and _settings.metrics_enabled:
        _metrics.set_blockchain_height(height)

    log_event(logger, "latest_block_served", level=logging.DEBUG, block_number=block_number)
    return LatestBlockResponse(block_number=block_number)


@api_router.get("/block/{number}", response_model=Block)
def block_by_number(number: str) -> Block:
    log_event(logger, "block_requested", level=logging.DEBUG, block_number=number)

    block_number = normalize_block_identifier(number)
    block = _client.get_block_by_number(block_number)

    log_event(
        logger,
        "block_served",
        level=logging.DEBUG,
        block_number=block.number,
        block_hash=block.hash,
    )
    return block


router.include_router(api_router)
