"""Pydantic schemas for JSON-RPC wire messages and gateway API contracts."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

JSONRPC_VERSION = "2.0"


class RpcRequest(BaseModel):
    """Outbound JSON-RPC request envelope."""

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    method: str = Field(min_length=1)
    params: list[Any] = Field(default_factory=list)
    id: int = 1

    def to_wire(self) -> bytes:
        return self.model_dump_json().encode("utf-8")


class RpcResponse(BaseModel):
    """Common inbound envelope fields; subclasses narrow ``result``."""

    jsonrpc: str | None = None
    id: int | str | None = None

    @property
    def has_result(self) -> bool:
        return "result" in self.model_fields_set


class RpcErrorObject(BaseModel):
    code: int = 0
    message: str = ""


class RpcErrorEnvelope(BaseModel):
    """Generic view of a body used only to spot embedded RPC errors."""

    error: RpcErrorObject | None = None


class Transaction(BaseModel):
    """Transaction as returned inside a full block; values stay hex strings."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    block_hash: str | None = None
    block_number: str | None = None
    from_: str | None = Field(default=None, alias="from")
    gas: str | None = None
    gas_price: str | None = None
    hash: str | None = None
    input: str | None = None
    nonce: str | None = None
    to: str | None = None
    transaction_index: str | None = None
    value: str | None = None
    type: str | None = None
    chain_id: str | None = None
    v: str | None = None
    r: str | None = None
    s: str | None = None


class Block(BaseModel):
    """Block record passed through from the upstream node."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    number: str | None = None
    hash: str | None = None
    parent_hash: str | None = None
    nonce: str | None = None
    sha3_uncles: str | None = None
    logs_bloom: str | None = None
    transactions_root: str | None = None
    state_root: str | None = None
    receipts_root: str | None = None
    miner: str | None = None
    difficulty: str | None = None
    total_difficulty: str | None = None
    extra_data: str | None = None
    size: str | None = None
    gas_limit: str | None = None
    gas_used: str | None = None
    timestamp: str | None = None
    transactions: list[Transaction | str] = Field(default_factory=list)
    uncles: list[str] = Field(default_factory=list)


class BlockNumberResponse(RpcResponse):
    result: str = ""


class BlockResponse(RpcResponse):
    result: Block | None = None


class NetVersionResponse(RpcResponse):
    result: str = ""


class LatestBlockResponse(BaseModel):
    """Response body of the latest block number route."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    block_number: str


class DependencyHealth(BaseModel):
    """Health details for the upstream node."""

    status: Literal["ok", "down"]
    description: str
    network_id: str | None = None
    chain_name: str | None = None
    latency_ms: int | None = Field(default=None, ge=0)


class HealthCheckResponse(BaseModel):
    """Gateway health response."""

    status: Literal["ok", "degraded"]
    service: str
    version: str
    timestamp: datetime
    dependencies: dict[str, DependencyHealth] | None = None


class ErrorDetail(BaseModel):
    field: str
    issue: str


class ErrorBody(BaseModel):
    code: str
    message: str
    trace_id: str | None = None
    details: list[ErrorDetail] | None = None


class ErrorResponse(BaseModel):
    """Standard error envelope."""

    error: ErrorBody
