"""Tests for the gateway error taxonomy."""

from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT / "src"))

from rpc_gateway.errors import (  # noqa: E402
    ErrorKind,
    GatewayError,
    blockchain_error,
    http_status_for,
    internal_error,
    is_kind,
    not_found_error,
    public_code_for,
    timeout_error,
)


@pytest.mark.parametrize(
    ("kind", "status"),
    [
        (ErrorKind.INTERNAL, 500),
        (ErrorKind.BLOCKCHAIN, 503),
        (ErrorKind.VALIDATION, 400),
        (ErrorKind.TIMEOUT, 504),
        (ErrorKind.NOT_FOUND, 404),
        (ErrorKind.AUTH, 401),
        (ErrorKind.AUTHORIZATION, 403),
        (ErrorKind.PERMISSION, 403),
    ],
)
def test_every_kind_has_a_status(kind: ErrorKind, status: int) -> None:
    assert kind.status_code == status
    assert http_status_for(GatewayError(kind, "boom")) == status


def test_kinds_are_unique() -> None:
    values = [kind.value for kind in ErrorKind]
    assert len(values) == len(set(values))
    assert ErrorKind("not_found_error") is ErrorKind.NOT_FOUND


def test_context_is_merged_not_replaced() -> None:
    error = blockchain_error("upstream failed").with_context(status_code=500)
    same = error.with_context(response="oops")

    assert same is error
    assert error.context == {"status_code": 500, "response": "oops"}

    error.with_context(status_code=502)
    assert error.context["response"] == "oops"
    assert error.context["status_code"] == 502


def test_constructor_copies_context() -> None:
    shared = {"block_number": "0x1"}
    error = GatewayError(ErrorKind.NOT_FOUND, "Block not found", context=shared)
    error.with_context(extra=True)
    assert shared == {"block_number": "0x1"}


def test_cause_is_chained_and_introspectable() -> None:
    root = TimeoutError("timed out")
    inner = timeout_error("RPC request timed out", root)
    outer = blockchain_error("Failed to get latest block number", inner)

    assert outer.cause is inner
    assert outer.__cause__ is inner
    assert outer.caused_by(ErrorKind.TIMEOUT)
    assert outer.caused_by(ErrorKind.BLOCKCHAIN)
    assert not outer.caused_by(ErrorKind.INTERNAL)
    assert "timed out" in str(outer)


def test_timeout_in_chain_maps_to_504() -> None:
    wrapped = blockchain_error("Failed", timeout_error("RPC request timed out"))
    assert http_status_for(wrapped) == 504
    assert public_code_for(wrapped) == "TIMEOUT_ERROR"

    refused = blockchain_error("Failed", internal_error("Failed to execute HTTP request"))
    assert http_status_for(refused) == 503
    assert public_code_for(refused) == "BLOCKCHAIN_ERROR"


def test_chain_context_prefers_outer_keys() -> None:
    inner = blockchain_error("non-200").with_context(status_code=500, block_number="0x0")
    outer = blockchain_error("wrapped", inner).with_context(block_number="0x2a")

    assert outer.chain_context() == {"block_number": "0x2a", "status_code": 500}


def test_is_kind() -> None:
    assert is_kind(not_found_error("Block not found"), ErrorKind.NOT_FOUND)
    assert not is_kind(ValueError("x"), ErrorKind.NOT_FOUND)
