"""Tests for runtime configuration loading."""

from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT / "src"))

from rpc_gateway.config import get_settings  # noqa: E402


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("RPC_GATEWAY_RPC_URL", raising=False)
    monkeypatch.delenv("RPC_GATEWAY_TIMEOUT_SECONDS", raising=False)

    settings = get_settings()
    assert settings.rpc_url == "https://polygon-rpc.com/"
    assert settings.timeout_seconds == 10


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RPC_GATEWAY_RPC_URL", "http://localhost:8545")
    monkeypatch.setenv("RPC_GATEWAY_TIMEOUT_SECONDS", "7")

    settings = get_settings()
    assert settings.rpc_url == "http://localhost:8545"
    assert settings.timeout_seconds == 7


@pytest.mark.parametrize("raw", ["0", "-3", "abc", "", "2.5"])
def test_bad_timeout_falls_back_to_default(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("RPC_GATEWAY_TIMEOUT_SECONDS", raw)
    assert get_settings().timeout_seconds == 10
