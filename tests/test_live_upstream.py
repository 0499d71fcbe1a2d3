"""End-to-end client tests against a real local HTTP server."""

from __future__ import annotations

from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
import json
from pathlib import Path
import socket
import sys
import threading
import time

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT / "src"))

from rpc_gateway.errors import ErrorKind, GatewayError  # noqa: E402
from rpc_gateway.rpc_client import Deadline, RpcGatewayClient  # noqa: E402
from rpc_gateway.schemas import BlockNumberResponse, RpcRequest  # noqa: E402


class _NodeHandler(BaseHTTPRequestHandler):
    status = 200
    body = b'{"jsonrpc":"2.0","id":1,"result":"0x134e82a"}'
    delay_seconds = 0.0
    received: list[dict] = []

    def do_POST(self) -> None:  # noqa: N802
        length = int(self.headers.get("Content-Length", "0"))
        type(self).received.append(
            {
                "content_type": self.headers.get("Content-Type"),
                "payload": json.loads(self.rfile.read(length)),
            }
        )
        if self.delay_seconds:
            time.sleep(self.delay_seconds)
        self.send_response(self.status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(self.body)))
        self.end_headers()
        try:
            self.wfile.write(self.body)
        except (BrokenPipeError, ConnectionResetError):
            pass

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        return None


@pytest.fixture
def node():
    handler = type("Handler", (_NodeHandler,), {"received": []})
    server = ThreadingHTTPServer(("127.0.0.1", 0), handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield handler, f"http://127.0.0.1:{server.server_address[1]}/"
    finally:
        server.shutdown()
        server.server_close()


def _unused_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def test_latest_block_against_live_node(node) -> None:
    handler, url = node

    client = RpcGatewayClient(rpc_url=url, timeout_seconds=5)
    assert client.get_latest_block_number() == "0x134e82a"

    assert handler.received[0]["content_type"] == "application/json"
    assert handler.received[0]["payload"] == {
        "jsonrpc": "2.0",
        "method": "eth_blockNumber",
        "params": [],
        "id": 1,
    }


def test_live_500_carries_status_and_body(node) -> None:
    handler, url = node
    handler.status = 500
    handler.body = b"upstream exploded"

    with pytest.raises(GatewayError) as exc_info:
        RpcGatewayClient(rpc_url=url, timeout_seconds=5).get_latest_block_number()

    assert exc_info.value.kind is ErrorKind.BLOCKCHAIN
    assert exc_info.value.context["status_code"] == 500
    assert exc_info.value.context["response"] == "upstream exploded"


def test_slow_node_hits_deadline(node) -> None:
    handler, url = node
    handler.delay_seconds = 1.0

    client = RpcGatewayClient(rpc_url=url, timeout_seconds=5)
    with pytest.raises(GatewayError) as exc_info:
        client.call(RpcRequest(method="eth_blockNumber"), BlockNumberResponse, deadline=Deadline.after(0.2))

    assert exc_info.value.kind is ErrorKind.TIMEOUT


def test_connection_refused_is_not_a_timeout() -> None:
    client = RpcGatewayClient(rpc_url=f"http://127.0.0.1:{_unused_port()}/", timeout_seconds=5)

    with pytest.raises(GatewayError) as exc_info:
        client.call(RpcRequest(method="eth_blockNumber"), BlockNumberResponse)

    assert exc_info.value.kind is ErrorKind.INTERNAL
