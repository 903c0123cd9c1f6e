"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Error hierarchy for OperRouter transport clients.

Faults (transport, protocol, timeout) are raised. Remote operations that
report ``success=False`` are returned as ordinary results instead.
"""

from __future__ import annotations

from typing import Any


class OperRouterError(RuntimeError):
    """Base OperRouter client error."""


class TransportError(OperRouterError):
    """Raised on connection failures, non-2xx HTTP status or broken framing."""


class GrpcWebStatusError(TransportError):
    """Raised when a gRPC-Web call finishes with a non-zero ``grpc-status``."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"gRPC status {status}: {message}" if message else f"gRPC status {status}")
        self.status = status
        self.grpc_message = message


class ProtocolError(OperRouterError):
    """Raised when a response envelope is malformed or misses required fields."""


class JsonRpcError(ProtocolError):
    """Raised when a JSON-RPC response carries an ``error`` member."""

    def __init__(self, code: Any, message: str, data: Any = None) -> None:
        super().__init__(f"JSON-RPC Error {code}: {message}")
        self.code = code
        self.rpc_message = message
        self.data = data


class OperRouterTimeoutError(OperRouterError, TimeoutError):
    """Raised when no response arrives within the configured timeout."""

    def __init__(self, timeout_ms: int) -> None:
        super().__init__(f"Request timeout after {timeout_ms}ms")
        self.timeout_ms = timeout_ms


class WasmBridgeError(OperRouterError):
    """Raised when the WASM module cannot be loaded or one of its calls traps."""
