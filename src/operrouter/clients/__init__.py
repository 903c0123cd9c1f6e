"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Transport clients implementing ``OperRouterClient``.
"""

from .grpc_web import GRPCWebClient, build_datasource_url
from .jsonrpc import HTTPClient
from .wasm import WASMClient, WasmBridge, WasmtimeBridge

__all__ = [
    "GRPCWebClient",
    "HTTPClient",
    "WASMClient",
    "WasmBridge",
    "WasmtimeBridge",
    "build_datasource_url",
]
