"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

OperRouter Python SDK.

Client library for OperRouter over JSON-RPC/HTTP, gRPC-Web and WASM-bridged
transports, all behind the same ``OperRouterClient`` contract.
"""

from __future__ import annotations

from .clients import GRPCWebClient, HTTPClient, WASMClient, WasmBridge, WasmtimeBridge
from .codec import TypedValue, ValueKind, decode, decode_wire, encode, encode_wire, from_wire, to_wire
from .contract import METHOD_CATALOGUE, OperationSpec, OperRouterClient
from .errors import (
    GrpcWebStatusError,
    JsonRpcError,
    OperRouterError,
    OperRouterTimeoutError,
    ProtocolError,
    TransportError,
    WasmBridgeError,
)
from .factory import create_client, create_client_from_env, list_transports
from .settings import ClientSettings
from .symbols import ChatRole, DriverKind, LLMProviderKind, map_driver, map_provider, map_role
from .types import (
    ChatMessage,
    ClientOptions,
    ConfigResponse,
    DataSourceConfig,
    DataSourceQueryResponse,
    DataSourceResponse,
    DomainValue,
    LLMChatResponse,
    LLMConfig,
    LLMEmbeddingResponse,
    LLMGenerateResponse,
    LLMResponse,
    Metadata,
    PingResponse,
)

__all__ = [
    "ChatMessage",
    "ChatRole",
    "ClientOptions",
    "ClientSettings",
    "ConfigResponse",
    "DataSourceConfig",
    "DataSourceQueryResponse",
    "DataSourceResponse",
    "DomainValue",
    "DriverKind",
    "GRPCWebClient",
    "GrpcWebStatusError",
    "HTTPClient",
    "JsonRpcError",
    "LLMChatResponse",
    "LLMConfig",
    "LLMEmbeddingResponse",
    "LLMGenerateResponse",
    "LLMProviderKind",
    "LLMResponse",
    "METHOD_CATALOGUE",
    "Metadata",
    "OperRouterClient",
    "OperRouterError",
    "OperRouterTimeoutError",
    "OperationSpec",
    "PingResponse",
    "ProtocolError",
    "TransportError",
    "TypedValue",
    "ValueKind",
    "WASMClient",
    "WasmBridge",
    "WasmBridgeError",
    "WasmtimeBridge",
    "create_client",
    "create_client_from_env",
    "decode",
    "decode_wire",
    "encode",
    "encode_wire",
    "from_wire",
    "list_transports",
    "map_driver",
    "map_provider",
    "map_role",
    "to_wire",
]
