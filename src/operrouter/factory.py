"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Factory helpers for selecting a transport client by name.
"""

from __future__ import annotations

from typing import Any

from .clients import GRPCWebClient, HTTPClient, WASMClient
from .contract import OperRouterClient
from .settings import ClientSettings
from .types import ClientOptions

_TRANSPORTS: dict[str, type[OperRouterClient]] = {
    "http": HTTPClient,
    "grpc-web": GRPCWebClient,
    "wasm": WASMClient,
}

_ALIASES = {
    "jsonrpc": "http",
    "json-rpc": "http",
    "grpc": "grpc-web",
    "grpcweb": "grpc-web",
    "grpc_web": "grpc-web",
}


def list_transports() -> list[str]:
    return sorted(_TRANSPORTS)


def resolve_transport(name: str) -> str:
    key = name.strip().lower()
    key = _ALIASES.get(key, key)
    if key not in _TRANSPORTS:
        raise ValueError(f"Unknown OperRouter transport: {name}")
    return key


def create_client(
    base_url: str,
    *,
    transport: str = "http",
    options: ClientOptions | None = None,
    **kwargs: Any,
) -> OperRouterClient:
    """
    Build a transport client.

    Args:
        base_url: Server (or proxy) endpoint.
        transport: `http` (default), `grpc-web` or `wasm`, or one of their aliases.
        options: Shared client options.
        **kwargs: Forwarded to the client constructor (e.g. `post`, `stub`, `bridge`).
    """
    cls = _TRANSPORTS[resolve_transport(transport)]
    return cls(base_url, options, **kwargs)


def create_client_from_env(**kwargs: Any) -> OperRouterClient:
    """Build a client from `OPERROUTER_*` environment variables."""
    settings = ClientSettings.from_env()
    return create_client(
        settings.base_url,
        transport=settings.transport,
        options=settings.to_options(),
        **kwargs,
    )
