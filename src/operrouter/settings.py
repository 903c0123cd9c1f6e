"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Client settings and explicit environment loading.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field

from .types import DEFAULT_TIMEOUT_MS, ClientOptions


def _headers_from_env(raw: str | None) -> dict[str, str]:
    if not raw or not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError("OPERROUTER_HEADERS must be a JSON object") from e
    if not isinstance(parsed, dict):
        raise ValueError("OPERROUTER_HEADERS must be a JSON object")
    return {str(k): str(v) for k, v in parsed.items()}


@dataclass(frozen=True, slots=True)
class ClientSettings:
    """Which transport to build and how to reach the server."""

    transport: str = "http"
    base_url: str = "http://localhost:8080"
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    headers: dict[str, str] = field(default_factory=dict)
    wasm_path: str | None = None

    @staticmethod
    def from_env() -> "ClientSettings":
        """Load settings from ``OPERROUTER_*`` environment variables."""
        return ClientSettings(
            transport=os.getenv("OPERROUTER_TRANSPORT", "http").strip().lower() or "http",
            base_url=os.getenv("OPERROUTER_URL", "http://localhost:8080"),
            timeout_ms=int(os.getenv("OPERROUTER_TIMEOUT_MS", str(DEFAULT_TIMEOUT_MS))),
            headers=_headers_from_env(os.getenv("OPERROUTER_HEADERS")),
            wasm_path=os.getenv("OPERROUTER_WASM_PATH") or None,
        )

    def to_options(self) -> ClientOptions:
        return ClientOptions(
            timeout_ms=self.timeout_ms,
            headers=dict(self.headers),
            wasm_path=self.wasm_path,
        )
