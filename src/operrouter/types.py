"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Transport-agnostic types shared by every OperRouter client.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, TypeAlias

from pydantic import BaseModel, ConfigDict

DomainValue: TypeAlias = None | bool | int | float | str | bytes
Row: TypeAlias = dict[str, DomainValue]

DEFAULT_TIMEOUT_MS = 30000


# ==================== Results ====================


@dataclass(frozen=True, slots=True)
class PingResponse:
    """Service liveness result."""

    success: bool
    message: str = ""


@dataclass(frozen=True, slots=True)
class ConfigResponse:
    """Result of ``validate_config`` / ``load_config``."""

    success: bool
    message: str = ""


@dataclass(frozen=True, slots=True)
class Metadata:
    """Server metadata returned by ``get_metadata``."""

    name: str
    version: str
    description: str | None = None


@dataclass(frozen=True, slots=True)
class DataSourceResponse:
    """Generic datasource operation result."""

    success: bool
    message: str = ""


@dataclass(frozen=True, slots=True)
class DataSourceQueryResponse:
    """
    Result of ``query_datasource``.

    Attributes:
        success: Whether the remote query completed.
        rows: Column name to value mappings in server order; ``None`` when
            the server sent no rows.
        message: Diagnostic text, non-empty whenever ``success`` is false.
    """

    success: bool
    rows: list[Row] | None = None
    message: str = ""


@dataclass(frozen=True, slots=True)
class LLMResponse:
    """Generic LLM instance operation result."""

    success: bool
    message: str = ""


@dataclass(frozen=True, slots=True)
class LLMGenerateResponse:
    """Result of ``generate_llm``."""

    success: bool
    text: str | None = None
    message: str = ""


@dataclass(frozen=True, slots=True)
class LLMChatResponse:
    """Result of ``chat_llm``."""

    success: bool
    text: str | None = None
    message: str = ""


@dataclass(frozen=True, slots=True)
class LLMEmbeddingResponse:
    """Result of ``embedding_llm``."""

    success: bool
    embedding: list[float] | None = None
    message: str = ""


# ==================== Inputs ====================


class DataSourceConfig(BaseModel):
    """
    Datasource configuration payload.

    Unknown keys are kept as extras and forwarded by each transport in its own
    representation.
    """

    model_config = ConfigDict(extra="allow")

    driver: str
    host: str
    port: int
    database: str | None = None
    username: str | None = None
    password: str | None = None

    def extra_fields(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class LLMConfig(BaseModel):
    """LLM instance configuration payload."""

    model_config = ConfigDict(extra="allow")

    provider: str
    model: str
    api_key: str | None = None
    base_url: str | None = None

    def extra_fields(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


@dataclass(frozen=True, slots=True)
class ChatMessage:
    """One chat turn; ``role`` is one of system/user/assistant."""

    role: str
    content: str


def coerce_message(value: ChatMessage | Mapping[str, Any]) -> ChatMessage:
    """Accept either a ``ChatMessage`` or a ``{"role", "content"}`` mapping."""
    if isinstance(value, ChatMessage):
        return value
    if isinstance(value, Mapping):
        return ChatMessage(
            role=str(value.get("role", "")),
            content=str(value.get("content", "")),
        )
    raise TypeError(f"Unsupported chat message type: {type(value).__name__}")


@dataclass(frozen=True, slots=True)
class ClientOptions:
    """
    Immutable per-client settings.

    Attributes:
        timeout_ms: Bound for each call, in milliseconds.
        headers: Extra static HTTP headers (HTTP-based transports only).
        wasm_path: Path to the WASM module (WASM transport only).
    """

    timeout_ms: int = DEFAULT_TIMEOUT_MS
    headers: Mapping[str, str] = field(default_factory=dict)
    wasm_path: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.timeout_ms, int) or self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be a positive integer")
        object.__setattr__(
            self,
            "headers",
            {str(k): str(v) for k, v in dict(self.headers).items()},
        )

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000.0
