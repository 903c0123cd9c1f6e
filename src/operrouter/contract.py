"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Unified client contract implemented by every transport client.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from .types import (
    ChatMessage,
    ConfigResponse,
    DataSourceConfig,
    DataSourceQueryResponse,
    DataSourceResponse,
    LLMChatResponse,
    LLMConfig,
    LLMEmbeddingResponse,
    LLMGenerateResponse,
    LLMResponse,
    Metadata,
    PingResponse,
)


@dataclass(frozen=True, slots=True)
class OperationSpec:
    """Names of one operation on each wire protocol."""

    name: str
    jsonrpc_method: str
    grpc_rpc: str


METHOD_CATALOGUE: dict[str, OperationSpec] = {
    spec.name: spec
    for spec in (
        OperationSpec("ping", "ping", "Ping"),
        OperationSpec("validate_config", "validate_config", "ValidateConfig"),
        OperationSpec("load_config", "load_config", "LoadConfig"),
        OperationSpec("get_metadata", "get_metadata", "GetMetadata"),
        OperationSpec("create_datasource", "datasource.create", "CreateDataSource"),
        OperationSpec("query_datasource", "datasource.query", "QueryDataSource"),
        OperationSpec("execute_datasource", "datasource.execute", "ExecuteDataSource"),
        OperationSpec("insert_datasource", "datasource.insert", "InsertDataSource"),
        OperationSpec("ping_datasource", "datasource.ping", "PingDataSource"),
        OperationSpec("close_datasource", "datasource.close", "CloseDataSource"),
        OperationSpec("create_llm", "llm.create", "CreateLLM"),
        OperationSpec("generate_llm", "llm.generate", "GenerateLLM"),
        OperationSpec("chat_llm", "llm.chat", "ChatLLM"),
        OperationSpec("embedding_llm", "llm.embedding", "EmbeddingLLM"),
        OperationSpec("ping_llm", "llm.ping", "PingLLM"),
        OperationSpec("close_llm", "llm.close", "CloseLLM"),
    )
}


def failure_message(operation: str, message: str | None, success: bool) -> str:
    """Normalize result text so a failed result never has an empty message."""
    text = message or ""
    if not success and not text:
        return f"{operation} failed without a diagnostic message"
    return text


class OperRouterClient(ABC):
    """
    Operation set shared by the JSON-RPC, gRPC-Web and WASM clients.

    Every operation is a stateless request/response. Resource names are
    caller conventions; the client keeps no state about them. Faults raise
    ``OperRouterError`` subclasses, while remote failures come back as results
    with ``success=False``.
    """

    # Core

    @abstractmethod
    async def ping(self) -> PingResponse: ...

    @abstractmethod
    async def validate_config(self, config: Mapping[str, Any]) -> ConfigResponse: ...

    @abstractmethod
    async def load_config(self, path: str) -> ConfigResponse: ...

    @abstractmethod
    async def get_metadata(self) -> Metadata: ...

    # DataSource

    @abstractmethod
    async def create_datasource(
        self,
        name: str,
        config: DataSourceConfig | Mapping[str, Any],
    ) -> DataSourceResponse: ...

    @abstractmethod
    async def query_datasource(self, name: str, query: str) -> DataSourceQueryResponse: ...

    @abstractmethod
    async def execute_datasource(self, name: str, query: str) -> DataSourceResponse: ...

    @abstractmethod
    async def insert_datasource(
        self,
        name: str,
        data: Mapping[str, Any],
    ) -> DataSourceResponse: ...

    @abstractmethod
    async def ping_datasource(self, name: str) -> DataSourceResponse: ...

    @abstractmethod
    async def close_datasource(self, name: str) -> DataSourceResponse: ...

    # LLM

    @abstractmethod
    async def create_llm(
        self,
        name: str,
        config: LLMConfig | Mapping[str, Any],
    ) -> LLMResponse: ...

    @abstractmethod
    async def generate_llm(self, name: str, prompt: str) -> LLMGenerateResponse: ...

    @abstractmethod
    async def chat_llm(
        self,
        name: str,
        messages: Sequence[ChatMessage | Mapping[str, Any]],
    ) -> LLMChatResponse: ...

    @abstractmethod
    async def embedding_llm(self, name: str, text: str) -> LLMEmbeddingResponse: ...

    @abstractmethod
    async def ping_llm(self, name: str) -> LLMResponse: ...

    @abstractmethod
    async def close_llm(self, name: str) -> LLMResponse: ...
