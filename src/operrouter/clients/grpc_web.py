"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

gRPC-Web client.

Talks to the OperRouter gRPC service through a gRPC-Web-aware proxy (Envoy,
nginx). Symbolic names go through the symbol mapper and cell values through
the wire value codec before the request message is built.
"""

from __future__ import annotations

import json
import urllib.parse
from collections.abc import Mapping, Sequence
from typing import Any

from ..codec import decode_wire, encode_wire
from ..contract import METHOD_CATALOGUE, OperRouterClient, failure_message
from ..errors import ProtocolError
from ..symbols import map_driver, map_provider, map_role
from ..transport.grpc_web import GrpcWebStub, GrpcWebUnary
from ..transport.http import HttpPost
from ..types import (
    ChatMessage,
    ClientOptions,
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
    Row,
    coerce_message,
)

_LOCATOR_KEYS = frozenset({"driver", "host", "port", "database", "username", "password"})


def build_datasource_url(config: DataSourceConfig) -> str:
    """Connection locator sent in ``CreateDataSource``."""
    driver = config.driver
    host = config.host
    port = config.port
    if driver in ("postgres", "mysql"):
        scheme = "postgresql" if driver == "postgres" else "mysql"
        user = urllib.parse.quote(config.username or "", safe="")
        password = urllib.parse.quote(config.password or "", safe="")
        database = config.database or ""
        return f"{scheme}://{user}:{password}@{host}:{port}/{database}"
    return f"{driver}://{host}:{port}"


def _stringify_extra(extra: Mapping[str, Any]) -> dict[str, str]:
    out: dict[str, str] = {}
    for key, value in extra.items():
        if key in _LOCATOR_KEYS:
            continue
        if isinstance(value, bool):
            out[key] = "true" if value else "false"
        elif value is None:
            out[key] = ""
        else:
            out[key] = str(value)
    return out


class GRPCWebClient(OperRouterClient):
    """
    ``OperRouterClient`` backed by gRPC-Web unary calls.

    Args:
        base_url: gRPC-Web proxy URL, e.g. ``http://localhost:8081``.
        options: Timeout and static headers.
        stub: Prebuilt unary caller; defaults to ``GrpcWebStub``.
        post: Blocking POST used by the default stub.
    """

    def __init__(
        self,
        base_url: str,
        options: ClientOptions | None = None,
        *,
        stub: GrpcWebUnary | None = None,
        post: HttpPost | None = None,
    ) -> None:
        self._options = options or ClientOptions()
        self._stub = stub or GrpcWebStub(
            base_url,
            timeout_ms=self._options.timeout_ms,
            headers=self._options.headers,
            post=post,
        )

    @property
    def options(self) -> ClientOptions:
        return self._options

    async def _invoke(self, operation: str, message: dict[str, Any]) -> dict[str, Any]:
        return await self._stub.call(METHOD_CATALOGUE[operation].grpc_rpc, message)

    @staticmethod
    def _message(operation: str, resp: dict[str, Any], success: bool) -> str:
        error = resp.get("error")
        return failure_message(operation, error if isinstance(error, str) else "", success)

    def _status(self, operation: str, resp: dict[str, Any], *, health: bool = False) -> tuple[bool, str]:
        success = bool(resp.get("healthy" if health else "success", False))
        return success, self._message(operation, resp, success)

    # ==================== Core ====================

    async def ping(self) -> PingResponse:
        resp = await self._invoke("ping", {})
        success, message = self._status("ping", resp)
        return PingResponse(success=success, message=message)

    async def validate_config(self, config: Mapping[str, Any]) -> ConfigResponse:
        resp = await self._invoke(
            "validate_config",
            {"config": json.dumps(dict(config), default=str)},
        )
        success, message = self._status("validate_config", resp)
        return ConfigResponse(success=success, message=message)

    async def load_config(self, path: str) -> ConfigResponse:
        resp = await self._invoke("load_config", {"path": path})
        success, message = self._status("load_config", resp)
        return ConfigResponse(success=success, message=message)

    async def get_metadata(self) -> Metadata:
        resp = await self._invoke("get_metadata", {})
        meta = resp.get("metadata")
        if meta is None:
            meta = {}
        if not isinstance(meta, dict):
            raise ProtocolError("'metadata' in GetMetadata response must be an object")
        description = meta.get("description")
        return Metadata(
            name=str(meta.get("name") or ""),
            version=str(meta.get("version") or ""),
            description=str(description) if description else None,
        )

    # ==================== DataSource ====================

    async def create_datasource(
        self,
        name: str,
        config: DataSourceConfig | Mapping[str, Any],
    ) -> DataSourceResponse:
        cfg = config if isinstance(config, DataSourceConfig) else DataSourceConfig.model_validate(dict(config))
        wire_config: dict[str, Any] = {
            "type": map_driver(cfg.driver),
            "url": build_datasource_url(cfg),
            "extra": _stringify_extra(cfg.extra_fields()),
        }
        resp = await self._invoke("create_datasource", {"name": name, "config": wire_config})
        success, message = self._status("create_datasource", resp)
        return DataSourceResponse(success=success, message=message)

    async def query_datasource(self, name: str, query: str) -> DataSourceQueryResponse:
        resp = await self._invoke("query_datasource", {"name": name, "query": query})
        success, message = self._status("query_datasource", resp)
        raw_rows = resp.get("rows")
        rows: list[Row] | None
        if raw_rows is None:
            rows = [] if success else None
        elif isinstance(raw_rows, list):
            rows = []
            for raw in raw_rows:
                columns = raw.get("columns") if isinstance(raw, dict) else None
                if not isinstance(columns, dict):
                    columns = {}
                rows.append({key: decode_wire(cell) for key, cell in columns.items()})
        else:
            raise ProtocolError("'rows' in QueryDataSource response must be a list")
        return DataSourceQueryResponse(success=success, rows=rows, message=message)

    async def execute_datasource(self, name: str, query: str) -> DataSourceResponse:
        resp = await self._invoke("execute_datasource", {"name": name, "query": query})
        success, message = self._status("execute_datasource", resp)
        return DataSourceResponse(success=success, message=message)

    async def insert_datasource(
        self,
        name: str,
        data: Mapping[str, Any],
    ) -> DataSourceResponse:
        columns = {str(key): encode_wire(value) for key, value in data.items()}
        resp = await self._invoke(
            "insert_datasource",
            {"name": name, "data": {"columns": columns}},
        )
        success, message = self._status("insert_datasource", resp)
        return DataSourceResponse(success=success, message=message)

    async def ping_datasource(self, name: str) -> DataSourceResponse:
        resp = await self._invoke("ping_datasource", {"name": name})
        success, message = self._status("ping_datasource", resp, health=True)
        return DataSourceResponse(success=success, message=message)

    async def close_datasource(self, name: str) -> DataSourceResponse:
        resp = await self._invoke("close_datasource", {"name": name})
        success, message = self._status("close_datasource", resp)
        return DataSourceResponse(success=success, message=message)

    # ==================== LLM ====================

    async def create_llm(
        self,
        name: str,
        config: LLMConfig | Mapping[str, Any],
    ) -> LLMResponse:
        cfg = config if isinstance(config, LLMConfig) else LLMConfig.model_validate(dict(config))
        wire_config: dict[str, Any] = {
            "provider": map_provider(cfg.provider),
            "model": cfg.model,
        }
        if cfg.api_key is not None:
            wire_config["apiKey"] = cfg.api_key
        if cfg.base_url is not None:
            wire_config["baseUrl"] = cfg.base_url
        extra = _stringify_extra(cfg.extra_fields())
        if extra:
            wire_config["extra"] = extra
        resp = await self._invoke("create_llm", {"name": name, "config": wire_config})
        success, message = self._status("create_llm", resp)
        return LLMResponse(success=success, message=message)

    async def generate_llm(self, name: str, prompt: str) -> LLMGenerateResponse:
        resp = await self._invoke("generate_llm", {"name": name, "prompt": prompt})
        success, message = self._status("generate_llm", resp)
        return LLMGenerateResponse(success=success, text=self._text(resp, success), message=message)

    async def chat_llm(
        self,
        name: str,
        messages: Sequence[ChatMessage | Mapping[str, Any]],
    ) -> LLMChatResponse:
        wire_messages = [
            {"role": map_role(msg.role), "content": msg.content}
            for msg in (coerce_message(m) for m in messages)
        ]
        resp = await self._invoke("chat_llm", {"name": name, "messages": wire_messages})
        success, message = self._status("chat_llm", resp)
        return LLMChatResponse(success=success, text=self._text(resp, success), message=message)

    async def embedding_llm(self, name: str, text: str) -> LLMEmbeddingResponse:
        resp = await self._invoke("embedding_llm", {"name": name, "text": text})
        success, message = self._status("embedding_llm", resp)
        raw = resp.get("embedding")
        embedding: list[float] | None
        if raw is None:
            embedding = [] if success else None
        elif isinstance(raw, list):
            try:
                embedding = [float(x) for x in raw]
            except (TypeError, ValueError) as e:
                raise ProtocolError("'embedding' in EmbeddingLLM response must hold numbers") from e
        else:
            raise ProtocolError("'embedding' in EmbeddingLLM response must be a list")
        return LLMEmbeddingResponse(success=success, embedding=embedding, message=message)

    async def ping_llm(self, name: str) -> LLMResponse:
        resp = await self._invoke("ping_llm", {"name": name})
        success, message = self._status("ping_llm", resp, health=True)
        return LLMResponse(success=success, message=message)

    async def close_llm(self, name: str) -> LLMResponse:
        resp = await self._invoke("close_llm", {"name": name})
        success, message = self._status("close_llm", resp)
        return LLMResponse(success=success, message=message)

    @staticmethod
    def _text(resp: dict[str, Any], success: bool) -> str | None:
        # proto3 JSON omits empty strings, so absence on success means "".
        text = resp.get("text")
        if text is None:
            return "" if success else None
        return str(text)
