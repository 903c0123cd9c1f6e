"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

JSON-RPC 2.0 over HTTP client.

All 16 operations go to a single POST endpoint:
- 4 core: ping, validate_config, load_config, get_metadata
- 6 datasource: datasource.create|query|execute|insert|ping|close
- 6 LLM: llm.create|generate|chat|embedding|ping|close
"""

from __future__ import annotations

import base64
import itertools
import json
import logging
import threading
from collections.abc import Mapping, Sequence
from typing import Any

from ..contract import METHOD_CATALOGUE, OperRouterClient, failure_message
from ..errors import JsonRpcError, ProtocolError, TransportError
from ..transport.http import HttpPost, post_with_timeout, urllib_post
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
    coerce_message,
)

logger = logging.getLogger("operrouter.jsonrpc")


def _json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    return str(value)


def _config_params(config: Any) -> dict[str, Any]:
    if isinstance(config, (DataSourceConfig, LLMConfig)):
        return config.model_dump(exclude_none=True)
    return dict(config)


class HTTPClient(OperRouterClient):
    """
    ``OperRouterClient`` speaking JSON-RPC 2.0 over HTTP POST.

    Args:
        base_url: JSON-RPC endpoint, e.g. ``http://localhost:8080``.
        options: Timeout and static headers.
        post: Blocking POST implementation; defaults to ``urllib_post``.
    """

    def __init__(
        self,
        base_url: str,
        options: ClientOptions | None = None,
        *,
        post: HttpPost | None = None,
    ) -> None:
        self._base_url = base_url[:-1] if base_url.endswith("/") else base_url
        self._options = options or ClientOptions()
        self._post = post or urllib_post
        self._headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            **self._options.headers,
        }
        self._ids = itertools.count(1)
        self._id_lock = threading.Lock()

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def options(self) -> ClientOptions:
        return self._options

    def _next_id(self) -> int:
        with self._id_lock:
            return next(self._ids)

    async def _call_rpc(self, method: str, params: dict[str, Any]) -> dict[str, Any]:
        request_id = self._next_id()
        request = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": request_id,
        }
        payload = json.dumps(request, default=_json_default).encode("utf-8")
        logger.debug("JSON-RPC -> %s id=%d", method, request_id)

        reply = await post_with_timeout(
            self._post,
            self._base_url,
            payload,
            self._headers,
            timeout_ms=self._options.timeout_ms,
        )
        if not reply.ok:
            logger.warning("JSON-RPC %s id=%d got HTTP %d", method, request_id, reply.status)
            raise TransportError(f"HTTP {reply.status}: {reply.reason}")

        try:
            decoded = json.loads(reply.body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ProtocolError(f"Invalid JSON response for '{method}'") from e
        if not isinstance(decoded, dict):
            raise ProtocolError(f"Invalid JSON-RPC envelope for '{method}'")

        if decoded.get("id") is not None and decoded.get("id") != request_id:
            raise ProtocolError(
                f"JSON-RPC response id {decoded.get('id')!r} does not match request id {request_id}"
            )

        err = decoded.get("error")
        if err is not None:
            if isinstance(err, dict):
                raise JsonRpcError(err.get("code"), str(err.get("message", "")), err.get("data"))
            raise JsonRpcError(None, str(err))

        if "result" not in decoded:
            raise ProtocolError("Invalid JSON-RPC response: missing result")
        result = decoded["result"]
        if not isinstance(result, dict):
            raise ProtocolError(f"JSON-RPC result for '{method}' is not an object")
        logger.debug("JSON-RPC <- %s id=%d", method, request_id)
        return result

    async def _invoke(self, operation: str, params: dict[str, Any]) -> dict[str, Any]:
        return await self._call_rpc(METHOD_CATALOGUE[operation].jsonrpc_method, params)

    @staticmethod
    def _status(operation: str, result: dict[str, Any], *, health: bool = False) -> tuple[bool, str]:
        if health and "healthy" in result:
            success = bool(result["healthy"])
        else:
            success = bool(result.get("success", False))
        message = result.get("message")
        if not isinstance(message, str) or not message:
            fallback = result.get("error")
            message = fallback if isinstance(fallback, str) else ""
        return success, failure_message(operation, message, success)

    @staticmethod
    def _optional_str(operation: str, result: dict[str, Any], key: str) -> str | None:
        value = result.get(key)
        if value is None:
            return None
        if not isinstance(value, str):
            raise ProtocolError(f"'{key}' in {operation} result must be a string")
        return value

    # ==================== Core ====================

    async def ping(self) -> PingResponse:
        result = await self._invoke("ping", {})
        success, message = self._status("ping", result)
        return PingResponse(success=success, message=message)

    async def validate_config(self, config: Mapping[str, Any]) -> ConfigResponse:
        result = await self._invoke("validate_config", {"config": dict(config)})
        success, message = self._status("validate_config", result)
        return ConfigResponse(success=success, message=message)

    async def load_config(self, path: str) -> ConfigResponse:
        result = await self._invoke("load_config", {"path": path})
        success, message = self._status("load_config", result)
        return ConfigResponse(success=success, message=message)

    async def get_metadata(self) -> Metadata:
        result = await self._invoke("get_metadata", {})
        return Metadata(
            name=str(result.get("name") or ""),
            version=str(result.get("version") or ""),
            description=self._optional_str("get_metadata", result, "description"),
        )

    # ==================== DataSource ====================

    async def create_datasource(
        self,
        name: str,
        config: DataSourceConfig | Mapping[str, Any],
    ) -> DataSourceResponse:
        result = await self._invoke(
            "create_datasource",
            {"name": name, "config": _config_params(config)},
        )
        success, message = self._status("create_datasource", result)
        return DataSourceResponse(success=success, message=message)

    async def query_datasource(self, name: str, query: str) -> DataSourceQueryResponse:
        result = await self._invoke("query_datasource", {"name": name, "query": query})
        success, message = self._status("query_datasource", result)
        rows = result.get("rows")
        if rows is not None:
            if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
                raise ProtocolError("'rows' in query_datasource result must be a list of objects")
            rows = [dict(r) for r in rows]
        return DataSourceQueryResponse(success=success, rows=rows, message=message)

    async def execute_datasource(self, name: str, query: str) -> DataSourceResponse:
        result = await self._invoke("execute_datasource", {"name": name, "query": query})
        success, message = self._status("execute_datasource", result)
        return DataSourceResponse(success=success, message=message)

    async def insert_datasource(
        self,
        name: str,
        data: Mapping[str, Any],
    ) -> DataSourceResponse:
        result = await self._invoke("insert_datasource", {"name": name, "data": dict(data)})
        success, message = self._status("insert_datasource", result)
        return DataSourceResponse(success=success, message=message)

    async def ping_datasource(self, name: str) -> DataSourceResponse:
        result = await self._invoke("ping_datasource", {"name": name})
        success, message = self._status("ping_datasource", result, health=True)
        return DataSourceResponse(success=success, message=message)

    async def close_datasource(self, name: str) -> DataSourceResponse:
        result = await self._invoke("close_datasource", {"name": name})
        success, message = self._status("close_datasource", result)
        return DataSourceResponse(success=success, message=message)

    # ==================== LLM ====================

    async def create_llm(
        self,
        name: str,
        config: LLMConfig | Mapping[str, Any],
    ) -> LLMResponse:
        result = await self._invoke("create_llm", {"name": name, "config": _config_params(config)})
        success, message = self._status("create_llm", result)
        return LLMResponse(success=success, message=message)

    async def generate_llm(self, name: str, prompt: str) -> LLMGenerateResponse:
        result = await self._invoke("generate_llm", {"name": name, "prompt": prompt})
        success, message = self._status("generate_llm", result)
        return LLMGenerateResponse(
            success=success,
            text=self._optional_str("generate_llm", result, "text"),
            message=message,
        )

    async def chat_llm(
        self,
        name: str,
        messages: Sequence[ChatMessage | Mapping[str, Any]],
    ) -> LLMChatResponse:
        wire_messages = [
            {"role": msg.role, "content": msg.content}
            for msg in (coerce_message(m) for m in messages)
        ]
        result = await self._invoke("chat_llm", {"name": name, "messages": wire_messages})
        success, message = self._status("chat_llm", result)
        return LLMChatResponse(
            success=success,
            text=self._optional_str("chat_llm", result, "text"),
            message=message,
        )

    async def embedding_llm(self, name: str, text: str) -> LLMEmbeddingResponse:
        result = await self._invoke("embedding_llm", {"name": name, "text": text})
        success, message = self._status("embedding_llm", result)
        embedding = result.get("embedding")
        if embedding is not None:
            if not isinstance(embedding, list):
                raise ProtocolError("'embedding' in embedding_llm result must be a list")
            try:
                embedding = [float(x) for x in embedding]
            except (TypeError, ValueError) as e:
                raise ProtocolError("'embedding' in embedding_llm result must hold numbers") from e
        return LLMEmbeddingResponse(success=success, embedding=embedding, message=message)

    async def ping_llm(self, name: str) -> LLMResponse:
        result = await self._invoke("ping_llm", {"name": name})
        success, message = self._status("ping_llm", result, health=True)
        return LLMResponse(success=success, message=message)

    async def close_llm(self, name: str) -> LLMResponse:
        result = await self._invoke("close_llm", {"name": name})
        success, message = self._status("close_llm", result)
        return LLMResponse(success=success, message=message)
