from __future__ import annotations

import asyncio
import json
import threading
import urllib.parse
from collections.abc import Callable, Mapping
from typing import Any

import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from fastapi.testclient import TestClient

from operrouter import ChatMessage, DataSourceConfig, LLMConfig
from operrouter.transport import CONTENT_TYPE, HttpReply, encode_frame, parse_frames
from operrouter.transport.grpc_web import TRAILER_FLAG


class StubRpcError(Exception):
    """Raised by a JSON-RPC handler to answer with an ``error`` member."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data


class StubGrpcStatus(Exception):
    """Raised by a gRPC handler to answer trailers-only with a non-zero status."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message


class StubServer:
    """In-process OperRouter server speaking JSON-RPC on /rpc and gRPC-Web+json."""

    def __init__(self) -> None:
        self.jsonrpc_handlers: dict[str, Callable[[dict[str, Any]], dict[str, Any]]] = {}
        self.grpc_handlers: dict[str, Callable[[dict[str, Any]], dict[str, Any]]] = {}
        self.jsonrpc_requests: list[dict[str, Any]] = []
        self.grpc_requests: list[tuple[str, dict[str, Any]]] = []
        self.request_headers: list[dict[str, str]] = []
        self.delay_s = 0.0
        self.http_status: int | None = None
        self.raw_body: bytes | None = None
        self._lock = threading.Lock()
        self.app = self._build_app()

    def _build_app(self) -> FastAPI:
        app = FastAPI()

        @app.post("/rpc")
        async def rpc(request: Request):
            message = await request.json()
            self._record_headers(request)
            with self._lock:
                self.jsonrpc_requests.append(message)
            if self.delay_s:
                await asyncio.sleep(self.delay_s)
            if self.http_status is not None:
                return Response(status_code=self.http_status, content=b"unavailable")
            if self.raw_body is not None:
                return Response(content=self.raw_body, media_type="application/json")

            handler = self.jsonrpc_handlers.get(message["method"], _echo_success)
            try:
                result = handler(message.get("params", {}))
            except StubRpcError as e:
                error: dict[str, Any] = {"code": e.code, "message": e.message}
                if e.data is not None:
                    error["data"] = e.data
                return JSONResponse({"jsonrpc": "2.0", "id": message.get("id"), "error": error})
            return JSONResponse({"jsonrpc": "2.0", "id": message.get("id"), "result": result})

        @app.post("/operrouter.v1.OperRouter/{rpc_name}")
        async def grpc(rpc_name: str, request: Request):
            body = await request.body()
            self._record_headers(request)
            frames = parse_frames(body)
            message = json.loads(frames.messages[0].decode("utf-8"))
            with self._lock:
                self.grpc_requests.append((rpc_name, message))
            if self.delay_s:
                await asyncio.sleep(self.delay_s)
            if self.http_status is not None:
                return Response(status_code=self.http_status, content=b"bad gateway")

            handler = self.grpc_handlers.get(rpc_name, _echo_success_grpc)
            try:
                reply = handler(message)
            except StubGrpcStatus as e:
                return Response(
                    content=b"",
                    media_type=CONTENT_TYPE,
                    headers={
                        "grpc-status": str(e.status),
                        "grpc-message": urllib.parse.quote(e.message),
                    },
                )
            payload = encode_frame(json.dumps(reply).encode("utf-8"))
            payload += encode_frame(b"grpc-status: 0\r\ngrpc-message: \r\n", flag=TRAILER_FLAG)
            return Response(content=payload, media_type=CONTENT_TYPE)

        return app

    def _record_headers(self, request: Request) -> None:
        with self._lock:
            self.request_headers.append({k.lower(): v for k, v in request.headers.items()})

    def post(
        self,
        url: str,
        body: bytes,
        headers: Mapping[str, str],
        timeout_s: float,
    ) -> HttpReply:
        _ = timeout_s
        path = urllib.parse.urlsplit(url).path or "/"
        client = TestClient(self.app)
        resp = client.post(path, content=body, headers=dict(headers))
        return HttpReply(
            status=resp.status_code,
            reason=resp.reason_phrase,
            headers=dict(resp.headers),
            body=resp.content,
        )


def _echo_success(params: dict[str, Any]) -> dict[str, Any]:
    _ = params
    return {"success": True, "message": ""}


def _echo_success_grpc(message: dict[str, Any]) -> dict[str, Any]:
    _ = message
    return {"success": True, "healthy": True}


@pytest.fixture
def stub_server() -> StubServer:
    return StubServer()


@pytest.fixture
def stub_errors():
    return StubRpcError, StubGrpcStatus


@pytest.fixture
def catalogue_calls() -> dict[str, Callable[[Any], Any]]:
    """One representative invocation per catalogue operation."""
    ds_config = DataSourceConfig(
        driver="postgres",
        host="localhost",
        port=5432,
        database="x",
        username="u",
        password="p",
    )
    llm_config = LLMConfig(provider="openai", model="gpt-4o-mini", api_key="sk-test")
    return {
        "ping": lambda c: c.ping(),
        "validate_config": lambda c: c.validate_config({"metadata": {"name": "demo"}}),
        "load_config": lambda c: c.load_config("/etc/operrouter.toml"),
        "create_datasource": lambda c: c.create_datasource("db1", ds_config),
        "query_datasource": lambda c: c.query_datasource("db1", "SELECT 1"),
        "execute_datasource": lambda c: c.execute_datasource("db1", "DELETE FROM t"),
        "insert_datasource": lambda c: c.insert_datasource("db1", {"id": 1, "name": "a"}),
        "ping_datasource": lambda c: c.ping_datasource("db1"),
        "close_datasource": lambda c: c.close_datasource("db1"),
        "create_llm": lambda c: c.create_llm("bot", llm_config),
        "generate_llm": lambda c: c.generate_llm("bot", "hello"),
        "chat_llm": lambda c: c.chat_llm("bot", [ChatMessage(role="user", content="hi")]),
        "embedding_llm": lambda c: c.embedding_llm("bot", "hello"),
        "ping_llm": lambda c: c.ping_llm("bot"),
        "close_llm": lambda c: c.close_llm("bot"),
    }
