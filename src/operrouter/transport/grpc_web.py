"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

gRPC-Web unary calls over HTTP/1.1.

Each message travels in a length-prefixed frame: one flag byte (0x00 for data,
0x80 for trailers) followed by a 4-byte big-endian length. Messages use the
``application/grpc-web+json`` codec, i.e. the proto3 JSON mapping.
"""

from __future__ import annotations

import json
import logging
import struct
import urllib.parse
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from ..errors import GrpcWebStatusError, ProtocolError, TransportError
from .http import HttpPost, HttpReply, post_with_timeout, urllib_post

logger = logging.getLogger("operrouter.grpc_web")

SERVICE_NAME = "operrouter.v1.OperRouter"
CONTENT_TYPE = "application/grpc-web+json"

DATA_FLAG = 0x00
TRAILER_FLAG = 0x80
_HEADER = struct.Struct(">BI")


@dataclass(frozen=True, slots=True)
class GrpcWebFrames:
    """Decoded response body: data messages plus trailer metadata."""

    messages: list[bytes] = field(default_factory=list)
    trailers: dict[str, str] = field(default_factory=dict)


def encode_frame(payload: bytes, *, flag: int = DATA_FLAG) -> bytes:
    return _HEADER.pack(flag, len(payload)) + payload


def parse_trailers(block: bytes) -> dict[str, str]:
    """Parse an HTTP/1-style header block (``name: value\\r\\n``) into lowercase keys."""
    trailers: dict[str, str] = {}
    for line in block.decode("utf-8", errors="replace").split("\r\n"):
        if not line.strip() or ":" not in line:
            continue
        key, value = line.split(":", 1)
        trailers[key.strip().lower()] = value.strip()
    return trailers


def parse_frames(body: bytes) -> GrpcWebFrames:
    """Split a gRPC-Web response body into data frames and trailers."""
    frames = GrpcWebFrames()
    offset = 0
    while offset < len(body):
        if len(body) - offset < _HEADER.size:
            raise TransportError("Truncated gRPC-Web frame header")
        flag, length = _HEADER.unpack_from(body, offset)
        offset += _HEADER.size
        chunk = body[offset : offset + length]
        if len(chunk) != length:
            raise TransportError("Truncated gRPC-Web frame payload")
        offset += length
        if flag & TRAILER_FLAG:
            frames.trailers.update(parse_trailers(chunk))
        else:
            frames.messages.append(chunk)
    return frames


def _check_status(source: Mapping[str, str] | None) -> bool:
    """Raise on a non-zero grpc-status; return whether a status was present."""
    if not source:
        return False
    raw = source.get("grpc-status")
    if raw is None:
        return False
    try:
        status = int(raw)
    except ValueError as e:
        raise ProtocolError(f"Invalid grpc-status value: {raw!r}") from e
    if status != 0:
        message = urllib.parse.unquote(source.get("grpc-message", ""))
        raise GrpcWebStatusError(status, message)
    return True


class GrpcWebUnary(Protocol):
    """Invokes one unary RPC with a proto3-JSON message and returns the response message."""

    async def call(self, rpc: str, message: dict[str, Any]) -> dict[str, Any]: ...


class GrpcWebStub:
    """Default ``GrpcWebUnary`` implementation for a gRPC-Web proxy endpoint."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_ms: int,
        headers: Mapping[str, str] | None = None,
        post: HttpPost | None = None,
        service: str = SERVICE_NAME,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_ms = timeout_ms
        self._service = service
        self._post = post or urllib_post
        self._headers = {
            "Content-Type": CONTENT_TYPE,
            "Accept": CONTENT_TYPE,
            "X-Grpc-Web": "1",
            "X-User-Agent": "operrouter-python",
            "Grpc-Timeout": f"{timeout_ms}m",
            **dict(headers or {}),
        }

    def url_for(self, rpc: str) -> str:
        return f"{self._base_url}/{self._service}/{rpc}"

    async def call(self, rpc: str, message: dict[str, Any]) -> dict[str, Any]:
        url = self.url_for(rpc)
        body = encode_frame(json.dumps(message).encode("utf-8"))
        logger.debug("gRPC-Web %s request: %s", rpc, message)
        reply = await post_with_timeout(
            self._post,
            url,
            body,
            self._headers,
            timeout_ms=self._timeout_ms,
        )
        return self._decode_reply(rpc, reply)

    def _decode_reply(self, rpc: str, reply: HttpReply) -> dict[str, Any]:
        if not reply.ok:
            raise TransportError(f"HTTP {reply.status}: {reply.reason}")

        header_status = {
            key: value
            for key in ("grpc-status", "grpc-message")
            if (value := reply.header(key)) is not None
        }
        # Trailers-only responses carry the status in the HTTP headers.
        _check_status(header_status)

        frames = parse_frames(reply.body)
        has_status = _check_status(frames.trailers) or bool(header_status)
        if not frames.messages:
            if has_status:
                raise ProtocolError(f"gRPC-Web {rpc} returned no response message")
            raise ProtocolError(f"gRPC-Web {rpc} response has neither message nor status")

        try:
            decoded = json.loads(frames.messages[0].decode("utf-8") or "{}")
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ProtocolError(f"Invalid JSON message in gRPC-Web {rpc} response") from e
        if not isinstance(decoded, dict):
            raise ProtocolError(f"gRPC-Web {rpc} response message is not an object")
        logger.debug("gRPC-Web %s response: %s", rpc, decoded)
        return decoded
