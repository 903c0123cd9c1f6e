"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

HTTP and gRPC-Web wire primitives used by the transport clients.
"""

from .grpc_web import (
    CONTENT_TYPE,
    SERVICE_NAME,
    GrpcWebFrames,
    GrpcWebStub,
    GrpcWebUnary,
    encode_frame,
    parse_frames,
    parse_trailers,
)
from .http import HttpPost, HttpReply, post_with_timeout, urllib_post

__all__ = [
    "CONTENT_TYPE",
    "SERVICE_NAME",
    "GrpcWebFrames",
    "GrpcWebStub",
    "GrpcWebUnary",
    "HttpPost",
    "HttpReply",
    "encode_frame",
    "parse_frames",
    "parse_trailers",
    "post_with_timeout",
    "urllib_post",
]
