"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Blocking HTTP POST primitive and the timeout wrapper shared by all clients.
"""

from __future__ import annotations

import asyncio
import http.client
import logging
import urllib.error
import urllib.request
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

from ..errors import OperRouterTimeoutError, TransportError

logger = logging.getLogger("operrouter.transport")


@dataclass(frozen=True, slots=True)
class HttpReply:
    """Raw HTTP response handed back by an ``HttpPost`` implementation."""

    status: int
    reason: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> str | None:
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None


class HttpPost(Protocol):
    """Blocking POST; runs in a worker thread and must honor ``timeout_s``."""

    def __call__(
        self,
        url: str,
        body: bytes,
        headers: Mapping[str, str],
        timeout_s: float,
    ) -> HttpReply: ...


def urllib_post(
    url: str,
    body: bytes,
    headers: Mapping[str, str],
    timeout_s: float,
) -> HttpReply:
    """Default poster built on ``urllib``; HTTP error statuses are returned, not raised."""
    req = urllib.request.Request(
        url,
        data=body,
        method="POST",
        headers=dict(headers),
    )
    try:
        with urllib.request.urlopen(req, timeout=timeout_s) as resp:  # noqa: S310
            return HttpReply(
                status=resp.status,
                reason=resp.reason or "",
                headers=dict(resp.headers.items()),
                body=resp.read(),
            )
    except urllib.error.HTTPError as e:
        try:
            payload = e.read()
        except (OSError, http.client.HTTPException):
            payload = b""
        return HttpReply(
            status=e.code,
            reason=str(e.reason or ""),
            headers=dict(e.headers.items()) if e.headers else {},
            body=payload,
        )
    except urllib.error.URLError as e:
        if isinstance(e.reason, TimeoutError):
            raise TimeoutError(str(e.reason)) from e
        raise TransportError(f"Network error calling '{url}': {e.reason}") from e
    except http.client.HTTPException as e:
        raise TransportError(f"Malformed HTTP response from '{url}': {e!r}") from e


async def post_with_timeout(
    post: HttpPost,
    url: str,
    body: bytes,
    headers: Mapping[str, str],
    *,
    timeout_ms: int,
) -> HttpReply:
    """
    Run one POST off the event loop, bounded by ``timeout_ms``.

    The socket timeout is set to the same bound so the in-flight request is
    abandoned at the socket level as well.
    """
    timeout_s = timeout_ms / 1000.0
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(post, url, body, headers, timeout_s),
            timeout=timeout_s,
        )
    except (asyncio.TimeoutError, TimeoutError) as e:
        logger.warning("POST %s timed out after %dms", url, timeout_ms)
        raise OperRouterTimeoutError(timeout_ms) from e
    except (OSError, http.client.HTTPException) as e:
        logger.warning("POST %s failed: %s", url, e)
        raise TransportError(f"Network error calling '{url}': {e}") from e
