"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

WASM-bridged client.

Metadata and config validation are served by a locally loaded WASM module;
every datasource and LLM operation goes over the same JSON-RPC/HTTP path as
``HTTPClient``, so result shapes are identical across both clients.
"""

from __future__ import annotations

import asyncio
import json
import logging
import struct
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol

from ..contract import failure_message
from ..errors import ProtocolError, WasmBridgeError
from ..transport.http import HttpPost
from ..types import ClientOptions, ConfigResponse, Metadata
from .jsonrpc import HTTPClient

logger = logging.getLogger("operrouter.wasm")


class WasmBridge(Protocol):
    """Functions a WASM module exposes to the client; both return JSON text."""

    def get_metadata(self) -> str: ...

    def validate_config(self, config_json: str) -> str: ...


def _unsupported_import(module: str, name: str):
    def _trap(*args: Any) -> None:
        raise WasmBridgeError(f"WASM module called unsupported host import {module}.{name}")

    return _trap


class WasmtimeBridge:
    """
    ``WasmBridge`` over a wasm-bindgen module loaded with wasmtime.

    String returns follow the wasm-bindgen ABI: the export receives a return
    pointer reserved on the shadow stack, writes ``(ptr, len)`` there, and the
    caller frees the buffer with ``__wbindgen_free``. Calls are serialized on
    one store, so the bridge is safe to drive from worker threads.
    """

    def __init__(self, path: str | Path) -> None:
        module_path = Path(path)
        if not module_path.is_file():
            raise WasmBridgeError(f"WASM module not found: {module_path}")
        try:
            import wasmtime
        except ModuleNotFoundError as exc:  # pragma: no cover
            raise WasmBridgeError(
                "WASM transport requires `wasmtime` to be installed."
            ) from exc

        try:
            engine = wasmtime.Engine()
            self._store = wasmtime.Store(engine)
            module = wasmtime.Module.from_file(engine, str(module_path))
            linker = wasmtime.Linker(engine)
            self._stub_imports(wasmtime, linker, module)
            instance = linker.instantiate(self._store, module)
        except (wasmtime.WasmtimeError, wasmtime.Trap) as e:
            raise WasmBridgeError(f"Failed to load WASM module {module_path}: {e}") from e

        self._exports = instance.exports(self._store)
        self._trap_types: tuple[type[BaseException], ...] = (
            wasmtime.Trap,
            wasmtime.WasmtimeError,
        )
        self._memory = self._export("memory")
        self._lock = threading.Lock()
        logger.info("Loaded WASM module %s", module_path)

    def _stub_imports(self, wasmtime: Any, linker: Any, module: Any) -> None:
        """Satisfy host imports: memories are created, functions trap when called."""
        for imp in module.imports:
            if imp.name is None:
                continue
            if isinstance(imp.type, wasmtime.FuncType):
                linker.define(
                    self._store,
                    imp.module,
                    imp.name,
                    wasmtime.Func(self._store, imp.type, _unsupported_import(imp.module, imp.name)),
                )
            elif isinstance(imp.type, wasmtime.MemoryType):
                linker.define(
                    self._store,
                    imp.module,
                    imp.name,
                    wasmtime.Memory(self._store, imp.type),
                )

    def _export(self, name: str) -> Any:
        try:
            return self._exports[name]
        except KeyError as e:
            raise WasmBridgeError(f"WASM module does not export '{name}'") from e

    def _write_str(self, text: str) -> tuple[int, int]:
        data = text.encode("utf-8")
        malloc = self._export("__wbindgen_malloc")
        ptr = malloc(self._store, len(data), 1)
        self._memory.write(self._store, data, ptr)
        return ptr, len(data)

    def _call_returning_str(self, name: str, *args: int) -> str:
        fn = self._export(name)
        shift_stack = self._export("__wbindgen_add_to_stack_pointer")
        free = self._export("__wbindgen_free")
        try:
            retptr = shift_stack(self._store, -16)
            try:
                fn(self._store, retptr, *args)
                ptr, length = struct.unpack(
                    "<ii", bytes(self._memory.read(self._store, retptr, retptr + 8))
                )
            finally:
                shift_stack(self._store, 16)
            out = bytes(self._memory.read(self._store, ptr, ptr + length))
            free(self._store, ptr, length, 1)
        except self._trap_types as e:
            raise WasmBridgeError(f"WASM call '{name}' failed: {e}") from e
        return out.decode("utf-8")

    def get_metadata(self) -> str:
        with self._lock:
            return self._call_returning_str("get_metadata")

    def validate_config(self, config_json: str) -> str:
        with self._lock:
            try:
                ptr, length = self._write_str(config_json)
            except self._trap_types as e:
                raise WasmBridgeError(f"WASM allocation failed: {e}") from e
            return self._call_returning_str("validate_config", ptr, length)


def _decode_object(source: str, raw: str) -> dict[str, Any]:
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"WASM {source} returned invalid JSON") from e
    if not isinstance(decoded, dict):
        raise ProtocolError(f"WASM {source} did not return an object")
    return decoded


class WASMClient(HTTPClient):
    """
    ``OperRouterClient`` with WASM-powered metadata and config validation.

    Args:
        base_url: JSON-RPC endpoint used for every networked operation.
        options: Timeout, static headers and optional ``wasm_path``.
        wasm_path: Overrides ``options.wasm_path``.
        bridge: Preloaded ``WasmBridge``; skips module loading.
        post: Blocking POST implementation for the HTTP path.
    """

    def __init__(
        self,
        base_url: str,
        options: ClientOptions | None = None,
        *,
        wasm_path: str | None = None,
        bridge: WasmBridge | None = None,
        post: HttpPost | None = None,
    ) -> None:
        super().__init__(base_url, options, post=post)
        path = wasm_path or self.options.wasm_path
        if bridge is None and path:
            bridge = WasmtimeBridge(path)
        self._bridge = bridge
        if self._bridge is None:
            logger.debug("No WASM module configured; metadata and validation use JSON-RPC")

    @property
    def bridge(self) -> WasmBridge | None:
        return self._bridge

    async def get_metadata(self) -> Metadata:
        if self._bridge is None:
            return await super().get_metadata()
        meta = _decode_object("get_metadata", await asyncio.to_thread(self._bridge.get_metadata))
        description = meta.get("description")
        return Metadata(
            name=str(meta.get("name") or ""),
            version=str(meta.get("version") or ""),
            description=str(description) if description else None,
        )

    async def validate_config(self, config: Mapping[str, Any]) -> ConfigResponse:
        if self._bridge is None:
            return await super().validate_config(config)
        raw = await asyncio.to_thread(
            self._bridge.validate_config, json.dumps(dict(config), default=str)
        )
        result = _decode_object("validate_config", raw)
        success = bool(result.get("success", result.get("valid", False)))
        message = result.get("message") or result.get("error") or ""
        return ConfigResponse(
            success=success,
            message=failure_message("validate_config", str(message), success),
        )
