from __future__ import annotations

import asyncio
import json
import threading

import pytest
import wasmtime

from operrouter import (
    ClientOptions,
    ConfigResponse,
    Metadata,
    WASMClient,
    WasmBridgeError,
    WasmtimeBridge,
)

METADATA = {"name": "wat-core", "version": "0.0.1", "description": "hand-written module"}

# Minimal wasm-bindgen style module: bump allocator, shadow stack, string
# returns written through a return pointer. validate_config echoes its input.
ABI_FUNCS = """
  (memory (export "memory") 1)
  (global $sp (mut i32) (i32.const 1024))
  (global $heap (mut i32) (i32.const 8192))
  (func (export "__wbindgen_add_to_stack_pointer") (param $delta i32) (result i32)
    (global.set $sp (i32.add (global.get $sp) (local.get $delta)))
    (global.get $sp))
  (func (export "__wbindgen_malloc") (param $size i32) (param $align i32) (result i32)
    (local $ptr i32)
    (local.set $ptr (global.get $heap))
    (global.set $heap (i32.add (global.get $heap) (local.get $size)))
    (local.get $ptr))
  (func (export "__wbindgen_free") (param i32 i32 i32))
  (func (export "validate_config") (param $ret i32) (param $ptr i32) (param $len i32)
    (i32.store (local.get $ret) (local.get $ptr))
    (i32.store offset=4 (local.get $ret) (local.get $len)))
"""


def run_async(coro):
    return asyncio.run(coro)


def _metadata_module() -> str:
    text = json.dumps(METADATA, separators=(",", ":"))
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f"""
(module
  {ABI_FUNCS}
  (data (i32.const 4096) "{escaped}")
  (func (export "get_metadata") (param $ret i32)
    (i32.store (local.get $ret) (i32.const 4096))
    (i32.store offset=4 (local.get $ret) (i32.const {len(text.encode())})))
)
"""


def _write_module(tmp_path, wat: str, name: str = "core.wasm"):
    path = tmp_path / name
    path.write_bytes(wasmtime.wat2wasm(wat))
    return path


def test_bridge_reads_string_returned_through_retptr(tmp_path):
    bridge = WasmtimeBridge(_write_module(tmp_path, _metadata_module()))

    assert json.loads(bridge.get_metadata()) == METADATA
    # The shadow stack is restored, so repeated calls keep working.
    assert json.loads(bridge.get_metadata()) == METADATA


def test_bridge_copies_argument_into_module_memory(tmp_path):
    bridge = WasmtimeBridge(_write_module(tmp_path, _metadata_module()))

    payload = '{"metadata": {"name": "démo"}}'
    assert bridge.validate_config(payload) == payload


def test_client_uses_real_module_for_metadata_and_validation(stub_server, tmp_path):
    path = _write_module(tmp_path, _metadata_module())
    client = WASMClient(
        "http://testserver/rpc",
        ClientOptions(wasm_path=str(path)),
        post=stub_server.post,
    )

    assert run_async(client.get_metadata()) == Metadata(**METADATA)
    # The module echoes its input, so the config doubles as the verdict.
    verdict = run_async(client.validate_config({"valid": False, "error": "no inject table"}))
    assert verdict == ConfigResponse(success=False, message="no inject table")
    assert stub_server.jsonrpc_requests == []


def test_concurrent_calls_share_one_store(stub_server, tmp_path):
    path = _write_module(tmp_path, _metadata_module())
    client = WASMClient("http://testserver/rpc", wasm_path=str(path), post=stub_server.post)

    async def scenario():
        return await asyncio.gather(*(client.get_metadata() for _ in range(6)))

    assert {m.name for m in run_async(scenario())} == {"wat-core"}


def test_missing_export_raises_bridge_error(tmp_path):
    bridge = WasmtimeBridge(_write_module(tmp_path, f"(module {ABI_FUNCS})"))

    with pytest.raises(WasmBridgeError, match="does not export 'get_metadata'"):
        bridge.get_metadata()


def test_missing_memory_fails_at_load(tmp_path):
    path = _write_module(tmp_path, '(module (func (export "get_metadata") (param i32)))')

    with pytest.raises(WasmBridgeError, match="memory"):
        WasmtimeBridge(path)


def test_trap_inside_module_raises_bridge_error(tmp_path):
    wat = f'(module {ABI_FUNCS} (func (export "get_metadata") (param i32) unreachable))'
    bridge = WasmtimeBridge(_write_module(tmp_path, wat))

    with pytest.raises(WasmBridgeError, match="get_metadata"):
        bridge.get_metadata()


def test_host_imports_are_stubbed_and_trap_when_called(tmp_path):
    wat = f"""
(module
  (import "wbg" "__wbg_log" (func $log (param i32)))
  {ABI_FUNCS}
  (func (export "get_metadata") (param i32) (call $log (i32.const 0)))
)
"""
    bridge = WasmtimeBridge(_write_module(tmp_path, wat))

    with pytest.raises(WasmBridgeError):
        bridge.get_metadata()


def test_invalid_module_bytes_fail_at_load(tmp_path):
    path = tmp_path / "broken.wasm"
    path.write_bytes(b"\x00asm-not-really")

    with pytest.raises(WasmBridgeError, match="Failed to load"):
        WasmtimeBridge(path)


def test_client_runs_bridge_off_the_event_loop_thread(stub_server):
    seen: list[int] = []

    class ThreadRecordingBridge:
        def get_metadata(self) -> str:
            seen.append(threading.get_ident())
            return json.dumps(METADATA)

        def validate_config(self, config_json: str) -> str:
            seen.append(threading.get_ident())
            return '{"success": true}'

    client = WASMClient("http://testserver/rpc", bridge=ThreadRecordingBridge(), post=stub_server.post)

    async def scenario():
        loop_thread = threading.get_ident()
        await client.get_metadata()
        await client.validate_config({})
        return loop_thread

    loop_thread = run_async(scenario())
    assert len(seen) == 2
    assert loop_thread not in seen
