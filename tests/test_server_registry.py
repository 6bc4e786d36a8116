import threading

import pytest

from seamrpc.core.types import MethodDescriptor
from seamrpc.server.registry import FunctionRegistry


async def _fn():
    return 1


def test_register_get_and_list():
    reg = FunctionRegistry()
    descriptor = MethodDescriptor(name="fn", module_path="api", is_eligible=True)
    reg.register("api.fn", _fn, descriptor)
    entry = reg.get("api.fn")
    assert entry is not None and entry.fn is _fn and entry.descriptor is descriptor
    assert reg.list_registered() == ["api.fn"]
    assert "api.fn" in reg
    assert len(reg) == 1


def test_unregister_reports_presence():
    reg = FunctionRegistry()
    reg.register("a", _fn)
    assert reg.unregister("a") is True
    assert reg.unregister("a") is False
    assert reg.get("a") is None


def test_register_replaces_existing():
    async def _other():
        return 2

    reg = FunctionRegistry()
    reg.register("a", _fn)
    reg.register("a", _other)
    assert reg.get("a").fn is _other
    assert len(reg) == 1


def test_register_rejects_bad_input():
    reg = FunctionRegistry()
    with pytest.raises(ValueError):
        reg.register("", _fn)
    with pytest.raises(TypeError):
        reg.register("x", 42)


def test_snapshot_is_stable_while_writers_run():
    reg = FunctionRegistry()
    reg.register("keep", _fn)
    snapshot = reg.list_registered()

    def _writer(n):
        for i in range(200):
            reg.register(f"w{n}.{i}", _fn)

    threads = [threading.Thread(target=_writer, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert snapshot == ["keep"]
    assert len(reg) == 801


def test_clear():
    reg = FunctionRegistry()
    reg.register("a", _fn)
    reg.clear()
    assert reg.list_registered() == []
