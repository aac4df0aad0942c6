from __future__ import annotations

import ctypes

import pytest

from fib_bench.core import U64_MAX, fib_iterative
from fib_bench.tools import native_bridge
from fib_bench.tools.native_bridge import (
    NativeBridge,
    NativeBridgeError,
    NativeBridgeUnavailable,
)


def _wrapping_fib(n: int) -> int:
    a, b = 0, 1
    for _ in range(n):
        a, b = b, (a + b) & U64_MAX
    return a


class FakeLibrary:
    """Stand-in for a loaded shared library exporting the u64 functions."""

    def __init__(self, path: str, *, broken: bool = False, version: bytes | None = b"go1.22") -> None:
        self.path = path
        self.FibIterative = self._export(_wrapping_fib)
        self.FibMatrix = self._export(_wrapping_fib)
        self.FibDoubling = self._export((lambda n: 0) if broken else _wrapping_fib)
        if version is not None:
            self.GetGoVersion = self._export(lambda: version)

    @staticmethod
    def _export(func):
        def exported(*args):
            return func(*args)

        return exported


@pytest.fixture
def fake_cdll(monkeypatch: pytest.MonkeyPatch):
    loaded = []

    def factory(path: str, **kwargs) -> FakeLibrary:
        library = FakeLibrary(path, **kwargs)
        loaded.append(library)
        return library

    monkeypatch.setattr(native_bridge.ctypes, "CDLL", factory)
    return loaded


def test_load_configures_signatures(fake_cdll) -> None:
    bridge = NativeBridge("libfib.so").load()
    assert bridge.available
    library = fake_cdll[0]
    assert library.FibMatrix.argtypes == [ctypes.c_uint64]
    assert library.FibMatrix.restype is ctypes.c_uint64


def test_library_path_from_environment(monkeypatch: pytest.MonkeyPatch, fake_cdll) -> None:
    monkeypatch.setenv(native_bridge.NATIVE_LIB_ENV, "/opt/libfib.so")
    bridge = NativeBridge().load()
    assert bridge.library == "/opt/libfib.so"
    assert fake_cdll[0].path == "/opt/libfib.so"


def test_missing_library_is_unavailable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(native_bridge.NATIVE_LIB_ENV, raising=False)
    with pytest.raises(NativeBridgeUnavailable):
        NativeBridge().load()
    with pytest.raises(NativeBridgeUnavailable):
        NativeBridge("/nonexistent/libfib-missing.so").load()


def test_missing_symbol_is_reported(monkeypatch: pytest.MonkeyPatch) -> None:
    class Partial:
        FibIterative = staticmethod(_wrapping_fib)

    monkeypatch.setattr(native_bridge.ctypes, "CDLL", lambda path: Partial())
    with pytest.raises(NativeBridgeError, match="FibMatrix"):
        NativeBridge("libpartial.so").load()


def test_call_and_version(fake_cdll) -> None:
    bridge = NativeBridge("libfib.so")
    assert bridge.call("FibIterative", 10) == 55
    assert bridge.version() == "go1.22"
    with pytest.raises(NativeBridgeError):
        bridge.call("FibRecursive", 10)


def test_compare_within_contract(fake_cdll) -> None:
    rows = NativeBridge("libfib.so").compare(90, iterations=3)
    assert [row.name for row in rows] == ["FibIterative", "FibMatrix", "FibDoubling"]
    for row in rows:
        assert row.within_contract
        assert row.matches
        assert row.local_value == fib_iterative(90)
        assert row.native_ns >= 0
        assert row.local_ns >= 0


@pytest.mark.parametrize("n", [94, 186, 500])
def test_compare_outside_contract_reduces_locally(n: int, fake_cdll) -> None:
    rows = NativeBridge("libfib.so").compare(n, iterations=1)
    for row in rows:
        assert not row.within_contract
        assert row.local_value == _wrapping_fib(n)
        assert row.matches


def test_mismatch_is_logged(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    monkeypatch.setattr(
        native_bridge.ctypes, "CDLL", lambda path: FakeLibrary(path, broken=True)
    )
    with caplog.at_level("WARNING", logger=native_bridge.__name__):
        rows = NativeBridge("libbroken.so").compare(20, iterations=1)
    assert not rows[2].matches
    assert "FibDoubling returned 0 for F(20)" in caplog.text
