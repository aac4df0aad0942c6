"""Bridge to a native Fibonacci library for side-by-side comparison.

The shared library is expected to export ``uint64_t Fib<Name>(uint64_t)``
functions.  Its internals are opaque: results are compared against the local
algorithms reduced to the same u64 contract, and anything beyond the largest
index whose term fits 64 bits is reported as outside the contract rather than
trusted.
"""

from __future__ import annotations

import ctypes
import logging
import os
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from fib_bench.core import (
    AlgorithmVariant,
    Representation,
    U64_MAX,
    calculate,
    fib_via_matrix_mod,
    find_max_exact_n_for,
)
from fib_bench.core.fixed_width import ensure_index

logger = logging.getLogger(__name__)

NATIVE_LIB_ENV = "FIB_BENCH_NATIVE_LIB"

NATIVE_FUNCTIONS: Dict[str, AlgorithmVariant] = {
    "FibIterative": AlgorithmVariant.ITERATIVE,
    "FibMatrix": AlgorithmVariant.MATRIX,
    "FibDoubling": AlgorithmVariant.FAST_DOUBLING,
}
VERSION_SYMBOL = "GetGoVersion"


class NativeBridgeError(RuntimeError):
    """Raised when the native library cannot be used."""


class NativeBridgeUnavailable(NativeBridgeError):
    """Raised when no native library could be loaded."""


@dataclass(frozen=True)
class ComparisonRow:
    name: str
    variant: AlgorithmVariant
    n: int
    native_value: int
    local_value: int
    native_ns: int
    local_ns: int
    within_contract: bool

    @property
    def matches(self) -> bool:
        return self.native_value == self.local_value


def _mean_ns(func: Callable[[], int], iterations: int) -> int:
    start = time.perf_counter_ns()
    for _ in range(iterations):
        func()
    return (time.perf_counter_ns() - start) // iterations


class NativeBridge:
    """ctypes wrapper around the exported native functions."""

    def __init__(self, library: Optional[str] = None) -> None:
        self.library = library if library is not None else os.environ.get(NATIVE_LIB_ENV)
        self._handle: Optional[ctypes.CDLL] = None
        self._functions: Dict[str, Callable[[int], int]] = {}

    @property
    def available(self) -> bool:
        return self._handle is not None

    def load(self) -> "NativeBridge":
        if self._handle is not None:
            return self
        if not self.library:
            raise NativeBridgeUnavailable(
                f"no native library configured; pass --library or set {NATIVE_LIB_ENV}"
            )
        try:
            handle = ctypes.CDLL(self.library)
        except OSError as exc:
            raise NativeBridgeUnavailable(
                f"unable to load native library {self.library}: {exc}"
            ) from exc

        functions: Dict[str, Callable[[int], int]] = {}
        for name in NATIVE_FUNCTIONS:
            try:
                function = getattr(handle, name)
            except AttributeError as exc:
                raise NativeBridgeError(
                    f"native library {self.library} does not export {name}"
                ) from exc
            function.argtypes = [ctypes.c_uint64]
            function.restype = ctypes.c_uint64
            functions[name] = function
        self._handle = handle
        self._functions = functions
        logger.info("Loaded native library %s", self.library)
        return self

    def version(self) -> Optional[str]:
        self.load()
        try:
            function = getattr(self._handle, VERSION_SYMBOL)
        except AttributeError:
            return None
        function.restype = ctypes.c_char_p
        raw = function()
        return raw.decode("utf-8", "replace") if raw else None

    def call(self, name: str, n: int) -> int:
        self.load()
        if name not in self._functions:
            raise NativeBridgeError(
                f"unknown native function {name}; expected one of {', '.join(NATIVE_FUNCTIONS)}"
            )
        return int(self._functions[name](ensure_index(n))) & U64_MAX

    def compare(self, n: int, iterations: int = 100) -> List[ComparisonRow]:
        """Run every native function against its local counterpart for ``F(n)``."""

        n = ensure_index(n)
        if iterations < 1:
            raise NativeBridgeError(f"iterations must be at least 1, got {iterations}")
        self.load()
        within_contract = n <= find_max_exact_n_for(Representation.UINT64)
        fits_u128 = n <= find_max_exact_n_for(Representation.UINT128)

        rows: List[ComparisonRow] = []
        for name, variant in NATIVE_FUNCTIONS.items():
            if fits_u128:
                local = lambda variant=variant: calculate(variant, n) & U64_MAX
            else:
                local = lambda: fib_via_matrix_mod(n, U64_MAX + 1)
            row = ComparisonRow(
                name=name,
                variant=variant,
                n=n,
                native_value=self.call(name, n),
                local_value=local(),
                native_ns=_mean_ns(lambda name=name: self.call(name, n), iterations),
                local_ns=_mean_ns(local, iterations),
                within_contract=within_contract,
            )
            if within_contract and not row.matches:
                logger.warning(
                    "%s returned %d for F(%d), expected %d",
                    name,
                    row.native_value,
                    n,
                    row.local_value,
                )
            rows.append(row)
        return rows


__all__ = [
    "NATIVE_FUNCTIONS",
    "NATIVE_LIB_ENV",
    "ComparisonRow",
    "NativeBridge",
    "NativeBridgeError",
    "NativeBridgeUnavailable",
]
