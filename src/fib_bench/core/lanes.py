"""Lane-parallel batch evaluation of Fibonacci terms.

Indices are grouped into chunks of ``lane_width`` and every chunk advances
its lanes together with numpy vector operations.  Each u128 term is split
into ``hi``/``lo`` uint64 halves; additions propagate the low-half carry
and a carry out of the high half marks the lane's next term as overflowed.
Lanes that have reached their target, or have failed, are frozen with
``numpy.where`` blends rather than branched around.

Elements that do not fill a whole chunk are evaluated with the scalar
iterative routine, so results are identical to
``[fib_iterative(n) for n in indices]``.
"""

from __future__ import annotations

import dataclasses
import importlib
import os
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Type, TypeVar, Union

import numpy as np
import numpy.typing as npt

from .fixed_width import (
    U64_BITS,
    FibonacciOverflowError,
    InvalidParameterError,
    ensure_index,
    overflow_error,
)
from .sequential import fib_iterative

Lanes = npt.NDArray[np.uint64]
Mask = npt.NDArray[np.bool_]
BatchResult = Union[int, FibonacciOverflowError]

MAX_LANES_ENV = "FIB_BENCH_MAX_LANES"

_CPU_FEATURE_MODULES = ("numpy._core._multiarray_umath", "numpy.core._multiarray_umath")
# (flag, vector register width in bits); first present flag wins.
_VECTOR_WIDTHS = (("AVX512F", 512), ("AVX2", 256), ("SSE2", 128), ("ASIMD", 128), ("NEON", 128))

T = TypeVar("T")


@dataclass(frozen=True)
class HardwareFeatureSet:
    """SIMD capabilities of the host and the lane widths they allow."""

    sse2: bool = False
    sse41: bool = False
    avx: bool = False
    avx2: bool = False
    avx512f: bool = False
    asimd: bool = False
    lane_widths: Tuple[int, ...] = (1,)

    @property
    def max_lane_width(self) -> int:
        return self.lane_widths[-1]

    def best_width(self) -> int:
        """Register width in bits backing the widest lane group."""

        return self.max_lane_width * U64_BITS

    def description(self) -> str:
        names = [
            label
            for label, present in (
                ("AVX-512F", self.avx512f),
                ("AVX2", self.avx2),
                ("AVX", self.avx),
                ("SSE4.1", self.sse41),
                ("SSE2", self.sse2),
                ("ASIMD", self.asimd),
            )
            if present
        ]
        return ", ".join(names) if names else "scalar only"

    def resolve_lane_width(self, requested: Optional[int] = None) -> int:
        """Largest supported width not above ``requested`` (widest when ``None``)."""

        if requested is None:
            return self.max_lane_width
        if isinstance(requested, bool) or not isinstance(requested, (int, np.integer)):
            raise InvalidParameterError(
                f"lane width must be an integer, got {type(requested).__name__}"
            )
        if requested < 1:
            raise InvalidParameterError(f"lane width must be at least 1, got {requested}")
        return max(width for width in self.lane_widths if width <= requested)

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = dataclasses.asdict(self)
        payload["lane_widths"] = list(self.lane_widths)
        payload["best_width"] = self.best_width()
        payload["description"] = self.description()
        return payload


def _cpu_feature_table() -> Mapping[str, bool]:
    for module_name in _CPU_FEATURE_MODULES:
        try:
            module = importlib.import_module(module_name)
        except ImportError:
            continue
        table = getattr(module, "__cpu_features__", None)
        if table is not None:
            return dict(table)
    return {}


def _lane_cap_from_env() -> Optional[int]:
    raw = os.environ.get(MAX_LANES_ENV)
    if raw is None or not raw.strip():
        return None
    try:
        cap = int(raw)
    except ValueError:
        raise InvalidParameterError(f"{MAX_LANES_ENV} must be an integer, got {raw!r}") from None
    if cap < 1:
        raise InvalidParameterError(f"{MAX_LANES_ENV} must be at least 1, got {cap}")
    return cap


def detect_hardware_features(
    cpu_features: Optional[Mapping[str, bool]] = None,
    *,
    max_lanes: Optional[int] = None,
) -> HardwareFeatureSet:
    """Build a feature set from numpy's CPU dispatch table.

    ``cpu_features`` overrides the probed table and ``max_lanes`` the
    ``FIB_BENCH_MAX_LANES`` cap; both exist for deterministic callers.
    """

    table = _cpu_feature_table() if cpu_features is None else dict(cpu_features)
    cap = _lane_cap_from_env() if max_lanes is None else max_lanes
    if cap is not None and cap < 1:
        raise InvalidParameterError(f"max_lanes must be at least 1, got {cap}")

    register_bits = U64_BITS
    for flag, bits in _VECTOR_WIDTHS:
        if table.get(flag):
            register_bits = bits
            break
    widest = register_bits // U64_BITS
    if cap is not None:
        widest = min(widest, cap)
    widths = []
    width = 1
    while width <= widest:
        widths.append(width)
        width *= 2

    return HardwareFeatureSet(
        sse2=bool(table.get("SSE2")),
        sse41=bool(table.get("SSE41")),
        avx=bool(table.get("AVX")),
        avx2=bool(table.get("AVX2")),
        avx512f=bool(table.get("AVX512F")),
        asimd=bool(table.get("ASIMD") or table.get("NEON")),
        lane_widths=tuple(widths),
    )


_FEATURES: Optional[HardwareFeatureSet] = None
_FEATURES_LOCK = threading.Lock()


def hardware_features() -> HardwareFeatureSet:
    """Process-wide feature set, detected on first use."""

    global _FEATURES
    if _FEATURES is None:
        with _FEATURES_LOCK:
            if _FEATURES is None:
                _FEATURES = detect_hardware_features()
    return _FEATURES


@dataclass
class LaneBatch:
    """Vector state of one chunk of lanes.

    ``failed`` only ever gains lanes and a lane leaves ``active`` for good
    once it reaches its target or fails.
    """

    targets: Lanes
    current_hi: Lanes
    current_lo: Lanes
    next_hi: Lanes
    next_lo: Lanes
    next_overflow: Mask
    failed: Mask
    active: Mask
    iteration: int = 0

    @classmethod
    def start(cls, targets: Sequence[int]) -> "LaneBatch":
        width = len(targets)
        return cls(
            targets=np.asarray(targets, dtype=np.uint64),
            current_hi=np.zeros(width, dtype=np.uint64),
            current_lo=np.zeros(width, dtype=np.uint64),
            next_hi=np.zeros(width, dtype=np.uint64),
            next_lo=np.ones(width, dtype=np.uint64),
            next_overflow=np.zeros(width, dtype=np.bool_),
            failed=np.zeros(width, dtype=np.bool_),
            active=np.ones(width, dtype=np.bool_),
        )

    @property
    def width(self) -> int:
        return int(self.targets.shape[0])

    def step(self) -> bool:
        """Advance every active lane once; return whether any lane moved."""

        active = (self.targets > self.iteration) & ~self.failed
        exhausted = active & self.next_overflow
        self.failed = self.failed | exhausted
        active = active & ~exhausted
        self.active = active
        if not active.any():
            return False

        sum_lo = self.current_lo + self.next_lo
        carry = (sum_lo < self.current_lo).astype(np.uint64)
        partial_hi = self.current_hi + self.next_hi
        sum_hi = partial_hi + carry
        carried_out = (partial_hi < self.current_hi) | (sum_hi < partial_hi)

        self.current_hi = np.where(active, self.next_hi, self.current_hi)
        self.current_lo = np.where(active, self.next_lo, self.current_lo)
        self.next_hi = np.where(active, sum_hi, self.next_hi)
        self.next_lo = np.where(active, sum_lo, self.next_lo)
        self.next_overflow = np.where(active, carried_out, self.next_overflow)
        self.iteration += 1
        return True

    def run(self) -> "LaneBatch":
        while self.step():
            pass
        return self

    def results(self) -> List[Optional[int]]:
        """Per-lane ``F(target)``, ``None`` for lanes that overflowed."""

        values: List[Optional[int]] = []
        for lane in range(self.width):
            if self.failed[lane]:
                values.append(None)
            else:
                values.append((int(self.current_hi[lane]) << U64_BITS) | int(self.current_lo[lane]))
        return values


def _record(results: List[BatchResult], error: FibonacciOverflowError, fail_fast: bool) -> None:
    if fail_fast:
        raise error
    results.append(error)


def fib_batch(
    indices: Sequence[int],
    *,
    lane_width: Optional[int] = None,
    fail_fast: bool = False,
    features: Optional[HardwareFeatureSet] = None,
) -> List[BatchResult]:
    """Compute ``F(n)`` for every index, preserving input order.

    An index whose term overflows yields a :class:`FibonacciOverflowError`
    instance at its position, or raises it when ``fail_fast`` is set.
    """

    targets = [ensure_index(n) for n in indices]
    if not targets:
        return []
    if features is None:
        features = hardware_features()
    width = features.resolve_lane_width(lane_width)

    results: List[BatchResult] = []
    vectorised = len(targets) - len(targets) % width if width > 1 else 0
    for start in range(0, vectorised, width):
        chunk = targets[start : start + width]
        for n, value in zip(chunk, LaneBatch.start(chunk).run().results()):
            if value is None:
                _record(results, overflow_error(n), fail_fast)
            else:
                results.append(value)
    for n in targets[vectorised:]:
        try:
            results.append(fib_iterative(n))
        except FibonacciOverflowError as exc:
            _record(results, exc, fail_fast)
    return results


@dataclass
class BatchConfig:
    lane_width: Optional[int] = None
    fail_fast: bool = False


def _coerce_dataclass_config(value: object, cls: Type[T], factory: Callable[[], T]) -> T:
    """Return ``value`` as ``cls``, merging dictionaries over ``factory()`` defaults."""

    if isinstance(value, cls):
        return value
    if isinstance(value, dict):
        default = factory()
        init_fields = {item.name for item in dataclasses.fields(cls) if item.init}
        merged = {name: getattr(default, name) for name in init_fields}
        for key, val in value.items():
            if key in init_fields:
                merged[key] = val
        return cls(**merged)  # type: ignore[arg-type]
    raise TypeError(f"Expected {cls.__name__} or dict, got {type(value)!r}")


def coerce_batch_config(value: object = None) -> BatchConfig:
    if value is None:
        return BatchConfig()
    return _coerce_dataclass_config(value, BatchConfig, BatchConfig)


@dataclass(frozen=True)
class BatchTiming:
    lane_ns: int
    scalar_ns: int
    iterations: int = 1

    @property
    def speedup(self) -> float:
        if self.lane_ns <= 0:
            return 0.0
        return self.scalar_ns / self.lane_ns


@dataclass
class BatchCalculator:
    """Lane-parallel calculator bound to one configuration and feature set."""

    config: Union[BatchConfig, Mapping[str, object], None] = None
    features: HardwareFeatureSet = field(default_factory=hardware_features)

    def __post_init__(self) -> None:
        self.config = coerce_batch_config(self.config)
        self.lane_width = self.features.resolve_lane_width(self.config.lane_width)

    def calculate(self, indices: Sequence[int]) -> List[BatchResult]:
        return fib_batch(
            indices,
            lane_width=self.lane_width,
            fail_fast=self.config.fail_fast,
            features=self.features,
        )

    def calculate_scalar(self, indices: Sequence[int]) -> List[BatchResult]:
        return fib_batch(
            indices, lane_width=1, fail_fast=self.config.fail_fast, features=self.features
        )

    def benchmark(self, indices: Sequence[int], iterations: int = 1000) -> BatchTiming:
        """Total nanoseconds for ``iterations`` lane and scalar passes."""

        if isinstance(iterations, bool) or not isinstance(iterations, int) or iterations < 1:
            raise InvalidParameterError(f"iterations must be a positive integer, got {iterations!r}")
        start = time.perf_counter_ns()
        for _ in range(iterations):
            self.calculate(indices)
        lane_ns = time.perf_counter_ns() - start

        start = time.perf_counter_ns()
        for _ in range(iterations):
            self.calculate_scalar(indices)
        scalar_ns = time.perf_counter_ns() - start
        return BatchTiming(lane_ns=lane_ns, scalar_ns=scalar_ns, iterations=iterations)


__all__ = [
    "MAX_LANES_ENV",
    "BatchCalculator",
    "BatchConfig",
    "BatchTiming",
    "HardwareFeatureSet",
    "LaneBatch",
    "coerce_batch_config",
    "detect_hardware_features",
    "fib_batch",
    "hardware_features",
]
