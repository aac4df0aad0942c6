"""Closed-form (Binet) evaluation of Fibonacci terms.

``F(n) = (phi^n - psi^n) / sqrt(5)`` is evaluated with :mod:`mpmath` at a
working precision sized to the result, rounded to the nearest integer and then
stored in the representation's numpy dtype.  The precision loss therefore comes
only from the storage format: float64 holds every term up to ``F(78)``
exactly and float32 every term up to ``F(36)``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

import mpmath
import numpy as np

from .fixed_width import (
    U128_MAX,
    InvalidParameterError,
    Representation,
    ensure_index,
    overflow_error,
)
from .sequential import fib_iterative

SQRT_5 = math.sqrt(5.0)
PHI = (1.0 + SQRT_5) / 2.0
PSI = (1.0 - SQRT_5) / 2.0

_LOG10_PHI = math.log10(PHI)
_LOG10_SQRT_5 = math.log10(SQRT_5)
# Past this many significant digits no supported dtype can tell terms apart.
_MAX_WORKING_DIGITS = 40
_GUARD_DIGITS = 12


@dataclass(frozen=True)
class ClosedFormResult:
    n: int
    value: np.floating
    representation: Representation

    @property
    def finite(self) -> bool:
        return bool(np.isfinite(self.value))

    @property
    def rounded(self) -> Optional[int]:
        """Nearest integer to ``value``, or ``None`` when it is not finite."""

        if not self.finite:
            return None
        return int(np.rint(self.value))


def _working_digits(n: int) -> int:
    estimated = int(n * _LOG10_PHI) + 1
    return min(estimated, _MAX_WORKING_DIGITS) + _GUARD_DIGITS


def _binet_mp(n: int):
    with mpmath.workdps(_working_digits(n)):
        root5 = mpmath.sqrt(5)
        phi = (1 + root5) / 2
        psi = (1 - root5) / 2
        return mpmath.nint((phi ** n - psi ** n) / root5)


def _store(value, dtype) -> np.floating:
    ceiling = np.finfo(dtype).max
    if value > mpmath.mpf(float(ceiling)):
        return dtype(np.inf)
    # int -> float conversion rounds to nearest, ties to even.
    return dtype(float(int(value)))


def ensure_float_representation(representation: Representation) -> Representation:
    if not isinstance(representation, Representation):
        representation = Representation.parse(representation)
    if representation.is_integer:
        raise InvalidParameterError(
            f"closed form needs a floating-point representation, got {representation.label}"
        )
    return representation


def binet(n: int, representation: Representation = Representation.FLOAT64) -> ClosedFormResult:
    n = ensure_index(n)
    representation = ensure_float_representation(representation)
    value = _store(_binet_mp(n), representation.dtype)
    return ClosedFormResult(n, value, representation)


def fib_binet(n: int) -> float:
    return float(binet(n).value)


def fib_binet_rounded(n: int) -> int:
    """Binet's value rounded to an integer, checked against the u128 range."""

    result = binet(n)
    rounded = result.rounded
    if rounded is None or rounded > U128_MAX:
        raise overflow_error(result.n)
    return rounded


def fib_binet_simplified(n: int) -> float:
    """``round(phi^n / sqrt(5))`` in double precision, dropping the psi term."""

    n = ensure_index(n)
    if n == 0:
        return 0.0
    try:
        return float(round(PHI ** n / SQRT_5))
    except OverflowError:
        return math.inf


def fib_binet_scientific(n: int) -> Tuple[float, int]:
    """Return ``(mantissa, exponent)`` with ``F(n) ~= mantissa * 10**exponent``.

    Works in log space so the result stays finite for every u64 index.
    """

    n = ensure_index(n)
    if n == 0:
        return 0.0, 0
    log_value = n * _LOG10_PHI - _LOG10_SQRT_5
    exponent = math.floor(log_value)
    mantissa = 10.0 ** (log_value - exponent)
    if mantissa >= 10.0:
        mantissa /= 10.0
        exponent += 1
    return mantissa, exponent


def fibonacci_ratio(n: int) -> float:
    """``F(n + 1) / F(n)``, which approaches ``PHI``; infinite at ``n = 0``."""

    n = ensure_index(n)
    if n == 0:
        return math.inf
    return fib_iterative(n + 1) / fib_iterative(n)


def convergence_to_phi(n: int) -> float:
    return abs(fibonacci_ratio(n) - PHI)


__all__ = [
    "PHI",
    "PSI",
    "SQRT_5",
    "ClosedFormResult",
    "binet",
    "convergence_to_phi",
    "ensure_float_representation",
    "fib_binet",
    "fib_binet_rounded",
    "fib_binet_scientific",
    "fib_binet_simplified",
    "fibonacci_ratio",
]
