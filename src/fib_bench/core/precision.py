"""Precision and overflow boundaries of the numeric representations.

Boundaries are discovered by scanning against exact integers rather than
taken from a table, so they follow whatever the closed form and the
representation actually produce.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List

from .closed_form import binet, ensure_float_representation
from .fixed_width import InvalidParameterError, Representation, ensure_index
from .sequential import RecurrenceState, fib_iterative

DEFAULT_CONFIRMATION_WINDOW = 8


@dataclass(frozen=True)
class PrecisionReport:
    n: int
    exact: int
    approx: float
    abs_error: float
    rel_error: float
    representation: Representation
    within_precision_zone: bool

    def to_record(self) -> Dict[str, object]:
        """Row shape consumed by the dashboard charts."""

        return {
            "n": self.n,
            "exact": self.exact,
            "binet": self.approx,
            "approx": self.approx,
            "abs_error": self.abs_error,
            "rel_error": self.rel_error,
        }


def _approximation_error(n: int, exact: int, representation: Representation) -> float:
    result = binet(n, representation)
    if not result.finite:
        return float("inf")
    return float(abs(int(result.value) - exact))


def error_report(
    n: int, representation: Representation = Representation.FLOAT64
) -> PrecisionReport:
    """Compare the closed form against the exact iterative value for ``F(n)``."""

    n = ensure_index(n)
    representation = ensure_float_representation(representation)
    exact = fib_iterative(n)
    approx = binet(n, representation)
    abs_error = _approximation_error(n, exact, representation)
    rel_error = abs_error / exact if exact else 0.0
    return PrecisionReport(
        n=n,
        exact=exact,
        approx=float(approx.value),
        abs_error=abs_error,
        rel_error=rel_error,
        representation=representation,
        within_precision_zone=is_within_precision_zone(n, representation),
    )


def precision_table(
    max_n: int,
    *,
    step: int = 1,
    representation: Representation = Representation.FLOAT64,
) -> List[PrecisionReport]:
    max_n = ensure_index(max_n)
    if isinstance(step, bool) or not isinstance(step, int) or step < 1:
        raise InvalidParameterError(f"step must be a positive integer, got {step!r}")
    ceiling = find_max_exact_n_for(Representation.UINT128)
    if max_n > ceiling:
        raise InvalidParameterError(
            f"max_n must be at most {ceiling}, the last index with an exact u128 term; got {max_n}"
        )
    return [error_report(n, representation) for n in range(0, max_n + 1, step)]


@lru_cache(maxsize=None)
def find_max_exact_n_for(
    representation: Representation,
    *,
    confirmation_window: int = DEFAULT_CONFIRMATION_WINDOW,
) -> int:
    """Largest ``n`` whose term is represented exactly.

    Integer representations stop at the last term that fits.  Floating-point
    representations stop at the last exact term followed by
    ``confirmation_window`` consecutive inexact ones; isolated inexact terms
    that are followed by exact ones do not end the scan.
    """

    if not isinstance(representation, Representation):
        representation = Representation.parse(representation)
    if confirmation_window < 1:
        raise InvalidParameterError(
            f"confirmation_window must be at least 1, got {confirmation_window}"
        )
    state = RecurrenceState.origin(limit=None)
    if representation.is_integer:
        ceiling = representation.max_value
        while state.next <= ceiling:
            state = state.advance()
        return state.index

    last_exact = 0
    misses = 0
    while misses < confirmation_window:
        if _approximation_error(state.index, state.current, representation) == 0:
            last_exact = state.index
            misses = 0
        else:
            misses += 1
        state = state.advance()
    return last_exact


def is_within_precision_zone(n: int, representation: Representation) -> bool:
    return ensure_index(n) <= find_max_exact_n_for(representation)


__all__ = [
    "DEFAULT_CONFIRMATION_WINDOW",
    "PrecisionReport",
    "error_report",
    "find_max_exact_n_for",
    "is_within_precision_zone",
    "precision_table",
]
