"""Method selection over the seven scalar Fibonacci algorithms."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple, Union

from .closed_form import binet, fib_binet_rounded
from .doubling import fib_doubling
from .fixed_width import (
    FibonacciOverflowError,
    InvalidParameterError,
    Representation,
    ensure_index,
)
from .matrix import fib_via_matrix, fib_via_matrix_extended
from .precision import is_within_precision_zone
from .sequential import (
    fib_iterative,
    fib_iterative_branchless,
    fib_recursive,
    fib_recursive_memo,
)

EXTENDED_INDEX_LIMIT = 100_000


class AlgorithmVariant(Enum):
    """The competing algorithms with their complexity metadata."""

    RECURSIVE = (
        "recursive",
        "O(2^n)",
        "O(n)",
        "Demonstration only",
        "Follows F(n) = F(n-1) + F(n-2) directly and recomputes shared "
        "subproblems, so the call count grows exponentially.",
    )
    RECURSIVE_MEMO = (
        "recursive_memo",
        "O(n)",
        "O(n)",
        "Good for small n",
        "Caches every computed term so each index is evaluated once, "
        "at the cost of an O(n) table and recursion stack.",
    )
    ITERATIVE = (
        "iterative",
        "O(n)",
        "O(1)",
        "General purpose",
        "Keeps only the pair (F(k), F(k+1)) and advances it n times.",
    )
    ITERATIVE_BRANCHLESS = (
        "iterative_branchless",
        "O(n)",
        "O(1)",
        "CPU pipeline optimized",
        "Iterative loop whose update has no data-dependent branch; overflow "
        "is collected in a sticky carry flag and checked after the loop.",
    )
    MATRIX = (
        "matrix",
        "O(log n)",
        "O(1)",
        "Best for large n",
        "Raises [[1,1],[1,0]] to the n-th power by repeated squaring and "
        "reads F(n) from the off-diagonal.",
    )
    FAST_DOUBLING = (
        "fast_doubling",
        "O(log n)",
        "O(log n)",
        "Alternative O(log n)",
        "Uses F(2k) = F(k)(2F(k+1) - F(k)) and F(2k+1) = F(k)^2 + F(k+1)^2, "
        "recursing on n // 2.",
    )
    BINET = (
        "binet",
        "O(1)",
        "O(1)",
        "n <= 78 only",
        "Closed form (phi^n - psi^n) / sqrt(5) rounded to an integer; exact "
        "only while the term fits a double's 53-bit mantissa.",
    )

    def __init__(
        self, label: str, time_complexity: str, space_complexity: str, note: str, description: str
    ) -> None:
        self.label = label
        self.time_complexity = time_complexity
        self.space_complexity = space_complexity
        self.note = note
        self.description = description

    @classmethod
    def parse(cls, name: Union[str, "AlgorithmVariant"]) -> "AlgorithmVariant":
        if isinstance(name, cls):
            return name
        key = str(name).strip().lower().replace("-", "_")
        for member in cls:
            if key in (member.label, member.name.lower()):
                return member
        if key in _ALIASES:
            return cls[_ALIASES[key]]
        raise InvalidParameterError(f"Unknown method: {name}")


_ALIASES = {
    "memo": "RECURSIVE_MEMO",
    "branchless": "ITERATIVE_BRANCHLESS",
    "doubling": "FAST_DOUBLING",
    "fast": "FAST_DOUBLING",
    "closed_form": "BINET",
}


@dataclass(frozen=True)
class Calculation:
    variant: AlgorithmVariant
    n: int
    value: int
    time_complexity: str
    space_complexity: str
    precision_loss: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {
            "n": self.n,
            "method": self.variant.label,
            "result": str(self.value),
            "time_complexity": self.time_complexity,
            "space_complexity": self.space_complexity,
            "precision_loss": self.precision_loss,
        }


def calculate(variant: Union[str, AlgorithmVariant], n: int) -> int:
    """Compute ``F(n)`` with the chosen algorithm inside the u128 contract."""

    variant = AlgorithmVariant.parse(variant)
    n = ensure_index(n)
    match variant:
        case AlgorithmVariant.RECURSIVE:
            return fib_recursive(n)
        case AlgorithmVariant.RECURSIVE_MEMO:
            return fib_recursive_memo(n)
        case AlgorithmVariant.ITERATIVE:
            return fib_iterative(n)
        case AlgorithmVariant.ITERATIVE_BRANCHLESS:
            return fib_iterative_branchless(n)
        case AlgorithmVariant.MATRIX:
            return fib_via_matrix(n)
        case AlgorithmVariant.FAST_DOUBLING:
            return fib_doubling(n)
        case AlgorithmVariant.BINET:
            return fib_binet_rounded(n)
    raise InvalidParameterError(f"Unknown method: {variant!r}")


def calculate_with_metadata(variant: Union[str, AlgorithmVariant], n: int) -> Calculation:
    variant = AlgorithmVariant.parse(variant)
    value = calculate(variant, n)
    precision_loss = variant is AlgorithmVariant.BINET and not is_within_precision_zone(
        n, Representation.FLOAT64
    )
    return Calculation(
        variant=variant,
        n=int(n),
        value=value,
        time_complexity=variant.time_complexity,
        space_complexity=variant.space_complexity,
        precision_loss=precision_loss,
    )


def calculate_extended(variant: Union[str, AlgorithmVariant], n: int) -> int:
    """Exact ``F(n)`` past the u128 range for ``n <= EXTENDED_INDEX_LIMIT``.

    The recursive variants are served by the unbounded iterative loop; the
    closed form still returns its rounded double and fails once that is no
    longer finite.
    """

    variant = AlgorithmVariant.parse(variant)
    n = ensure_index(n)
    if n > EXTENDED_INDEX_LIMIT:
        raise InvalidParameterError(
            f"extended computation is limited to n <= {EXTENDED_INDEX_LIMIT}, got {n}"
        )
    match variant:
        case (
            AlgorithmVariant.RECURSIVE
            | AlgorithmVariant.RECURSIVE_MEMO
            | AlgorithmVariant.ITERATIVE
            | AlgorithmVariant.ITERATIVE_BRANCHLESS
        ):
            return fib_iterative(n, limit=None)
        case AlgorithmVariant.MATRIX:
            return fib_via_matrix_extended(n)
        case AlgorithmVariant.FAST_DOUBLING:
            return fib_doubling(n, limit=None)
        case AlgorithmVariant.BINET:
            result = binet(n)
            if result.rounded is None:
                raise FibonacciOverflowError(
                    f"F({n}) exceeds the float64 range", index=n, bits=Representation.FLOAT64.bits
                )
            return result.rounded
    raise InvalidParameterError(f"Unknown method: {variant!r}")


def describe(variant: Union[str, AlgorithmVariant]) -> Dict[str, str]:
    variant = AlgorithmVariant.parse(variant)
    return {
        "name": variant.label,
        "time_complexity": variant.time_complexity,
        "space_complexity": variant.space_complexity,
        "note": variant.note,
        "description": variant.description,
    }


def all_variants() -> Tuple[AlgorithmVariant, ...]:
    return tuple(AlgorithmVariant)


__all__ = [
    "EXTENDED_INDEX_LIMIT",
    "AlgorithmVariant",
    "Calculation",
    "all_variants",
    "calculate",
    "calculate_extended",
    "calculate_with_metadata",
    "describe",
]
