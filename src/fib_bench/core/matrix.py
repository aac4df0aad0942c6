"""Matrix exponentiation of the Fibonacci generator ``[[1, 1], [1, 0]]``.

``G^n == [[F(n+1), F(n)], [F(n), F(n-1)]]``, so ``F(n)`` is read from the
off-diagonal after ``O(log n)`` products.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from .fixed_width import (
    U128_BITS,
    U128_MAX,
    FibonacciOverflowError,
    InvalidParameterError,
    ensure_index,
)

_ENTRY_NAMES = ("top_left", "top_right", "bottom_left", "bottom_right")


@dataclass(frozen=True)
class FixedMatrix2x2:
    """Row-major 2x2 matrix of u128 entries with a per-entry overflow mask.

    Bit ``2 * row + col`` of ``overflow`` is set when the true value of that
    entry did not fit ``limit``.  Flagged entries hold the wrapped value and
    can neither be read nor multiplied.
    """

    a: int
    b: int
    c: int
    d: int
    overflow: int = 0
    limit: Optional[int] = U128_MAX

    @classmethod
    def identity(cls, limit: Optional[int] = U128_MAX) -> "FixedMatrix2x2":
        return cls(1, 0, 0, 1, 0, limit)

    @classmethod
    def generator(cls, limit: Optional[int] = U128_MAX) -> "FixedMatrix2x2":
        return cls(1, 1, 1, 0, 0, limit)

    @classmethod
    def _from_products(cls, entries, limit: Optional[int]) -> "FixedMatrix2x2":
        mask = 0
        stored = []
        for position, value in enumerate(entries):
            if limit is not None and value > limit:
                mask |= 1 << position
                value &= limit
            stored.append(value)
        return cls(*stored, mask, limit)

    def _bits(self) -> int:
        return self.limit.bit_length() if self.limit is not None else U128_BITS

    def entry(self, row: int, col: int, *, index: Optional[int] = None) -> int:
        if row not in (0, 1) or col not in (0, 1):
            raise InvalidParameterError(f"matrix position ({row}, {col}) is out of range")
        position = 2 * row + col
        if self.overflow & (1 << position):
            where = f"F({index})" if index is not None else _ENTRY_NAMES[position]
            raise FibonacciOverflowError(
                f"{where} exceeds the {self._bits()}-bit unsigned integer range",
                index=index,
                bits=self._bits(),
            )
        return (self.a, self.b, self.c, self.d)[position]

    def multiply(self, other: "FixedMatrix2x2", *, index: Optional[int] = None) -> "FixedMatrix2x2":
        """Checked product: 8 multiplies and 4 adds, each entry bounded by ``limit``."""

        if self.overflow or other.overflow:
            where = f" while computing F({index})" if index is not None else ""
            raise FibonacciOverflowError(
                f"matrix product consumed an entry past the {self._bits()}-bit range{where}",
                index=index,
                bits=self._bits(),
            )
        return FixedMatrix2x2._from_products(
            (
                self.a * other.a + self.b * other.c,
                self.a * other.b + self.b * other.d,
                self.c * other.a + self.d * other.c,
                self.c * other.b + self.d * other.d,
            ),
            self.limit,
        )

    def multiply_mod(self, other: "FixedMatrix2x2", modulus: int) -> "FixedMatrix2x2":
        """Product with every multiply and add reduced modulo ``modulus``."""

        m = modulus
        return FixedMatrix2x2(
            (self.a * other.a % m + self.b * other.c % m) % m,
            (self.a * other.b % m + self.b * other.d % m) % m,
            (self.c * other.a % m + self.d * other.c % m) % m,
            (self.c * other.b % m + self.d * other.d % m) % m,
            0,
            self.limit,
        )

    def __matmul__(self, other: "FixedMatrix2x2") -> "FixedMatrix2x2":
        return self.multiply(other)


def _square_and_multiply(
    n: int,
    result: FixedMatrix2x2,
    base: FixedMatrix2x2,
    product: Callable[[FixedMatrix2x2, FixedMatrix2x2], FixedMatrix2x2],
) -> FixedMatrix2x2:
    while n:
        if n & 1:
            result = product(result, base)
        base = product(base, base)
        n >>= 1
    return result


def matrix_power_fibonacci(n: int, *, limit: Optional[int] = U128_MAX) -> FixedMatrix2x2:
    """Return ``G^n`` by binary exponentiation; ``n = 0`` yields the identity."""

    n = ensure_index(n)
    return _square_and_multiply(
        n,
        FixedMatrix2x2.identity(limit),
        FixedMatrix2x2.generator(limit),
        lambda left, right: left.multiply(right, index=n),
    )


def fib_via_matrix(n: int) -> int:
    n = ensure_index(n)
    return matrix_power_fibonacci(n).entry(0, 1, index=n)


def fib_via_matrix_extended(n: int) -> int:
    """Matrix method on unbounded integers; callers bound ``n`` themselves."""

    n = ensure_index(n)
    return matrix_power_fibonacci(n, limit=None).entry(0, 1, index=n)


def ensure_modulus(modulus: object) -> int:
    if isinstance(modulus, bool) or not isinstance(modulus, int):
        raise InvalidParameterError(
            f"modulus must be an integer, got {type(modulus).__name__}"
        )
    if modulus < 1:
        raise InvalidParameterError(f"modulus must be at least 1, got {modulus}")
    if modulus > U128_MAX:
        raise InvalidParameterError("modulus exceeds the 128-bit unsigned range")
    return modulus


def fib_via_matrix_mod(n: int, modulus: int) -> int:
    """``F(n) mod modulus`` for any u64 index.

    Intermediate values never exceed ``modulus ** 2``, so wrapping modulo
    ``modulus`` is the intended behaviour and no overflow is ever reported.
    """

    n = ensure_index(n)
    m = ensure_modulus(modulus)
    identity = FixedMatrix2x2(1 % m, 0, 0, 1 % m)
    generator = FixedMatrix2x2(1 % m, 1 % m, 1 % m, 0)
    power = _square_and_multiply(
        n, identity, generator, lambda left, right: left.multiply_mod(right, m)
    )
    return power.entry(0, 1)


__all__ = [
    "FixedMatrix2x2",
    "ensure_modulus",
    "fib_via_matrix",
    "fib_via_matrix_extended",
    "fib_via_matrix_mod",
    "matrix_power_fibonacci",
]
