"""Fixed-width numeric contract shared by every Fibonacci engine."""

from __future__ import annotations

from enum import Enum
from typing import Optional

import numpy as np

U64_BITS = 64
U128_BITS = 128
U64_MAX = (1 << U64_BITS) - 1
U128_MAX = (1 << U128_BITS) - 1
MAX_INDEX = U64_MAX


class FibonacciError(RuntimeError):
    """Base class for errors raised by the Fibonacci core."""


class FibonacciOverflowError(FibonacciError, OverflowError):
    """Raised when a term leaves the exact fixed-width integer domain."""

    def __init__(
        self,
        message: str,
        *,
        index: Optional[int] = None,
        bits: int = U128_BITS,
    ) -> None:
        super().__init__(message)
        self.index = index
        self.bits = bits


class InvalidParameterError(FibonacciError, ValueError):
    """Raised when a request is rejected before any computation starts."""


class Representation(Enum):
    """Numeric representations a Fibonacci term can be stored in."""

    UINT64 = ("uint64", "integer", U64_BITS, None)
    UINT128 = ("uint128", "integer", U128_BITS, None)
    FLOAT32 = ("float32", "float", 32, np.float32)
    FLOAT64 = ("float64", "float", 64, np.float64)

    def __init__(self, label: str, kind: str, bits: int, dtype) -> None:
        self.label = label
        self.kind = kind
        self.bits = bits
        self.dtype = dtype

    @property
    def is_integer(self) -> bool:
        return self.kind == "integer"

    @property
    def max_value(self) -> int:
        """Largest integer an integer representation can hold."""

        if not self.is_integer:
            raise InvalidParameterError(f"{self.label} is not an integer representation")
        return (1 << self.bits) - 1

    @classmethod
    def parse(cls, name: str) -> "Representation":
        key = str(name).strip().lower()
        for member in cls:
            if member.label == key or member.name.lower() == key:
                return member
        aliases = {"double": cls.FLOAT64, "f64": cls.FLOAT64, "f32": cls.FLOAT32,
                   "u64": cls.UINT64, "u128": cls.UINT128}
        if key in aliases:
            return aliases[key]
        raise InvalidParameterError(f"Unknown representation: {name}")


def ensure_index(n: object) -> int:
    """Validate a Fibonacci index against the u64 input contract."""

    if isinstance(n, bool) or not isinstance(n, (int, np.integer)):
        raise InvalidParameterError(
            f"Fibonacci index must be an integer, got {type(n).__name__}"
        )
    value = int(n)
    if value < 0:
        raise InvalidParameterError(f"Fibonacci index cannot be negative, got {value}")
    if value > MAX_INDEX:
        raise InvalidParameterError(f"Fibonacci index {value} exceeds the u64 input range")
    return value


def checked_add(
    a: int,
    b: int,
    *,
    limit: Optional[int] = U128_MAX,
    index: Optional[int] = None,
) -> int:
    """Return ``a + b`` or raise when the sum exceeds ``limit``."""

    result = a + b
    if limit is not None and result > limit:
        raise FibonacciOverflowError(
            _overflow_message("addition", index, limit), index=index, bits=limit.bit_length()
        )
    return result


def checked_sub(a: int, b: int, *, index: Optional[int] = None) -> int:
    """Return ``a - b``; an unsigned underflow raises instead of wrapping."""

    if b > a:
        raise FibonacciOverflowError(
            f"unsigned subtraction underflow ({a} - {b})"
            + (f" while computing F({index})" if index is not None else ""),
            index=index,
        )
    return a - b


def checked_mul(
    a: int,
    b: int,
    *,
    limit: Optional[int] = U128_MAX,
    index: Optional[int] = None,
) -> int:
    """Return ``a * b`` or raise when the product exceeds ``limit``."""

    result = a * b
    if limit is not None and result > limit:
        raise FibonacciOverflowError(
            _overflow_message("multiplication", index, limit),
            index=index,
            bits=limit.bit_length(),
        )
    return result


def _overflow_message(operation: str, index: Optional[int], limit: int) -> str:
    where = f" while computing F({index})" if index is not None else ""
    return f"{operation} overflowed the {limit.bit_length()}-bit range{where}"


def overflow_error(index: int, bits: int = U128_BITS) -> FibonacciOverflowError:
    """Build the canonical error for a term that does not fit ``bits``."""

    return FibonacciOverflowError(
        f"F({index}) exceeds the {bits}-bit unsigned integer range", index=index, bits=bits
    )


__all__ = [
    "MAX_INDEX",
    "U128_BITS",
    "U128_MAX",
    "U64_BITS",
    "U64_MAX",
    "FibonacciError",
    "FibonacciOverflowError",
    "InvalidParameterError",
    "Representation",
    "checked_add",
    "checked_mul",
    "checked_sub",
    "ensure_index",
    "overflow_error",
]
