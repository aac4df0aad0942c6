"""Linear-time Fibonacci algorithms driven by a two-term recurrence state.

Every routine here honours the u128 contract from :mod:`fib_bench.core.fixed_width`:
a term that does not fit raises :class:`FibonacciOverflowError` instead of
wrapping.  The naive and memoized recursions are kept deliberately unguarded
against Python's recursion limit; their stack behaviour is part of what the
comparison measures, so a deep request surfaces as :class:`RecursionError`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from .fixed_width import (
    U128_BITS,
    U128_MAX,
    checked_add,
    ensure_index,
    overflow_error,
)


@dataclass(frozen=True)
class RecurrenceState:
    """The pair ``(F(index), F(index + 1))``.

    ``next`` is ``None`` once ``F(index + 1)`` no longer fits ``limit``; the
    state is still valid for reading ``current`` but cannot be advanced.
    """

    index: int
    current: int
    next: Optional[int]
    limit: Optional[int] = U128_MAX

    @classmethod
    def origin(cls, limit: Optional[int] = U128_MAX) -> "RecurrenceState":
        return cls(0, 0, 1, limit)

    @property
    def saturated(self) -> bool:
        return self.next is None

    def advance(self) -> "RecurrenceState":
        if self.next is None:
            bits = self.limit.bit_length() if self.limit is not None else U128_BITS
            raise overflow_error(self.index + 1, bits)
        following: Optional[int] = self.current + self.next
        if self.limit is not None and following > self.limit:
            following = None
        return RecurrenceState(self.index + 1, self.next, following, self.limit)


def advance_to(n: int, limit: Optional[int] = U128_MAX) -> RecurrenceState:
    """Walk the recurrence from the origin up to index ``n``."""

    state = RecurrenceState.origin(limit)
    for _ in range(n):
        state = state.advance()
    return state


def _first_index_past(limit: int) -> int:
    state = RecurrenceState.origin(limit=None)
    while state.current <= limit:
        state = state.advance()
    return state.index


# F(_BRANCHLESS_STEP_CAP) is the first term wider than 128 bits.
_BRANCHLESS_STEP_CAP = _first_index_past(U128_MAX)


def fib_recursive(n: int) -> int:
    """Naive two-branch recursion, O(2^n) time and O(n) stack."""

    return _recursive(ensure_index(n))


def _recursive(n: int) -> int:
    if n <= 1:
        return n
    return checked_add(_recursive(n - 1), _recursive(n - 2), index=n)


def count_recursive_calls(n: int) -> int:
    """Number of calls :func:`fib_recursive` makes for ``n``.

    The call tree satisfies ``calls(n) = 1 + calls(n - 1) + calls(n - 2)`` with
    ``calls(0) = calls(1) = 1``, which solves to ``2 * F(n + 1) - 1``.
    """

    n = ensure_index(n)
    return 2 * fib_iterative(n + 1, limit=None) - 1


class MemoCache:
    """Index to value table for memoized recursion.

    Entries are populated top-down and never evicted, so after any successful
    call the stored keys are exactly ``0..max_index``.
    """

    __slots__ = ("_values", "_max_index")

    def __init__(self) -> None:
        self._values: Dict[int, int] = {}
        self._max_index: Optional[int] = None

    def __contains__(self, n: object) -> bool:
        return n in self._values

    def __getitem__(self, n: int) -> int:
        return self._values[n]

    def __len__(self) -> int:
        return len(self._values)

    @property
    def max_index(self) -> Optional[int]:
        return self._max_index

    def store(self, n: int, value: int) -> None:
        self._values[n] = value
        if self._max_index is None or n > self._max_index:
            self._max_index = n

    def indices(self) -> List[int]:
        return sorted(self._values)


def fib_recursive_memo(n: int, cache: Optional[MemoCache] = None) -> int:
    """Recursion with memoization, O(n) time and O(n) space.

    A fresh :class:`MemoCache` is used per call unless ``cache`` is supplied,
    in which case previously computed entries are reused and extended.
    """

    n = ensure_index(n)
    memo = cache if cache is not None else MemoCache()
    return _memoized(n, memo)


def _memoized(n: int, memo: MemoCache) -> int:
    if n in memo:
        return memo[n]
    if n <= 1:
        value = n
    else:
        value = checked_add(_memoized(n - 1, memo), _memoized(n - 2, memo), index=n)
    memo.store(n, value)
    return value


def fib_iterative(n: int, *, limit: Optional[int] = U128_MAX) -> int:
    """Iterate the recurrence state ``n`` times.

    ``limit=None`` lifts the fixed-width check; only the bounded extension in
    :mod:`fib_bench.core.suite` uses it.
    """

    n = ensure_index(n)
    return advance_to(n, limit).current


def fib_iterative_branchless(n: int) -> int:
    """Iterative variant whose per-step update carries no conditional branch.

    The pair is seeded one step early at ``(F(-1), F(0)) = (1, 0)`` so the loop
    body is a plain tuple swap.  Sums are masked to 128 bits and the carry-out
    is folded into a sticky flag, which is inspected once after the loop.
    The loop never runs past the first index that overflows 128 bits.
    """

    n = ensure_index(n)
    previous, current, carry = 1, 0, 0
    for _ in range(min(n, _BRANCHLESS_STEP_CAP)):
        total = previous + current
        previous, current, carry = current, total & U128_MAX, carry | (total >> U128_BITS)
    if carry or n > _BRANCHLESS_STEP_CAP:
        raise overflow_error(n)
    return current


class FibonacciIterator:
    """Unbounded iterator over consecutive terms.

    The iterator never stops on its own; requesting the first term past the
    u128 range raises :class:`FibonacciOverflowError`.
    """

    def __init__(self, start: int = 0) -> None:
        self._state = advance_to(ensure_index(start))
        self._primed = False

    def __iter__(self) -> "FibonacciIterator":
        return self

    def __next__(self) -> int:
        if self._primed:
            self._state = self._state.advance()
        self._primed = True
        return self._state.current


class FibonacciTable:
    """Precomputed terms ``F(0)..F(max_n)`` for constant-time lookups."""

    def __init__(self, max_n: int) -> None:
        max_n = ensure_index(max_n)
        values: List[int] = []
        state = RecurrenceState.origin()
        values.append(state.current)
        for _ in range(max_n):
            state = state.advance()
            values.append(state.current)
        self._values = values

    @property
    def max_n(self) -> int:
        return len(self._values) - 1

    def get(self, n: int) -> Optional[int]:
        if 0 <= n < len(self._values):
            return self._values[n]
        return None

    def __iter__(self) -> Iterator[int]:
        return iter(self._values)


def fib_sequence(start: int, count: int) -> List[int]:
    """Return ``count`` consecutive terms beginning at ``F(start)``."""

    count = ensure_index(count)
    if count == 0:
        return []
    state = advance_to(ensure_index(start))
    terms = [state.current]
    for _ in range(count - 1):
        state = state.advance()
        terms.append(state.current)
    return terms


__all__ = [
    "FibonacciIterator",
    "FibonacciTable",
    "MemoCache",
    "RecurrenceState",
    "advance_to",
    "count_recursive_calls",
    "fib_iterative",
    "fib_iterative_branchless",
    "fib_recursive",
    "fib_recursive_memo",
    "fib_sequence",
]
