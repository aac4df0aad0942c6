from __future__ import annotations

import pytest

from fib_bench.core.doubling import fib_doubling, fib_pair
from fib_bench.core.fixed_width import FibonacciOverflowError, InvalidParameterError
from fib_bench.core.sequential import fib_iterative

F_186 = 332825110087067562321196029789634457848


@pytest.mark.parametrize("n", list(range(0, 51)) + [92, 93, 94, 100, 185])
def test_matches_iterative(n: int) -> None:
    assert fib_doubling(n) == fib_iterative(n)


def test_concrete_value() -> None:
    assert fib_doubling(50) == 12586269025


@pytest.mark.parametrize("n", [0, 1, 2, 9, 64, 185])
def test_pair_returns_consecutive_terms(n: int) -> None:
    assert fib_pair(n) == (fib_iterative(n), fib_iterative(n + 1))


def test_boundary_term_is_reachable_without_its_successor() -> None:
    assert fib_doubling(186) == F_186
    with pytest.raises(FibonacciOverflowError):
        fib_pair(186)


@pytest.mark.parametrize("n", [187, 300, 2**64 - 1])
def test_overflow_past_boundary(n: int) -> None:
    with pytest.raises(FibonacciOverflowError):
        fib_doubling(n)


def test_unbounded_doubling() -> None:
    assert fib_doubling(1000, limit=None) == fib_iterative(1000, limit=None)


def test_rejects_negative_index() -> None:
    with pytest.raises(InvalidParameterError):
        fib_doubling(-3)
