"""Fast doubling.

Uses ``F(2k) = F(k) * (2F(k+1) - F(k))`` and ``F(2k+1) = F(k)^2 + F(k+1)^2``,
recursing on ``n // 2`` so the depth equals the bit length of ``n``.
"""

from __future__ import annotations

from typing import Optional, Tuple

from .fixed_width import U128_MAX, checked_add, checked_mul, checked_sub, ensure_index


def _even_term(fk: int, fk1: int, k: int, limit: Optional[int]) -> int:
    doubled = checked_add(fk1, fk1, limit=limit, index=2 * k)
    return checked_mul(fk, checked_sub(doubled, fk, index=2 * k), limit=limit, index=2 * k)


def _odd_term(fk: int, fk1: int, k: int, limit: Optional[int]) -> int:
    return checked_add(
        checked_mul(fk, fk, limit=limit, index=2 * k + 1),
        checked_mul(fk1, fk1, limit=limit, index=2 * k + 1),
        limit=limit,
        index=2 * k + 1,
    )


def _pair(n: int, limit: Optional[int]) -> Tuple[int, int]:
    if n == 0:
        return 0, 1
    k = n >> 1
    fk, fk1 = _pair(k, limit)
    even = _even_term(fk, fk1, k, limit)
    odd = _odd_term(fk, fk1, k, limit)
    if n & 1:
        return odd, checked_add(even, odd, limit=limit, index=n + 1)
    return even, odd


def fib_pair(n: int, *, limit: Optional[int] = U128_MAX) -> Tuple[int, int]:
    """Return ``(F(n), F(n + 1))``; both terms must fit ``limit``."""

    return _pair(ensure_index(n), limit)


def fib_doubling(n: int, *, limit: Optional[int] = U128_MAX) -> int:
    """Return ``F(n)``.

    Only the term that is asked for is formed at the top level, so ``F(n)`` is
    available whenever it fits even if ``F(n + 1)`` does not.
    """

    n = ensure_index(n)
    if n == 0:
        return 0
    k = n >> 1
    fk, fk1 = _pair(k, limit)
    if n & 1:
        return _odd_term(fk, fk1, k, limit)
    return _even_term(fk, fk1, k, limit)


__all__ = ["fib_doubling", "fib_pair"]
