from __future__ import annotations

import pytest

from fib_bench.core.fixed_width import FibonacciOverflowError, InvalidParameterError
from fib_bench.core.sequential import fib_iterative
from fib_bench.core.suite import (
    EXTENDED_INDEX_LIMIT,
    AlgorithmVariant,
    all_variants,
    calculate,
    calculate_extended,
    calculate_with_metadata,
    describe,
)

EXACT_VARIANTS = [
    AlgorithmVariant.RECURSIVE_MEMO,
    AlgorithmVariant.ITERATIVE,
    AlgorithmVariant.ITERATIVE_BRANCHLESS,
    AlgorithmVariant.MATRIX,
    AlgorithmVariant.FAST_DOUBLING,
]
F_200 = 280571172992510140037611932413038677189525


@pytest.mark.parametrize("variant", EXACT_VARIANTS)
@pytest.mark.parametrize("n", list(range(0, 51)) + [100, 186])
def test_exact_variants_agree(variant: AlgorithmVariant, n: int) -> None:
    assert calculate(variant, n) == fib_iterative(n)


@pytest.mark.parametrize("n", range(0, 21))
def test_naive_recursion_agrees_on_small_inputs(n: int) -> None:
    assert calculate(AlgorithmVariant.RECURSIVE, n) == fib_iterative(n)


@pytest.mark.parametrize("variant", EXACT_VARIANTS)
def test_every_exact_variant_overflows_at_187(variant: AlgorithmVariant) -> None:
    with pytest.raises(FibonacciOverflowError):
        calculate(variant, 187)


def test_concrete_values() -> None:
    assert calculate(AlgorithmVariant.ITERATIVE, 0) == 0
    assert calculate(AlgorithmVariant.ITERATIVE, 10) == 55
    assert calculate(AlgorithmVariant.MATRIX, 100) == 354224848179261915075
    assert calculate(AlgorithmVariant.FAST_DOUBLING, 50) == 12586269025
    assert calculate(AlgorithmVariant.BINET, 70) == fib_iterative(70)


@pytest.mark.parametrize(
    "name, expected",
    [
        ("memo", AlgorithmVariant.RECURSIVE_MEMO),
        ("Branchless", AlgorithmVariant.ITERATIVE_BRANCHLESS),
        ("doubling", AlgorithmVariant.FAST_DOUBLING),
        ("fast-doubling", AlgorithmVariant.FAST_DOUBLING),
        ("MATRIX", AlgorithmVariant.MATRIX),
        ("binet", AlgorithmVariant.BINET),
    ],
)
def test_variant_parsing(name: str, expected: AlgorithmVariant) -> None:
    assert AlgorithmVariant.parse(name) is expected
    assert calculate(name, 12) == 144


def test_unknown_method_is_rejected() -> None:
    with pytest.raises(InvalidParameterError):
        calculate("bogosort", 10)


@pytest.mark.parametrize("n", [-1, True, 1.5])
def test_invalid_index_is_rejected(n) -> None:
    with pytest.raises(InvalidParameterError):
        calculate(AlgorithmVariant.ITERATIVE, n)


def test_metadata_flags_closed_form_precision_loss() -> None:
    exact = calculate_with_metadata(AlgorithmVariant.BINET, 78)
    assert not exact.precision_loss
    assert exact.time_complexity == "O(1)"

    lossy = calculate_with_metadata("binet", 80)
    assert lossy.precision_loss
    assert lossy.value != fib_iterative(80)

    iterative = calculate_with_metadata(AlgorithmVariant.ITERATIVE, 150)
    assert not iterative.precision_loss
    assert iterative.to_dict() == {
        "n": 150,
        "method": "iterative",
        "result": str(fib_iterative(150)),
        "time_complexity": "O(n)",
        "space_complexity": "O(1)",
        "precision_loss": False,
    }


@pytest.mark.parametrize("variant", list(AlgorithmVariant))
def test_extended_computation(variant: AlgorithmVariant) -> None:
    if variant is AlgorithmVariant.BINET:
        assert calculate_extended(variant, 200) == pytest.approx(F_200, rel=1e-15)
    else:
        assert calculate_extended(variant, 200) == F_200


def test_extended_computation_is_bounded() -> None:
    assert calculate_extended(AlgorithmVariant.MATRIX, EXTENDED_INDEX_LIMIT) == calculate_extended(
        AlgorithmVariant.FAST_DOUBLING, EXTENDED_INDEX_LIMIT
    )
    with pytest.raises(InvalidParameterError):
        calculate_extended(AlgorithmVariant.ITERATIVE, EXTENDED_INDEX_LIMIT + 1)
    with pytest.raises(FibonacciOverflowError):
        calculate_extended(AlgorithmVariant.BINET, 2000)


def test_describe_and_listing() -> None:
    variants = all_variants()
    assert len(variants) == 7
    assert [variant.label for variant in variants][:3] == [
        "recursive",
        "recursive_memo",
        "iterative",
    ]
    info = describe("matrix")
    assert info["time_complexity"] == "O(log n)"
    assert info["space_complexity"] == "O(1)"
    assert info["name"] == "matrix"
