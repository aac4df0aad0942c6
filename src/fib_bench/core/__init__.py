"""Fibonacci algorithms, batch engine and precision analysis for fib-bench."""

from .closed_form import (
    PHI,
    PSI,
    SQRT_5,
    ClosedFormResult,
    binet,
    convergence_to_phi,
    fib_binet,
    fib_binet_rounded,
    fib_binet_scientific,
    fib_binet_simplified,
    fibonacci_ratio,
)
from .doubling import fib_doubling, fib_pair
from .fixed_width import (
    MAX_INDEX,
    U128_MAX,
    U64_MAX,
    FibonacciError,
    FibonacciOverflowError,
    InvalidParameterError,
    Representation,
)
from .lanes import (
    BatchCalculator,
    BatchConfig,
    BatchTiming,
    HardwareFeatureSet,
    LaneBatch,
    coerce_batch_config,
    detect_hardware_features,
    fib_batch,
    hardware_features,
)
from .matrix import (
    FixedMatrix2x2,
    fib_via_matrix,
    fib_via_matrix_extended,
    fib_via_matrix_mod,
    matrix_power_fibonacci,
)
from .precision import (
    PrecisionReport,
    error_report,
    find_max_exact_n_for,
    is_within_precision_zone,
    precision_table,
)
from .sequential import (
    FibonacciIterator,
    FibonacciTable,
    MemoCache,
    RecurrenceState,
    count_recursive_calls,
    fib_iterative,
    fib_iterative_branchless,
    fib_recursive,
    fib_recursive_memo,
    fib_sequence,
)
from .suite import (
    EXTENDED_INDEX_LIMIT,
    AlgorithmVariant,
    Calculation,
    all_variants,
    calculate,
    calculate_extended,
    calculate_with_metadata,
    describe,
)

__all__ = [
    "EXTENDED_INDEX_LIMIT",
    "MAX_INDEX",
    "PHI",
    "PSI",
    "SQRT_5",
    "U128_MAX",
    "U64_MAX",
    "AlgorithmVariant",
    "BatchCalculator",
    "BatchConfig",
    "BatchTiming",
    "Calculation",
    "ClosedFormResult",
    "FibonacciError",
    "FibonacciIterator",
    "FibonacciOverflowError",
    "FibonacciTable",
    "FixedMatrix2x2",
    "HardwareFeatureSet",
    "InvalidParameterError",
    "LaneBatch",
    "MemoCache",
    "PrecisionReport",
    "RecurrenceState",
    "Representation",
    "all_variants",
    "binet",
    "calculate",
    "calculate_extended",
    "calculate_with_metadata",
    "coerce_batch_config",
    "convergence_to_phi",
    "count_recursive_calls",
    "describe",
    "detect_hardware_features",
    "error_report",
    "fib_batch",
    "fib_binet",
    "fib_binet_rounded",
    "fib_binet_scientific",
    "fib_binet_simplified",
    "fib_doubling",
    "fib_iterative",
    "fib_iterative_branchless",
    "fib_pair",
    "fib_recursive",
    "fib_recursive_memo",
    "fib_sequence",
    "fib_via_matrix",
    "fib_via_matrix_extended",
    "fib_via_matrix_mod",
    "fibonacci_ratio",
    "find_max_exact_n_for",
    "hardware_features",
    "is_within_precision_zone",
    "matrix_power_fibonacci",
    "precision_table",
]
