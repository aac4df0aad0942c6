"""Command line front end for the fib-bench algorithm suite.

Subcommands::

    fib-bench calc --n 100 --method matrix --time
    fib-bench compare --n 40
    fib-bench info --method fast_doubling
    fib-bench sequence --count 20 --start 0
    fib-bench binet-analysis --max-n 100 --json-out results/binet_accuracy.json
    fib-bench simd --batch 10,20,30,40 --compare
    fib-bench compare-native --n 90 --library ./libfib.so
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import Iterable, List, Optional

from fib_bench.core import (
    AlgorithmVariant,
    BatchCalculator,
    FibonacciError,
    FibonacciOverflowError,
    PHI,
    Representation,
    all_variants,
    calculate_extended,
    calculate_with_metadata,
    describe,
    fib_batch,
    fib_iterative,
    fib_sequence,
    find_max_exact_n_for,
    hardware_features,
    precision_table,
)
from fib_bench.tools.native_bridge import NativeBridge, NativeBridgeError

logger = logging.getLogger(__name__)

PROG = "fib-bench"
DEFAULT_MAX_RECURSIVE = 30
DEFAULT_BENCH_ITERATIONS = 1000
RULE = "=" * 60


def _parse_batch(text: str) -> List[int]:
    items = [item.strip() for item in text.split(",") if item.strip()]
    try:
        return [int(item) for item in items]
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid batch {text!r}: {exc}") from exc


def _elapsed_ns(start: int) -> int:
    return time.perf_counter_ns() - start


def _cmd_calc(args: argparse.Namespace) -> int:
    variant = AlgorithmVariant.parse(args.method)
    logger.info("Computing F(%d) with %s", args.n, variant.label)
    start = time.perf_counter_ns()
    if args.n > find_max_exact_n_for(Representation.UINT128):
        value = calculate_extended(variant, args.n)
        precision_loss = variant is AlgorithmVariant.BINET
    else:
        calculation = calculate_with_metadata(variant, args.n)
        value = calculation.value
        precision_loss = calculation.precision_loss
    elapsed = _elapsed_ns(start)

    if args.json:
        payload = {"n": args.n, "method": variant.label, "result": str(value), "time_ns": elapsed}
        print(json.dumps(payload))
        return 0

    print(f"F({args.n}) = {value}")
    if precision_loss:
        print(
            f"warning: {variant.label} is exact only up to "
            f"n = {find_max_exact_n_for(Representation.FLOAT64)}; result may be inaccurate"
        )
    if args.time:
        print(f"Time: {elapsed} ns")
    return 0


def _cmd_compare(args: argparse.Namespace) -> int:
    print(f"Comparing algorithms for F({args.n})")
    print(RULE)
    print(f"{'method':<22} {'time (ns)':>14}  result")
    for variant in all_variants():
        if variant is AlgorithmVariant.RECURSIVE and args.n > args.max_recursive:
            print(f"{variant.label:<22} {'-':>14}  skipped (n > {args.max_recursive})")
            continue
        start = time.perf_counter_ns()
        try:
            calculation = calculate_with_metadata(variant, args.n)
        except FibonacciOverflowError as exc:
            print(f"{variant.label:<22} {'-':>14}  error: {exc}")
            continue
        except RecursionError:
            print(f"{variant.label:<22} {'-':>14}  error: recursion limit exceeded")
            continue
        elapsed = _elapsed_ns(start)
        marker = "  (approximate)" if calculation.precision_loss else ""
        print(f"{variant.label:<22} {elapsed:>14}  {calculation.value}{marker}")
    print(RULE)
    return 0


def _cmd_info(args: argparse.Namespace) -> int:
    if args.method == "all":
        print(f"{'algorithm':<22} {'time':<10} {'space':<10} notes")
        print("-" * 72)
        for variant in all_variants():
            print(
                f"{variant.label:<22} {variant.time_complexity:<10} "
                f"{variant.space_complexity:<10} {variant.note}"
            )
        return 0

    details = describe(args.method)
    print(f"Algorithm: {details['name']}")
    print(f"Time Complexity: {details['time_complexity']}")
    print(f"Space Complexity: {details['space_complexity']}")
    print()
    print("Description:")
    print(f"  {details['description']}")
    return 0


def _cmd_sequence(args: argparse.Namespace) -> int:
    terms = fib_sequence(args.start, args.count)
    if not terms:
        print("No terms requested.")
        return 0
    last = args.start + len(terms) - 1
    print(f"Fibonacci sequence F({args.start}) to F({last})")
    print()
    width = len(str(terms[-1]))
    previous = fib_iterative(args.start - 1) if args.start > 0 else None
    for offset, term in enumerate(terms):
        n = args.start + offset
        if previous is None:
            ratio = "-"
        elif previous == 0:
            ratio = "inf"
        else:
            ratio = f"{term / previous:.10f}"
        print(f"  F({n:4}) = {term:>{width}}    phi ~ {ratio}")
        previous = term
    print()
    print(f"phi (golden ratio) = {PHI:.10f}")
    return 0


def _cmd_binet_analysis(args: argparse.Namespace) -> int:
    representation = Representation.parse(args.representation)
    reports = precision_table(args.max_n, step=args.step, representation=representation)
    boundary = find_max_exact_n_for(representation)
    logger.info("Analysed %d indices for %s", len(reports), representation.label)

    print(f"Binet accuracy analysis ({representation.label})")
    print(f"{'n':>6} {'exact':>40} {'binet':>26} {'abs error':>12} {'rel error':>12}")
    first_error: Optional[int] = None
    for report in reports:
        marker = "ok" if report.abs_error == 0 else "X"
        if report.abs_error != 0 and first_error is None:
            first_error = report.n
        print(
            f"{report.n:>6} {report.exact:>40} {report.approx:>26.2f} "
            f"{report.abs_error:>12.2e} {report.rel_error:>12.2e} {marker}"
        )
    print()
    print(f"Binet is exact for n <= {boundary}")
    if first_error is not None:
        print(f"First error observed at n = {first_error}")

    if args.json_out is not None:
        path = Path(args.json_out).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps([report.to_record() for report in reports], indent=2))
        logger.info("Wrote %d records to %s", len(reports), path)
        print(f"Records written to {path}")
    return 0


def _cmd_simd(args: argparse.Namespace) -> int:
    features = hardware_features()
    print("CPU SIMD features:")
    for label, present in (
        ("SSE2", features.sse2),
        ("SSE4.1", features.sse41),
        ("AVX", features.avx),
        ("AVX2", features.avx2),
        ("AVX-512", features.avx512f),
        ("ASIMD", features.asimd),
    ):
        print(f"   {label:<8} {'yes' if present else 'no'}")
    print(f"   Best width: {features.best_width()}-bit")
    print(f"   Lane widths: {', '.join(str(width) for width in features.lane_widths)}")

    if args.info:
        print()
        print("Batches are split into groups of 64-bit lanes that advance together")
        print("through numpy vector operations; leftover indices run on the scalar path.")
        return 0

    if not args.batch:
        print()
        print("No indices provided. Use --batch to specify indices, e.g. --batch 10,20,30,40")
        return 0

    calculator = BatchCalculator({"lane_width": args.lane_width}, features=features)
    logger.info("Lane width resolved to %d", calculator.lane_width)
    start = time.perf_counter_ns()
    results = fib_batch(args.batch, lane_width=calculator.lane_width, features=features)
    elapsed = _elapsed_ns(start)

    print()
    print(f"Batch of {len(args.batch)} indices, lane width {calculator.lane_width}:")
    for n, value in zip(args.batch, results):
        if isinstance(value, FibonacciOverflowError):
            print(f"   F({n}) = error: {value}")
        else:
            print(f"   F({n}) = {value}")
    print(f"Batch time: {elapsed} ns")

    if args.compare:
        timing = calculator.benchmark(args.batch, args.iterations)
        print()
        print(f"Performance comparison ({timing.iterations} iterations):")
        print(f"   Lanes:  {timing.lane_ns} ns")
        print(f"   Scalar: {timing.scalar_ns} ns")
        print(f"   Speedup: {timing.speedup:.2f}x")
    return 0


def _cmd_compare_native(args: argparse.Namespace) -> int:
    bridge = NativeBridge(args.library).load()
    rows = bridge.compare(args.n, args.iterations)
    print(f"Native comparison for F({args.n}) ({args.iterations} iterations)")
    print(f"{'function':<14} {'native':>22} {'local':>22} {'native ns':>12} {'local ns':>12}")
    for row in rows:
        print(
            f"{row.name:<14} {row.native_value:>22} {row.local_value:>22} "
            f"{row.native_ns:>12} {row.local_ns:>12}"
            + ("" if row.within_contract else "  (outside u64 contract)")
        )
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG, description="Compare Fibonacci algorithms and their numeric limits"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable INFO level logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    calc = subparsers.add_parser("calc", help="Compute a single Fibonacci number")
    calc.add_argument("--n", type=int, required=True, help="Index to compute")
    calc.add_argument("--method", default="iterative", help="Algorithm name or alias")
    calc.add_argument("--time", action="store_true", help="Report the elapsed time")
    calc.add_argument("--json", action="store_true", help="Emit a JSON object")
    calc.set_defaults(handler=_cmd_calc)

    compare = subparsers.add_parser("compare", help="Run every algorithm for one index")
    compare.add_argument("--n", type=int, required=True, help="Index to compute")
    compare.add_argument(
        "--max-recursive",
        type=int,
        default=DEFAULT_MAX_RECURSIVE,
        help="Largest n handed to the naive recursive algorithm",
    )
    compare.set_defaults(handler=_cmd_compare)

    info = subparsers.add_parser("info", help="Show algorithm complexity information")
    info.add_argument("--method", default="all", help="Algorithm name or 'all'")
    info.set_defaults(handler=_cmd_info)

    sequence = subparsers.add_parser("sequence", help="Print consecutive Fibonacci numbers")
    sequence.add_argument("--count", type=int, default=20, help="Number of terms")
    sequence.add_argument("--start", type=int, default=0, help="First index")
    sequence.set_defaults(handler=_cmd_sequence)

    analysis = subparsers.add_parser("binet-analysis", help="Measure closed-form accuracy")
    analysis.add_argument(
        "--max-n", type=int, default=100, help="Largest index analysed (at most 186)"
    )
    analysis.add_argument("--step", type=int, default=10, help="Index stride")
    analysis.add_argument(
        "--representation",
        default="float64",
        choices=("float64", "float32"),
        help="Floating-point format the closed form is stored in",
    )
    analysis.add_argument("--json-out", type=Path, default=None, help="Write dashboard records")
    analysis.set_defaults(handler=_cmd_binet_analysis)

    simd = subparsers.add_parser("simd", help="Lane-parallel batch computation")
    simd.add_argument("--batch", type=_parse_batch, default=None, help="Comma separated indices")
    simd.add_argument("--lane-width", type=int, default=None, help="Requested lane width")
    simd.add_argument("--info", action="store_true", help="Explain the batch engine and exit")
    simd.add_argument("--compare", action="store_true", help="Time lanes against scalar")
    simd.add_argument(
        "--iterations",
        type=int,
        default=DEFAULT_BENCH_ITERATIONS,
        help="Benchmark repetitions for --compare",
    )
    simd.set_defaults(handler=_cmd_simd)

    native = subparsers.add_parser("compare-native", help="Compare against a native library")
    native.add_argument("--n", type=int, default=90, help="Index to compute")
    native.add_argument("--iterations", type=int, default=100, help="Timing repetitions")
    native.add_argument("--library", default=None, help="Path to the shared library")
    native.set_defaults(handler=_cmd_compare_native)
    return parser


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    if args.verbose and not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO)
    try:
        return args.handler(args)
    except (FibonacciError, NativeBridgeError) as exc:
        print(f"{PROG}: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
