from __future__ import annotations

import json
from pathlib import Path

import pytest

from fib_bench.cli import fib_cli
from fib_bench.core import lanes
from fib_bench.core.lanes import HardwareFeatureSet

F_100 = "354224848179261915075"
F_200 = "280571172992510140037611932413038677189525"


@pytest.fixture
def fixed_features(monkeypatch: pytest.MonkeyPatch) -> HardwareFeatureSet:
    features = HardwareFeatureSet(sse2=True, avx2=True, lane_widths=(1, 2, 4))
    monkeypatch.setattr(lanes, "_FEATURES", features)
    return features


def test_calc_prints_value(capsys: pytest.CaptureFixture[str]) -> None:
    assert fib_cli.main(["calc", "--n", "100", "--method", "matrix"]) == 0
    assert capsys.readouterr().out.strip() == f"F(100) = {F_100}"


def test_calc_json(capsys: pytest.CaptureFixture[str]) -> None:
    assert fib_cli.main(["calc", "--n", "100", "--method", "doubling", "--json"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["n"] == 100
    assert payload["method"] == "fast_doubling"
    assert payload["result"] == F_100
    assert payload["time_ns"] >= 0


def test_calc_beyond_u128_uses_extended_range(capsys: pytest.CaptureFixture[str]) -> None:
    assert fib_cli.main(["calc", "--n", "200"]) == 0
    assert F_200 in capsys.readouterr().out


def test_calc_warns_about_closed_form_precision(capsys: pytest.CaptureFixture[str]) -> None:
    assert fib_cli.main(["calc", "--n", "90", "--method", "binet", "--time"]) == 0
    out = capsys.readouterr().out
    assert "warning" in out
    assert "n = 78" in out
    assert "Time:" in out


@pytest.mark.parametrize(
    "argv, message",
    [
        (["calc", "--n", "-4"], "negative"),
        (["calc", "--n", "10", "--method", "quantum"], "Unknown method"),
        (["sequence", "--start", "185", "--count", "5"], "F(187)"),
        (["simd", "--batch", "1,2", "--lane-width", "0"], "lane width"),
        (["binet-analysis", "--max-n", "200"], "at most 186"),
    ],
)
def test_errors_are_reported_on_stderr(
    argv, message: str, capsys: pytest.CaptureFixture[str], fixed_features
) -> None:
    assert fib_cli.main(argv) == 1
    err = capsys.readouterr().err
    assert err.startswith("fib-bench: ")
    assert message in err


def test_compare_lists_every_method(capsys: pytest.CaptureFixture[str]) -> None:
    assert fib_cli.main(["compare", "--n", "40"]) == 0
    out = capsys.readouterr().out
    for label in ("recursive_memo", "iterative_branchless", "matrix", "fast_doubling", "binet"):
        assert label in out
    assert "skipped" in out
    assert "102334155" in out


def test_compare_reports_overflow_rows(capsys: pytest.CaptureFixture[str]) -> None:
    assert fib_cli.main(["compare", "--n", "187", "--max-recursive", "10"]) == 0
    out = capsys.readouterr().out
    assert out.count("error:") == 6


def test_info_table_and_detail(capsys: pytest.CaptureFixture[str]) -> None:
    assert fib_cli.main(["info"]) == 0
    table = capsys.readouterr().out
    assert "O(2^n)" in table
    assert "O(log n)" in table

    assert fib_cli.main(["info", "--method", "fast_doubling"]) == 0
    detail = capsys.readouterr().out
    assert "Algorithm: fast_doubling" in detail
    assert "F(2k)" in detail


def test_sequence(capsys: pytest.CaptureFixture[str]) -> None:
    assert fib_cli.main(["sequence", "--count", "5", "--start", "10"]) == 0
    out = capsys.readouterr().out
    assert "F(10) to F(14)" in out
    for value in ("55", "89", "144", "233", "377"):
        assert value in out
    assert "1.6180" in out


def test_binet_analysis_writes_records(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    target = tmp_path / "results" / "binet.json"
    assert fib_cli.main(
        ["binet-analysis", "--max-n", "100", "--step", "10", "--json-out", str(target)]
    ) == 0
    out = capsys.readouterr().out
    assert "exact for n <= 78" in out
    assert "First error observed at n = 80" in out

    records = json.loads(target.read_text())
    assert [record["n"] for record in records] == list(range(0, 101, 10))
    assert set(records[0]) == {"n", "exact", "binet", "approx", "abs_error", "rel_error"}


def test_simd_batch(capsys: pytest.CaptureFixture[str], fixed_features) -> None:
    assert fib_cli.main(["simd", "--batch", "10,20,30,40,187"]) == 0
    out = capsys.readouterr().out
    assert "lane width 4" in out
    assert "F(40) = 102334155" in out
    assert "F(187) = error:" in out


def test_simd_compare(capsys: pytest.CaptureFixture[str], fixed_features) -> None:
    assert fib_cli.main(["simd", "--batch", "10,20", "--compare", "--iterations", "2"]) == 0
    out = capsys.readouterr().out
    assert "Speedup" in out
    assert "(2 iterations)" in out


def test_simd_info_and_empty_batch(capsys: pytest.CaptureFixture[str], fixed_features) -> None:
    assert fib_cli.main(["simd", "--info"]) == 0
    assert "Lane widths: 1, 2, 4" in capsys.readouterr().out
    assert fib_cli.main(["simd"]) == 0
    assert "No indices provided" in capsys.readouterr().out


def test_compare_native_without_library(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.delenv("FIB_BENCH_NATIVE_LIB", raising=False)
    assert fib_cli.main(["compare-native", "--n", "10"]) == 1
    assert "no native library configured" in capsys.readouterr().err


def test_verbose_enables_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []
    monkeypatch.setattr(fib_cli.logging, "basicConfig", lambda **kwargs: calls.append(kwargs))
    monkeypatch.setattr(fib_cli.logging.getLogger(), "handlers", [])
    assert fib_cli.main(["--verbose", "info"]) == 0
    assert calls == [{"level": fib_cli.logging.INFO}]
