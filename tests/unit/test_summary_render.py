from __future__ import annotations

import re
from datetime import datetime, timezone

import pytest

from trialcba.models.run_result import FileStat, FileStatus, RunResult
from trialcba.services.summary import render_summary_line

"""Unit tests for SUMMARY line rendering."""

SUMMARY_PATTERN = re.compile(
    r"^SUMMARY\s+files=([0-9]+)/(\1)\s+success=([0-9]+)\s+failed=([0-9]+)\s+"
    r"treatments=([0-9]+)\s+elapsed_sec=([0-9]+\.?[0-9]*)$"
)

T0 = datetime(2024, 5, 1, 9, 0, 0, tzinfo=timezone.utc)


def _result(success: int, failed: int, treatments: int, elapsed: float) -> RunResult:
    return RunResult(
        success_files=success,
        failed_files=failed,
        total_treatments=treatments,
        start_time=T0,
        end_time=T0,
        elapsed_seconds=elapsed,
    )


def test_render_summary_line_all_success():
    line = render_summary_line(2, _result(2, 0, 7, 2.0))
    m = SUMMARY_PATTERN.match(line)
    assert m, f"SUMMARY line should match regex: {line}"
    assert m.group(3) == "2"
    assert m.group(4) == "0"
    assert m.group(5) == "7"
    assert m.group(6) == "2"  # integer seconds rendered without decimals


def test_render_summary_line_partial_failure():
    line = render_summary_line(3, _result(1, 2, 4, 3.14159))
    assert line == "SUMMARY files=3/3 success=1 failed=2 treatments=4 elapsed_sec=3.142"


@pytest.mark.parametrize(
    ("elapsed", "expected"),
    [(0.0, "0"), (0.004, "0.004"), (0.0000004, "0"), (12.5, "12.5")],
)
def test_elapsed_formatting(elapsed: float, expected: str):
    line = render_summary_line(0, _result(0, 0, 0, elapsed))
    assert line.endswith(f"elapsed_sec={expected}")
    assert "e-" not in line


def test_total_files_property():
    result = RunResult(
        success_files=1,
        failed_files=1,
        total_treatments=3,
        start_time=T0,
        end_time=T0,
        elapsed_seconds=0.5,
        file_stats=[
            FileStat("a.xlsx", FileStatus.SUCCESS, treatments=3),
            FileStat("b.csv", FileStatus.FAILED, error="no header"),
        ],
    )
    assert result.total_files == 2
