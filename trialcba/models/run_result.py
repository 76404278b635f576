from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

"""Run result models for a directory analysis run.

FileStat captures what happened to one trial file; RunResult aggregates the
counts used by the SUMMARY line and the CLI exit code.
"""

__all__ = [
    "FileStatus",
    "FileStat",
    "RunResult",
]


class FileStatus(Enum):
    """Outcome of analysing one trial file."""
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class FileStat:
    file_name: str
    status: FileStatus
    sheet_name: str | None = None
    treatments: int = 0  # treatments aggregated from the sheet
    best_treatment: str | None = None  # rank 1 by NPV
    workbook_path: Path | None = None
    brief_path: Path | None = None
    elapsed_seconds: float = 0.0
    error: str | None = None  # failure reason summary


@dataclass(frozen=True)
class RunResult:
    """Aggregated results for one CLI run."""
    success_files: int
    failed_files: int
    total_treatments: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    file_stats: list[FileStat] | None = None

    @property
    def total_files(self) -> int:
        return self.success_files + self.failed_files
