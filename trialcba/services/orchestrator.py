from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

from ..config.loader import AnalysisConfig
from ..excel.reader import SUPPORTED_SUFFIXES, WorkbookReadError, find_trial_sheet, read_workbook
from ..logging.error_log import ErrorLogBuffer
from ..models.error_record import FILE_LEVEL, ErrorRecord
from ..models.run_result import FileStat, FileStatus, RunResult
from ..models.session import SessionSnapshot
from .aggregator import HeaderNotFoundError, NoTreatmentsError
from .export import export_workbook
from .metrics import InvariantViolation
from .narrative import build_brief_prompt
from .progress import ProgressTracker
from .session import UnknownTreatmentError, build_session

"""Run orchestration: analyse every trial file in the source directory.

For each file:
1. Read all sheets and pick the first one with the required header
2. Build the session snapshot (aggregate, edits, results, scenarios)
3. Export <stem>-cba.xlsx (and <stem>-brief.txt when requested)

A file that fails is recorded in the error log and counted; the run goes on
with the next file.
"""

logger = logging.getLogger(__name__)


class ProcessingError(Exception):
    """Fatal run-level error (source directory missing or unreadable)."""


# exception type -> error_type written to the error log
_ERROR_TYPES: dict[type[Exception], str] = {
    HeaderNotFoundError: "HEADER_NOT_FOUND",
    NoTreatmentsError: "NO_TREATMENTS",
    UnknownTreatmentError: "UNKNOWN_TREATMENT",
    WorkbookReadError: "READ_ERROR",
}


def scan_trial_files(directory: Path) -> list[Path]:
    """List supported trial files in ``directory`` (non-recursive, sorted by name).

    Raises:
        ProcessingError: If directory doesn't exist or can't be read
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")
    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")
    try:
        files = [
            p for p in directory.iterdir()
            if p.is_file() and p.suffix.lower() in SUPPORTED_SUFFIXES and not p.name.startswith("~$")
        ]
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e
    return sorted(files, key=lambda p: p.name)


def analyse_file(path: Path, config: AnalysisConfig) -> tuple[str, SessionSnapshot]:
    """Read one trial file and return (sheet name, computed snapshot)."""
    sheets = read_workbook(path)
    sheet_name, rows = find_trial_sheet(sheets)
    snapshot = build_session(
        rows,
        config.parameters,
        config.sensitivity,
        source_name=path.name,
        sheet_name=sheet_name,
        edits=config.treatment_edits,
        control=config.control,
    )
    return sheet_name, snapshot


def _failed(
    path: Path,
    sheet_name: str | None,
    start: datetime,
    error_type: str,
    error: Exception,
    error_log: ErrorLogBuffer,
) -> FileStat:
    error_log.append(ErrorRecord.create(path.name, sheet_name or FILE_LEVEL, error_type, str(error)))
    return FileStat(
        file_name=path.name,
        status=FileStatus.FAILED,
        sheet_name=sheet_name,
        elapsed_seconds=(datetime.now(UTC) - start).total_seconds(),
        error=str(error),
    )


def _process_single_file(path: Path, config: AnalysisConfig, error_log: ErrorLogBuffer) -> FileStat:
    start = datetime.now(UTC)
    sheet_name: str | None = None
    try:
        sheet_name, snapshot = analyse_file(path, config)
        out_dir = Path(config.output_directory)
        workbook = export_workbook(snapshot, out_dir / f"{path.stem}-cba.xlsx")
        brief = None
        if config.write_brief:
            brief = out_dir / f"{path.stem}-brief.txt"
            brief.write_text(build_brief_prompt(snapshot), encoding="utf-8")
    except tuple(_ERROR_TYPES) as e:
        error_type = next(name for exc_type, name in _ERROR_TYPES.items() if isinstance(e, exc_type))
        logger.warning(f"{path.name}: {e}")
        return _failed(path, sheet_name, start, error_type, e, error_log)
    except OSError as e:
        logger.error(f"{path.name}: cannot write output: {e}")
        return _failed(path, sheet_name, start, "WRITE_ERROR", e, error_log)
    except InvariantViolation:
        raise
    except Exception as e:
        # drop any half-written workbook
        (Path(config.output_directory) / f"{path.stem}-cba.xlsx").unlink(missing_ok=True)
        logger.error(f"{path.name}: unexpected error: {e}")
        return _failed(path, sheet_name, start, "UNEXPECTED_ERROR", e, error_log)

    best = snapshot.results[0].name if snapshot.results else None
    logger.info(f"{path.name}: sheet={sheet_name} treatments={len(snapshot.treatments)} best={best}")
    return FileStat(
        file_name=path.name,
        status=FileStatus.SUCCESS,
        sheet_name=sheet_name,
        treatments=len(snapshot.treatments),
        best_treatment=best,
        workbook_path=workbook,
        brief_path=brief,
        elapsed_seconds=(datetime.now(UTC) - start).total_seconds(),
    )


def process_all(config: AnalysisConfig, error_log: ErrorLogBuffer | None = None) -> RunResult:
    """Analyse all trial files in the configured directory.

    Raises:
        ProcessingError: For fatal errors that prevent processing
    """
    start_time = datetime.now(UTC)
    error_log = error_log if error_log is not None else ErrorLogBuffer()

    file_paths = scan_trial_files(Path(config.source_directory))

    file_stats: list[FileStat] = []
    with ProgressTracker(len(file_paths)) as progress:
        for path in file_paths:
            progress.start_file(path)
            stat = _process_single_file(path, config, error_log)
            file_stats.append(stat)
            progress.finish_file(success=stat.status is FileStatus.SUCCESS)

    log_path = error_log.flush()
    if log_path is not None:
        logger.info(f"error log written: {log_path}")

    end_time = datetime.now(UTC)
    return RunResult(
        success_files=sum(s.status is FileStatus.SUCCESS for s in file_stats),
        failed_files=sum(s.status is FileStatus.FAILED for s in file_stats),
        total_treatments=sum(s.treatments for s in file_stats),
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        file_stats=file_stats,
    )
