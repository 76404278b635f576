from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path

from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, AnalysisConfig, ConfigError, load_config
from ..logging.init import log_summary, set_debug, setup_logging
from ..services.catalogue import formatted_results_table
from ..services.numeric import format_money
from ..services.orchestrator import ProcessingError, analyse_file, process_all, scan_trial_files
from ..services.summary import render_summary_line

"""CLI entrypoint.

- Load .env (CBA_* parameter overrides) and config/cba.yml
- Analyse every trial file in source_directory, writing result workbooks
- Print the SUMMARY line and exit with:
  0 = all files analysed, 2 = one or more files failed, 1 = fatal
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env so CBA_* variables override the YAML parameters."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Trial cost-benefit analysis (NPV/BCR/ROI vs control)")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument(
        "--inspect-data", action="store_true",
        help="Print detected columns, treatments and results per file then exit (no export)",
    )
    p.add_argument("--brief", action="store_true", help="Also write a narrative brief prompt per file")
    return p.parse_args(argv)


def _inspect_data(cfg: AnalysisConfig) -> int:
    try:
        files = scan_trial_files(Path(cfg.source_directory))
    except ProcessingError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    if not files:
        print("inspect: no trial files")
        return EXIT_SUCCESS_ALL
    for f in files:
        print(f"FILE: {f.name}")
        try:
            sheet, snapshot = analyse_file(f, cfg)
        except Exception as e:  # pragma: no cover - diagnostic output only
            print(f"  error: {e}")
            continue
        cm = snapshot.column_map
        print(f"  SHEET: {sheet} header_row={cm.header_row_index + 1}")
        print(f"  columns: amendment={cm.amendment + 1} yield={cm.yield_ + 1} cost={cm.cost + 1}")
        for field in cm.extra_fields:
            print(f"    extra: {field.label!r} -> {field.classification.value}")
        print(formatted_results_table(snapshot.results).to_string())
        for row in snapshot.scenarios:
            print(
                f"  scenario {row.name}: worst={format_money(row.worst)} "
                f"base={format_money(row.base)} best={format_money(row.best)}"
            )
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None のときのみ sys.argv を読む (テストで [] を渡すケース)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        set_debug(True)
        logger.debug("debug mode enabled")

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL
    if args.brief:
        cfg = replace(cfg, write_brief=True)

    directory = Path(cfg.source_directory)
    if not directory.exists():
        logger.error(f"directory not found: {directory}")
        return EXIT_FATAL

    p = cfg.parameters
    logger.info(
        f"Analysing trials in {directory} price={p.price_per_tonne} "
        f"rate={p.discount_rate} horizon={p.horizon_years}"
    )

    if args.inspect_data:
        return _inspect_data(cfg)

    try:
        result = process_all(cfg)
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL

    summary_line = render_summary_line(result.total_files, result)
    # log_summary adds the "SUMMARY " prefix itself
    log_summary(summary_line[len("SUMMARY "):])

    if result.failed_files > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
