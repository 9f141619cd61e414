"""Build the VectorDBBench results dashboard from a directory of result files.

Usage::

    vdbbench-dashboard --results-dir /path/to/vectordb_bench/results \\
      --out dashboard.html \\
      --state-file ~/.config/vdbbench/filters.yaml \\
      --db Milvus --db PgVector --case 5 --start-date 2024-01-01

`--results-dir` and `--hf-repo` (a Hugging Face dataset repository) are
alternatives. When neither is given, `VDBBENCH_HF_REPO` and then
`RESULTS_PATH` are used, from the environment or a `.env` file.
"""

from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence
from datetime import date
from pathlib import Path

from vdbbench_dashboard.config import Settings, load_settings
from vdbbench_dashboard.dashboard.filters import (
    FilterState,
    FilterStore,
    MemoryFilterStore,
    YAMLFilterStore,
    filter_chart_records,
    load_filter_state,
    matching_files,
    save_filter_state,
)
from vdbbench_dashboard.dashboard.page import DEFAULT_TITLE, write_dashboard
from vdbbench_dashboard.records.chart import DashboardData, load_dashboard_data
from vdbbench_dashboard.sources import HFResultsSource, SourceLike

logger = logging.getLogger(__name__)


def _iso_date(raw: str) -> date:
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {raw!r}") from None


def build_parser(settings: Settings | None = None) -> argparse.ArgumentParser:
    settings = settings or load_settings()
    parser = argparse.ArgumentParser(
        prog="vdbbench-dashboard",
        description="Render VectorDBBench result files as a filterable HTML dashboard",
    )
    location = parser.add_mutually_exclusive_group()
    location.add_argument(
        "--results-dir",
        type=Path,
        default=None,
        help="Directory scanned recursively for result_*.json files (default: $RESULTS_PATH)",
    )
    location.add_argument(
        "--hf-repo",
        type=str,
        default=None,
        help="Hugging Face dataset repo holding result files (default: $VDBBENCH_HF_REPO)",
    )
    parser.add_argument(
        "--hf-revision",
        type=str,
        default=None,
        help="Git revision of --hf-repo (branch, tag, or commit hash)",
    )
    parser.add_argument(
        "--hf-subdir",
        type=str,
        default=None,
        help="Folder inside the Hugging Face repo that holds the results tree",
    )
    parser.add_argument(
        "--out",
        type=Path,
        default=settings.output,
        help="Output HTML file (default: $VDBBENCH_OUTPUT or dashboard.html)",
    )
    parser.add_argument("--title", type=str, default=DEFAULT_TITLE, help="Dashboard title")
    parser.add_argument(
        "--state-file",
        type=Path,
        default=settings.state_file,
        help="YAML file remembering filter selections between runs",
    )
    parser.add_argument(
        "--db",
        type=str,
        action="append",
        dest="dbs",
        default=None,
        help="Database name to select (can be specified multiple times)",
    )
    parser.add_argument("--case", type=int, default=None, help="Case id to select")
    parser.add_argument(
        "--start-date",
        type=_iso_date,
        default=None,
        help="Only show results dated on or after this day (YYYY-MM-DD)",
    )
    parser.add_argument(
        "--csv",
        type=Path,
        default=None,
        help="Also export all chart records to this CSV file",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Treat a single malformed result file as a failure of the whole load",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of reader threads (default: auto)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def _resolve_source(args: argparse.Namespace, settings: Settings) -> SourceLike | None:
    """Explicit flags first, then `VDBBENCH_HF_REPO`, then `RESULTS_PATH`."""
    if args.hf_repo:
        return HFResultsSource(
            args.hf_repo, revision=args.hf_revision, subdir=args.hf_subdir
        )
    if args.results_dir is not None:
        return args.results_dir
    if settings.hf_repo:
        return HFResultsSource(
            settings.hf_repo, revision=args.hf_revision, subdir=args.hf_subdir
        )
    return settings.results_path


def _has_overrides(args: argparse.Namespace) -> bool:
    return bool(args.dbs) or args.case is not None or args.start_date is not None


def _apply_overrides(state: FilterState, args: argparse.Namespace) -> FilterState:
    if args.dbs:
        state = state.select_all_dbs(args.dbs)
    if args.case is not None:
        state = state.with_case(args.case)
    if args.start_date is not None:
        state = state.with_start_date(args.start_date)
    return state


def _log_summary(data: DashboardData, state: FilterState) -> None:
    shown = filter_chart_records(data.chart_data, state)
    logger.info("  result files: %d", len(data.results))
    logger.info("  chart records: %d", len(data.chart_data))
    logger.info("  databases: %s", ", ".join(data.db_names) or "-")
    logger.info("  cases: %s", ", ".join(str(c) for c in data.case_ids) or "-")
    logger.info(
        "  selection: %d records, %d files match",
        len(shown),
        len(matching_files(data.chart_data, state.start_date)),
    )


def main(argv: Sequence[str] | None = None) -> int:
    settings = load_settings()
    parser = build_parser(settings)
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    source = _resolve_source(args, settings)
    if source is None:
        parser.error(
            "no results location: pass --results-dir or --hf-repo, "
            "or set RESULTS_PATH or VDBBENCH_HF_REPO"
        )

    data = load_dashboard_data(source, n_workers=args.workers, skip_invalid=not args.strict)

    store: FilterStore = (
        YAMLFilterStore(args.state_file) if args.state_file is not None else MemoryFilterStore()
    )
    try:
        state = _apply_overrides(load_filter_state(store, data), args)
        save_filter_state(store, state)
    except (OSError, ValueError):
        logger.error("Could not use filter state file %s", args.state_file, exc_info=True)
        return 1

    write_dashboard(args.out, data, state, title=args.title, pin_state=_has_overrides(args))

    if args.csv is not None:
        args.csv.parent.mkdir(parents=True, exist_ok=True)
        data.chart_data.to_dataframe().to_csv(args.csv, index=False)
        logger.info("Wrote %s (%d rows)", args.csv, len(data.chart_data))

    logger.info("Done. Dashboard: %s", args.out)
    _log_summary(data, state)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
