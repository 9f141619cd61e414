"""Parsed VectorDBBench result files and the directory loader."""

from __future__ import annotations

import json
import logging
import math
import os
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import date
from pathlib import Path
from typing import Any

from vdbbench_dashboard.raw.filename_parser import (
    RESULT_PREFIX,
    RESULT_SUFFIX,
    extract_date_from_filename,
    is_result_filename,
)
from vdbbench_dashboard.records.metrics import CONCURRENCY_SERIES, METRICS
from vdbbench_dashboard.sources import SourceLike, resolve_source_root

logger = logging.getLogger(__name__)

_SCALAR_METRICS = tuple(m.name for m in METRICS)


def _number_or_none(v: object) -> int | float | None:
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return None
    return v


def _series_or_none(v: object) -> tuple[float, ...] | None:
    if not isinstance(v, list):
        return None
    return tuple(
        x
        for x in v
        if isinstance(x, (int, float)) and not isinstance(x, bool) and math.isfinite(x)
    )


def _coerce_int(raw: object, what: str) -> int:
    if isinstance(raw, bool):
        raise ValueError(f"Invalid {what}: {raw!r}")
    if isinstance(raw, int):
        return raw
    try:
        return int(str(raw))
    except ValueError:
        raise ValueError(f"Invalid {what}: {raw!r}") from None


def _mapping(payload: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = payload.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"{key} is not an object")
    return value


@dataclass(frozen=True)
class Metric:
    """Measurements collected for one benchmark case.

    Scalar fields absent from the file are `None`. Capacity cases carry no
    concurrency series, so those stay `None` as well.

    Attributes:
        max_load_count: Largest number of vectors loaded before failure (capacity cases).
        load_duration: Time to insert and index the dataset, in seconds.
        qps: Queries per second at the best concurrency level.
        serial_latency_p99: 99th percentile serial search latency, in seconds.
        recall: Search recall in `[0, 1]`.
        ndcg: Normalized discounted cumulative gain.
        conc_num_list: Concurrency levels tested.
        conc_qps_list: QPS measured per concurrency level.
        conc_latency_p99_list: P99 latency per concurrency level.
        conc_latency_avg_list: Average latency per concurrency level.
        extra: Any other fields found in the file, copied through untouched.
    """

    max_load_count: int | float | None = None
    load_duration: int | float | None = None
    qps: int | float | None = None
    serial_latency_p99: int | float | None = None
    recall: int | float | None = None
    ndcg: int | float | None = None
    conc_num_list: tuple[float, ...] | None = None
    conc_qps_list: tuple[float, ...] | None = None
    conc_latency_p99_list: tuple[float, ...] | None = None
    conc_latency_avg_list: tuple[float, ...] | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> Metric:
        scalars = {name: _number_or_none(payload.get(name)) for name in _SCALAR_METRICS}
        series = {name: _series_or_none(payload.get(name)) for name in CONCURRENCY_SERIES}
        known = set(_SCALAR_METRICS) | set(CONCURRENCY_SERIES)
        extra = {k: v for k, v in payload.items() if k not in known}
        return cls(**scalars, **series, extra=extra)

    def value(self, name: str) -> Any:
        """Raw value of a scalar metric by name."""
        return getattr(self, name)


@dataclass(frozen=True)
class TaskConfig:
    """Database and case configuration a case was run with.

    Attributes:
        db: Database client identifier (e.g. `"Milvus"`).
        db_name: Configured display name, if any.
        db_label: Free-form label from the database config, if any.
        db_case_config: Index/search parameters, kept as found in the file.
        case_id: Benchmark case identifier.
        num_concurrency: Concurrency levels configured for the search stage.
        concurrency_duration: Seconds spent at each concurrency level.
    """

    db: str
    case_id: int
    db_name: str | None = None
    db_label: str | None = None
    db_case_config: dict[str, Any] = field(default_factory=dict)
    num_concurrency: tuple[int, ...] | None = None
    concurrency_duration: float | None = None

    @property
    def index(self) -> str | None:
        """Index type from the case config (e.g. `"HNSW"`), if set."""
        raw = self.db_case_config.get("index")
        return str(raw) if raw else None

    @property
    def display_db_name(self) -> str:
        return self.db_name or self.db

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> TaskConfig:
        db = payload.get("db")
        if not isinstance(db, str) or not db:
            raise ValueError(f"Missing required task_config.db: {db!r}")
        db_name = payload.get("db_name")
        db_config = _mapping(payload, "db_config")
        db_label = db_config.get("db_label")
        case_config = _mapping(payload, "case_config")
        if "case_id" not in case_config:
            raise ValueError("Missing required task_config.case_config.case_id")
        search = _mapping(case_config, "concurrency_search_config")
        num_conc = _series_or_none(search.get("num_concurrency"))
        duration = _number_or_none(search.get("concurrency_duration"))
        return cls(
            db=db,
            case_id=_coerce_int(case_config["case_id"], "case_id"),
            db_name=str(db_name) if db_name else None,
            db_label=str(db_label) if db_label else None,
            db_case_config=dict(_mapping(payload, "db_case_config")),
            num_concurrency=(
                tuple(int(n) for n in num_conc) if num_conc is not None else None
            ),
            concurrency_duration=float(duration) if duration is not None else None,
        )


@dataclass(frozen=True)
class CaseResult:
    """Outcome of one benchmark case inside a result file."""

    metrics: Metric
    task_config: TaskConfig
    label: str = ""

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> CaseResult:
        if not isinstance(payload, Mapping):
            raise ValueError("case result is not an object")
        label = payload.get("label")
        return cls(
            metrics=Metric.from_dict(_mapping(payload, "metrics")),
            task_config=TaskConfig.from_dict(_mapping(payload, "task_config")),
            label=str(label) if label is not None else "",
        )


@dataclass(frozen=True)
class ResultFile:
    """One parsed `result_*.json` file.

    Attributes:
        run_id: Identifier of the benchmark run that wrote the file.
        task_label: Task label given to the run.
        results: Case results in file order.
        timestamp: Unix timestamp recorded by the benchmark, if any.
        file_date: Date parsed from the filename, if any.
        filename: Base name of the source file.
    """

    run_id: str
    task_label: str
    results: tuple[CaseResult, ...]
    timestamp: float | None = None
    file_date: date | None = None
    filename: str | None = None

    @classmethod
    def from_dict(cls, payload: object) -> ResultFile:
        if not isinstance(payload, Mapping):
            raise ValueError("result file is not a JSON object")
        cases = payload.get("results")
        if not isinstance(cases, list):
            raise ValueError("results is missing or not a list")
        timestamp = _number_or_none(payload.get("timestamp"))
        return cls(
            run_id=str(payload.get("run_id", "")),
            task_label=str(payload.get("task_label", "")),
            results=tuple(CaseResult.from_dict(c) for c in cases),
            timestamp=float(timestamp) if timestamp is not None else None,
        )


def iter_result_files(root: Path) -> list[Path]:
    """Recursively list `result_*.json` files under `root`, sorted by path."""
    pattern = f"{RESULT_PREFIX}*{RESULT_SUFFIX}"
    return sorted(p for p in root.rglob(pattern) if p.is_file() and is_result_filename(p))


def load_result_file(path: Path) -> ResultFile:
    """Parse one result file and attach its filename and date provenance.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the contents are not valid JSON or not a result file.
    """
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    parsed = ResultFile.from_dict(payload)
    return replace(
        parsed,
        file_date=extract_date_from_filename(path),
        filename=Path(path).name,
    )


def _resolve_workers(n_workers: int | None, n_files: int) -> int:
    if n_files <= 1:
        return 1
    if n_workers is None or n_workers <= 0:
        cpu = os.cpu_count() or 1
        return min(16, max(4, cpu + 4), n_files)
    return max(1, int(n_workers))


def _load_or_skip(path: Path) -> ResultFile | None:
    try:
        return load_result_file(path)
    except (OSError, ValueError, ArithmeticError):
        logger.warning("Skipping unreadable result file %s", path, exc_info=True)
        return None


def load_result_files(
    source: SourceLike,
    *,
    n_workers: int | None = None,
    skip_invalid: bool = True,
) -> list[ResultFile]:
    """Load every result file under a source.

    Args:
        source: Results directory path or a `ResultsSource`.
        n_workers: Number of reader threads (default: auto).
        skip_invalid: If True (default), a file that cannot be read or parsed
            is logged and skipped. If False, the first such file aborts the
            load by re-raising its error.

    Returns:
        Parsed files in path order.

    Raises:
        FileNotFoundError: If the results directory does not exist.
    """
    root = resolve_source_root(source)
    files = iter_result_files(root)
    if not files:
        logger.info("No result files found under %s", root)
        return []

    workers = _resolve_workers(n_workers, len(files))
    loader = _load_or_skip if skip_invalid else load_result_file
    logger.info("Reading %d result files with %d workers", len(files), workers)
    if workers <= 1:
        loaded = [loader(p) for p in files]
    else:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            loaded = list(pool.map(loader, files))

    results = [r for r in loaded if r is not None]
    logger.info("Loaded %d result files (%d skipped)", len(results), len(loaded) - len(results))
    return results


def count_cases(results: Sequence[ResultFile]) -> int:
    return sum(len(r.results) for r in results)
