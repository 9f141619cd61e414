"""Chart-ready records flattened from VectorDBBench result files."""

from __future__ import annotations

import dataclasses
import logging
from collections import defaultdict
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any

import pandas as pd

from vdbbench_dashboard.records.cases import case_label
from vdbbench_dashboard.records.metrics import METRICS, METRICS_BY_NAME
from vdbbench_dashboard.records.results import (
    CaseResult,
    ResultFile,
    count_cases,
    load_result_files,
)
from vdbbench_dashboard.sources import SourceLike

logger = logging.getLogger(__name__)

SHORT_LABEL_LENGTH = 10
NO_INDEX_INFO = "No index info"


@dataclass(frozen=True)
class ChartRecord:
    """One benchmark case, shaped for plotting.

    Attributes:
        db: Database client identifier.
        db_name: Display database name (configured name, else `db`).
        db_label: Composite bar label, `"<db> (<label>, <index>, <concurrency>T)"`.
        case_id: Benchmark case identifier.
        metrics_set: Names of metrics with a measured (valid) value.
        file_date: Date parsed from the source filename.
        filename: Source result file name.
        qps: Queries per second, rounded to an integer.
        serial_latency_p99: P99 serial latency in milliseconds, 2 decimals.
        recall: Recall, unrounded.
        load_duration: Load duration in seconds, 1 decimal.
        max_load_count: Capacity-case load count, as recorded.
        ndcg: NDCG, as recorded.
        conc_num_list: Concurrency levels, as recorded.
        conc_qps_list: QPS per concurrency level, as recorded.
        conc_latency_p99_list: P99 latency per concurrency level, as recorded.
        conc_latency_avg_list: Average latency per concurrency level, as recorded.
        extra_metrics: Unrecognized metric fields, as recorded.
    """

    db: str
    db_name: str
    db_label: str
    case_id: int
    metrics_set: tuple[str, ...]
    file_date: date | None
    filename: str | None
    qps: int | None = None
    serial_latency_p99: float | None = None
    recall: float | None = None
    load_duration: float | None = None
    max_load_count: float | None = None
    ndcg: float | None = None
    conc_num_list: tuple[float, ...] | None = None
    conc_qps_list: tuple[float, ...] | None = None
    conc_latency_p99_list: tuple[float, ...] | None = None
    conc_latency_avg_list: tuple[float, ...] | None = None
    extra_metrics: dict[str, Any] = field(default_factory=dict)

    @property
    def case_label(self) -> str | None:
        """Display name of the case, `None` for ids outside the catalog."""
        return case_label(self.case_id)

    def metric(self, name: str) -> Any:
        return getattr(self, name)


_CHART_FIELDS = frozenset(f.name for f in dataclasses.fields(ChartRecord))


def _format_level(v: float) -> str:
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    return repr(v)


def _format_concurrency(values: Sequence[float]) -> str:
    return ", ".join(_format_level(v) for v in values)


def generate_label(case: CaseResult) -> str:
    """Build the bar label for a case result.

    The parenthesized part lists the (truncated) db label, the index name
    and the concurrency levels, skipping whichever are absent:

        Milvus (ReallyLong..., hnsw, 1, 2T)
    """
    config = case.task_config
    short_label: str | None = None
    if config.db_label:
        short_label = config.db_label
        if len(short_label) > SHORT_LABEL_LENGTH:
            short_label = short_label[:SHORT_LABEL_LENGTH] + "..."
    index_info = config.index or NO_INDEX_INFO
    # Capacity cases never carry a concurrency series.
    conc = case.metrics.conc_num_list
    concurrency = f"{_format_concurrency(conc)}T" if conc else None
    parts = [p for p in (short_label, index_info, concurrency) if p]
    return f"{config.db} ({', '.join(parts)})"


def valid_metric_names(case: CaseResult) -> tuple[str, ...]:
    """Scalar metrics of a case whose raw value counts as measured."""
    return tuple(m.name for m in METRICS if m.is_valid(case.metrics.value(m.name)))


def _chart_record(case: CaseResult, file_date: date | None, filename: str | None) -> ChartRecord:
    metrics = case.metrics
    config = case.task_config
    derived = {m.name: m.derive(metrics.value(m.name)) for m in METRICS}
    return ChartRecord(
        db=config.db,
        db_name=config.display_db_name,
        db_label=generate_label(case),
        case_id=config.case_id,
        metrics_set=valid_metric_names(case),
        file_date=file_date,
        filename=filename,
        conc_num_list=metrics.conc_num_list,
        conc_qps_list=metrics.conc_qps_list,
        conc_latency_p99_list=metrics.conc_latency_p99_list,
        conc_latency_avg_list=metrics.conc_latency_avg_list,
        extra_metrics=dict(metrics.extra),
        **derived,
    )


def normalize_results(results: Sequence[ResultFile]) -> list[ChartRecord]:
    """Flatten result files into one chart record per case result.

    Output order is file order, then in-file case order. No sorting is
    applied here.
    """
    flat = [(case, r.file_date, r.filename) for r in results for case in r.results]
    return [_chart_record(case, file_date, filename) for case, file_date, filename in flat]


class _ChartRecordsData:
    """Column accessor for `ChartRecords`, returning `list[T]` per field.

    `records.data.qps` returns the qps of every record, in iteration
    order, without colliding with filter methods such as `records.db`.
    """

    __slots__ = ("_cache", "_records")

    def __init__(self, records: tuple[ChartRecord, ...], cache: dict[str, Any]) -> None:
        self._records = records
        self._cache = cache

    def __getattr__(self, name: str) -> list[Any]:
        if name not in _CHART_FIELDS:
            raise AttributeError(f"ChartRecord has no field {name!r}")
        key = f"_data_{name}"
        if key not in self._cache:
            self._cache[key] = [getattr(r, name) for r in self._records]
        return self._cache[key]


class ChartRecords:
    """Immutable collection of chart records with fluent filtering.

    Example:

        records = ChartRecords.from_results(load_result_files("results/"))
        milvus = records.db_name("Milvus").case(5).since(date(2024, 1, 1))
        qps = milvus.data.qps
    """

    def __init__(self, records: Sequence[ChartRecord]) -> None:
        self._records = tuple(records)
        self._cache: dict[str, Any] = {}

    @classmethod
    def from_results(cls, results: Sequence[ResultFile]) -> ChartRecords:
        """Normalize loaded result files into a collection."""
        records = normalize_results(results)
        logger.info(
            "Normalized %d cases from %d result files", count_cases(results), len(results)
        )
        return cls(records)

    def db(self, *dbs: str) -> ChartRecords:
        """Filter to records from any of the given database clients."""
        return self._filter("db", dbs)

    def db_name(self, *names: str) -> ChartRecords:
        """Filter to records matching any of the given display database names."""
        return self._filter("db_name", names)

    def case(self, *case_ids: int) -> ChartRecords:
        """Filter to records of any of the given case ids."""
        return self._filter("case_id", case_ids)

    def since(self, start: date | None) -> ChartRecords:
        """Keep records dated on or after `start`.

        Records whose filename carried no date are always kept. `None`
        disables the filter.
        """
        if start is None:
            return self
        key = f"_since_{start.isoformat()}"
        if key not in self._cache:
            self._cache[key] = ChartRecords(
                [r for r in self._records if r.file_date is None or r.file_date >= start]
            )
        return self._cache[key]

    def with_metric(self, name: str) -> ChartRecords:
        """Keep records where `name` has a measured value."""
        if name not in METRICS_BY_NAME:
            raise ValueError(f"Unknown metric {name!r}")
        return self.where(lambda r: name in r.metrics_set)

    def where(self, predicate: Callable[[ChartRecord], bool]) -> ChartRecords:
        """Filter records by an arbitrary predicate."""
        return ChartRecords([r for r in self._records if predicate(r)])

    def _filter(self, field_name: str, values: tuple[Any, ...]) -> ChartRecords:
        key = f"_filter_{field_name}_{values}"
        if key not in self._cache:
            value_set = set(values)
            self._cache[key] = ChartRecords(
                [r for r in self._records if getattr(r, field_name) in value_set]
            )
        return self._cache[key]

    @property
    def data(self) -> _ChartRecordsData:
        """Column-oriented field access, e.g. `records.data.qps`."""
        key = "_data_accessor"
        if key not in self._cache:
            self._cache[key] = _ChartRecordsData(self._records, self._cache)
        return self._cache[key]

    @property
    def db_names(self) -> list[str]:
        """Distinct display database names in first-seen order."""
        return list(dict.fromkeys(r.db_name for r in self._records))

    @property
    def case_ids(self) -> list[int]:
        """Distinct case ids in first-seen order."""
        return list(dict.fromkeys(r.case_id for r in self._records))

    @property
    def filenames(self) -> list[str]:
        """Distinct source filenames in first-seen order."""
        return list(dict.fromkeys(r.filename for r in self._records if r.filename))

    def group_by(self, *fields: str) -> dict[Any, ChartRecords]:
        """Group records by one or more fields, keeping first-seen key order.

        Returns:
            Single field: `{value: ChartRecords, ...}`.
            Multiple fields: `{(v1, v2, ...): ChartRecords, ...}`.
        """
        key = f"_group_by_{fields}"
        if key not in self._cache:
            groups: dict[Any, list[ChartRecord]] = defaultdict(list)
            for r in self._records:
                if len(fields) == 1:
                    k = getattr(r, fields[0])
                else:
                    k = tuple(getattr(r, f) for f in fields)
                groups[k].append(r)
            self._cache[key] = {k: ChartRecords(v) for k, v in groups.items()}
        return self._cache[key]

    def __iter__(self) -> Iterator[ChartRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __getitem__(self, index: int) -> ChartRecord:
        return self._records[index]

    def __bool__(self) -> bool:
        return len(self._records) > 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ChartRecords):
            return NotImplemented
        return self._records == other._records

    __hash__ = None  # type: ignore[assignment]

    def __add__(self, other: ChartRecords) -> ChartRecords:
        return ChartRecords(list(self._records) + list(other._records))

    def __repr__(self) -> str:
        return f"ChartRecords({len(self._records)} records)"

    def to_dataframe(self) -> pd.DataFrame:
        """Convert to DataFrame with one row per record."""
        if not self._records:
            return pd.DataFrame()
        return pd.DataFrame([dataclasses.asdict(r) for r in self._records])


@dataclass(frozen=True)
class DashboardData:
    """Everything the presentation layer consumes.

    Attributes:
        results: Parsed result files.
        chart_data: Normalized chart records.
        db_names: Distinct display database names, first-seen order.
        case_ids: Distinct case ids, first-seen order.
    """

    results: tuple[ResultFile, ...]
    chart_data: ChartRecords
    db_names: tuple[str, ...]
    case_ids: tuple[int, ...]

    @classmethod
    def empty(cls) -> DashboardData:
        return cls(results=(), chart_data=ChartRecords([]), db_names=(), case_ids=())

    @classmethod
    def from_results(cls, results: Sequence[ResultFile]) -> DashboardData:
        chart_data = ChartRecords.from_results(results)
        return cls(
            results=tuple(results),
            chart_data=chart_data,
            db_names=tuple(chart_data.db_names),
            case_ids=tuple(chart_data.case_ids),
        )


def load_dashboard_data(
    source: SourceLike,
    *,
    n_workers: int | None = None,
    skip_invalid: bool = True,
) -> DashboardData:
    """Load and normalize all result files under a source.

    Never raises: a missing or unreadable results directory, or any other
    failure during the scan, is logged and yields empty data so the
    dashboard can still render. With `skip_invalid=False` a single
    malformed file also empties the whole batch.

    Args:
        source: Results directory path or a `ResultsSource`.
        n_workers: Number of reader threads (default: auto).
        skip_invalid: Skip malformed files instead of failing the batch.
    """
    try:
        results = load_result_files(source, n_workers=n_workers, skip_invalid=skip_invalid)
        return DashboardData.from_results(results)
    except Exception:
        logger.error("Error reading result files from %s", source, exc_info=True)
        return DashboardData.empty()
