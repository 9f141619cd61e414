"""Shape filtered chart records into per-case, per-metric bar charts."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from vdbbench_dashboard.records.cases import case_label
from vdbbench_dashboard.records.chart import ChartRecord, ChartRecords
from vdbbench_dashboard.records.metrics import (
    CHART_METRIC_ORDER,
    METRICS_BY_NAME,
    is_valid_metric_value,
)

BAR_HEIGHT = 28
AXIS_HEIGHT_AND_PADDING = 40
DEFAULT_BAR_COLOR = "#000000"

# Tailwind 400/600 shades per database client.
DB_COLORS: dict[str, str] = {
    "AWSOpenSearch": "#fb923c",
    "ElasticCloud": "#facc15",
    "LanceDB": "#4ade80",
    "Milvus": "#2dd4bf",
    "PgVector": "#336791",
    "Pinecone": "#818cf8",
    "QdrantCloud": "#fb7185",
    "Redis": "#e11d48",
    "TiDB": "#4f46e5",
    "Vespa": "#0d9488",
    "WeaviateCloud": "#16a34a",
    "ZillizCloud": "#ea580c",
}


def bar_color(db_name: str) -> str:
    return DB_COLORS.get(db_name, DEFAULT_BAR_COLOR)


@dataclass(frozen=True)
class Bar:
    label: str
    value: float
    color: str
    filename: str | None


@dataclass(frozen=True)
class MetricChart:
    """One horizontal bar chart: a metric for every record of a case.

    Attributes:
        metric: Metric name, e.g. `"qps"`.
        title: Chart heading, e.g. `"Serial latency p99 in ms"`.
        unit: Value unit shown in tooltips.
        less_is_better: Whether bars are ranked ascending.
        bars: Bars in ranked order.
    """

    metric: str
    title: str
    unit: str
    less_is_better: bool
    bars: tuple[Bar, ...]

    @property
    def height(self) -> int:
        """Canvas height in pixels."""
        return len(self.bars) * BAR_HEIGHT + AXIS_HEIGHT_AND_PADDING

    @property
    def direction(self) -> str:
        return "less is better" if self.less_is_better else "more is better"

    def to_dict(self) -> dict[str, Any]:
        return {
            "metric": self.metric,
            "title": self.title,
            "unit": self.unit,
            "direction": self.direction,
            "height": self.height,
            "labels": [b.label for b in self.bars],
            "values": [b.value for b in self.bars],
            "colors": [b.color for b in self.bars],
            "filenames": [b.filename for b in self.bars],
        }


@dataclass(frozen=True)
class CaseSection:
    case_id: int
    title: str
    charts: tuple[MetricChart, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "case_id": self.case_id,
            "title": self.title,
            "charts": [c.to_dict() for c in self.charts],
        }


def available_metrics(records: Iterable[ChartRecord]) -> list[str]:
    """Charted metrics valid in at least one record, in display order."""
    present = {m for r in records for m in r.metrics_set}
    return [m for m in CHART_METRIC_ORDER if m in present]


def rank_records(records: Iterable[ChartRecord], metric: str) -> list[ChartRecord]:
    """Records with a valid `metric` value, best first.

    Ties keep their input order.
    """
    descriptor = METRICS_BY_NAME[metric]
    kept = [
        r
        for r in records
        if metric in r.metrics_set and is_valid_metric_value(r.metric(metric))
    ]
    return sorted(
        kept,
        key=lambda r: r.metric(metric),
        reverse=not descriptor.less_is_better,
    )


def build_metric_chart(records: Iterable[ChartRecord], metric: str) -> MetricChart | None:
    """Bar chart for one metric, or `None` when no record has a value."""
    ranked = rank_records(records, metric)
    if not ranked:
        return None
    descriptor = METRICS_BY_NAME[metric]
    return MetricChart(
        metric=metric,
        title=descriptor.title,
        unit=descriptor.unit,
        less_is_better=descriptor.less_is_better,
        bars=tuple(
            Bar(
                label=r.db_label,
                value=r.metric(metric),
                color=bar_color(r.db_name),
                filename=r.filename,
            )
            for r in ranked
        ),
    )


def build_case_sections(records: ChartRecords | Iterable[ChartRecord]) -> list[CaseSection]:
    """Group records by case (first-seen order) and chart each metric.

    Metrics are drawn in the fixed display order and only when some
    record in the whole selection measured them.
    """
    if not isinstance(records, ChartRecords):
        records = ChartRecords(list(records))
    metrics = available_metrics(records)
    sections: list[CaseSection] = []
    for case_id, case_records in records.group_by("case_id").items():
        charts = [build_metric_chart(case_records, m) for m in metrics]
        sections.append(
            CaseSection(
                case_id=case_id,
                title=case_label(case_id) or f"Case {case_id}",
                charts=tuple(c for c in charts if c is not None),
            )
        )
    return sections
