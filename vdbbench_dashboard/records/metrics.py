"""Metric descriptors for VectorDBBench scalar measurements.

Each scalar field of a result's metric bundle is described once here:
how to tell whether a raw value counts as measured, how to turn it into
the value shown on a chart, and which direction ranks better. Values at
or below `VALID_THRESHOLD` are treated as unmeasured rather than zero.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, localcontext

VALID_THRESHOLD = 1e-7


def is_valid_metric_value(value: object) -> bool:
    """Whether a raw metric value is a real number above `VALID_THRESHOLD`."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return value > VALID_THRESHOLD


def _round_half_up(value: float | Decimal, places: int) -> float:
    # Decimal(str(...)) avoids float artefacts such as 12.345 -> 12.34.
    exact = value if isinstance(value, Decimal) else Decimal(str(value))
    with localcontext() as ctx:
        # quantize needs enough digits for the integer part plus `places`.
        ctx.prec = max(ctx.prec, exact.adjusted() + places + 2)
        return float(exact.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP))


def _identity(value: float) -> float:
    return value


def _seconds_to_ms(value: float) -> float:
    return _round_half_up(Decimal(str(value)) * 1000, 2)


def _round_int(value: float) -> int:
    return int(_round_half_up(value, 0))


def _round_1(value: float) -> float:
    return _round_half_up(value, 1)


@dataclass(frozen=True)
class MetricDescriptor:
    """How one scalar metric is validated, formatted and ranked.

    Attributes:
        name: Field name in the result file's `metrics` object.
        unit: Unit shown next to chart values.
        less_is_better: Rank ascending when True, descending otherwise.
        charted: Whether the dashboard draws a chart for this metric.
        transform: Converts a raw value into the displayed value.
    """

    name: str
    unit: str = ""
    less_is_better: bool = False
    charted: bool = True
    transform: Callable[[float], float] = _identity

    def is_valid(self, value: object) -> bool:
        return is_valid_metric_value(value)

    def derive(self, value: float | None) -> float | None:
        """Apply `transform` to a numeric value; pass anything else through."""
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return value
        if not math.isfinite(value):
            return value
        return self.transform(value)

    @property
    def title(self) -> str:
        """Chart heading, e.g. `"Serial latency p99 in ms"`."""
        text = self.name[:1].upper() + self.name[1:].lower().replace("_", " ")
        if self.name in ("qps", "recall"):
            return text
        return f"{text} in {self.unit}"


METRICS: tuple[MetricDescriptor, ...] = (
    MetricDescriptor("qps", unit="QPS", transform=_round_int),
    MetricDescriptor(
        "serial_latency_p99", unit="ms", less_is_better=True, transform=_seconds_to_ms
    ),
    MetricDescriptor("recall", unit="%"),
    MetricDescriptor("load_duration", unit="s", less_is_better=True, transform=_round_1),
    MetricDescriptor("max_load_count", unit="k"),
    MetricDescriptor("ndcg", charted=False),
)

METRICS_BY_NAME: dict[str, MetricDescriptor] = {m.name: m for m in METRICS}

CHART_METRIC_ORDER: tuple[str, ...] = tuple(m.name for m in METRICS if m.charted)

CONCURRENCY_SERIES: tuple[str, ...] = (
    "conc_num_list",
    "conc_qps_list",
    "conc_latency_p99_list",
    "conc_latency_avg_list",
)


def is_less_better(metric: str) -> bool:
    descriptor = METRICS_BY_NAME.get(metric)
    return descriptor is not None and descriptor.less_is_better
