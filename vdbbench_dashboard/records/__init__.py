"""Parsed result files and normalized chart records."""

from vdbbench_dashboard.records.chart import (
    ChartRecord,
    ChartRecords,
    DashboardData,
    load_dashboard_data,
    normalize_results,
)
from vdbbench_dashboard.records.results import (
    CaseResult,
    Metric,
    ResultFile,
    TaskConfig,
    load_result_files,
)

__all__ = [
    "CaseResult",
    "ChartRecord",
    "ChartRecords",
    "DashboardData",
    "Metric",
    "ResultFile",
    "TaskConfig",
    "load_dashboard_data",
    "load_result_files",
    "normalize_results",
]
