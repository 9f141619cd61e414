"""VectorDBBench results dashboard toolkit."""

from vdbbench_dashboard.records.chart import (
    ChartRecord,
    ChartRecords,
    DashboardData,
    load_dashboard_data,
)
from vdbbench_dashboard.records.results import ResultFile, load_result_files

__all__ = [
    "ChartRecord",
    "ChartRecords",
    "DashboardData",
    "ResultFile",
    "load_dashboard_data",
    "load_result_files",
]

__version__ = "0.1.0"
