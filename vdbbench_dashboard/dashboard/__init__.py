"""Filtering, chart shaping and HTML rendering for the results dashboard."""

from vdbbench_dashboard.dashboard.charts import CaseSection, MetricChart, build_case_sections
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
from vdbbench_dashboard.dashboard.page import DashboardRenderer, render_dashboard, write_dashboard

__all__ = [
    "CaseSection",
    "DashboardRenderer",
    "FilterState",
    "FilterStore",
    "MemoryFilterStore",
    "MetricChart",
    "YAMLFilterStore",
    "build_case_sections",
    "filter_chart_records",
    "load_filter_state",
    "matching_files",
    "render_dashboard",
    "save_filter_state",
    "write_dashboard",
]
