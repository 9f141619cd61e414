"""Static, filterable HTML dashboard rendered with Chart.js."""

from __future__ import annotations

import html
import json
import logging
import math
from datetime import date, datetime
from pathlib import Path
from typing import Any

from vdbbench_dashboard.dashboard.charts import (
    AXIS_HEIGHT_AND_PADDING,
    BAR_HEIGHT,
    bar_color,
    build_case_sections,
)
from vdbbench_dashboard.dashboard.filters import (
    DEFAULT_START_DATE,
    FilterState,
    default_filter_state,
    filter_chart_records,
    grouped_cases,
    matching_files,
)
from vdbbench_dashboard.records.cases import CASE_LABELS
from vdbbench_dashboard.records.chart import DashboardData
from vdbbench_dashboard.records.metrics import CHART_METRIC_ORDER, METRICS_BY_NAME

logger = logging.getLogger(__name__)

# Chart.js CDN
CHARTJS_CDN = "https://cdn.jsdelivr.net/npm/chart.js@4.4.1/dist/chart.umd.min.js"

DEFAULT_TITLE = "VectorDB Benchmark Results"
LABEL_FORMAT = "<db_name> (<db_label>?, <index>, <num_concurrency>[])"


def _finite_or_none(value: Any) -> Any:
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def _json_for_script(payload: Any) -> str:
    """Serialize for embedding inside a <script> element."""
    return json.dumps(payload).replace("</", "<\\/")


class DashboardRenderer:
    """Renders a self-contained, filterable HTML page for loaded results."""

    def __init__(
        self,
        data: DashboardData,
        state: FilterState | None = None,
        pin_state: bool = False,
    ) -> None:
        """Initialize the renderer.

        Args:
            data: Loaded dashboard data.
            state: Initial filter selections. Defaults to all databases and
                the first available case.
            pin_state: Apply `state` on page load even when the browser has
                selections saved from an earlier visit.
        """
        self.data = data
        self.state = state or default_filter_state(data)
        self.pin_state = pin_state

    def generate(self, output_path: Path, title: str = DEFAULT_TITLE) -> None:
        """Write the dashboard HTML to `output_path`."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(self.render(title), encoding="utf-8")
        logger.info("Dashboard written to: %s", output_path)

    def render(self, title: str = DEFAULT_TITLE) -> str:
        """Render the complete HTML document."""
        safe_title = html.escape(title)
        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{safe_title}</title>
    <script src="{CHARTJS_CDN}"></script>
    {self._generate_styles()}
</head>
<body>
    <div class="layout">
        {self._generate_filters_section()}
        <main>
            <h1>{safe_title}</h1>
            <p class="subtitle">Label Format: <code>{html.escape(LABEL_FORMAT)}</code></p>
            <p class="subtitle">Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}</p>
            <div id="charts">{self._generate_initial_charts()}</div>
        </main>
    </div>
    {self._generate_scripts()}
</body>
</html>"""

    def _generate_styles(self) -> str:
        return """
    <style>
        :root {
            --primary: #1e40af;
            --bg: #ffffff;
            --panel: #f9fafb;
            --text: #1f2937;
            --muted: #6b7280;
            --border: #d1d5db;
        }
        * { box-sizing: border-box; }
        body {
            margin: 0;
            font-family: 'Nunito', -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif;
            background: var(--bg);
            color: var(--text);
        }
        .layout { display: flex; min-height: 100vh; }
        aside {
            width: 16rem;
            flex-shrink: 0;
            padding: 1rem;
            background: var(--panel);
            border-right: 1px solid var(--border);
        }
        aside h3 { margin: 0.5rem 0; font-size: 1rem; }
        aside h4 { margin: 0.5rem 0 0.25rem; font-size: 0.85rem; color: var(--muted); }
        aside label { display: block; padding-left: 0.5rem; font-size: 0.9rem; }
        aside button { font-size: 0.75rem; margin-right: 0.25rem; }
        .file-count { display: inline-block; margin-top: 0.5rem; padding: 0.4rem 0.75rem;
            background: #e5e7eb; border-radius: 0.25rem; font-size: 0.85rem; }
        main { flex: 1; padding: 2rem; }
        h1 { font-size: 2.25rem; margin: 0 0 1.5rem; }
        .subtitle { color: var(--muted); font-size: 0.85rem; }
        .case { margin-bottom: 2rem; }
        .metric { margin-bottom: 1.5rem; break-inside: avoid; }
        .metric h4 span { color: var(--muted); font-size: 0.75rem; margin-left: 0.25rem; }
        .empty { text-align: center; padding: 1rem; }
        @media print { aside { display: none; } }
    </style>"""

    def _generate_filters_section(self) -> str:
        """Generate the filter sidebar with the initial selections checked."""
        state = self.state
        start = (state.start_date or DEFAULT_START_DATE).isoformat()
        files = matching_files(self.data.chart_data, state.start_date)

        db_boxes = "".join(
            f'<label><input type="checkbox" name="db" value="{html.escape(name)}"'
            f'{" checked" if name in state.selected_dbs else ""}> {html.escape(name)}</label>'
            for name in self.data.db_names
        )
        case_groups = []
        for group in grouped_cases(self.data.case_ids):
            radios = "".join(
                f'<label><input type="radio" name="case" value="{case_id}"'
                f'{" checked" if case_id == state.selected_case else ""}> '
                f"{html.escape(CASE_LABELS.get(case_id, str(case_id)))}</label>"
                for case_id in group.ids
            )
            case_groups.append(f"<h4>{html.escape(group.title)}</h4>{radios}")

        return f"""
        <aside>
            <h3>Results after</h3>
            <input type="date" id="start-date" value="{start}" min="{DEFAULT_START_DATE.isoformat()}"
                max="{date.today().isoformat()}">
            <div class="file-count" id="file-count" title="{html.escape(chr(10).join(files))}">{len(files)} files match</div>
            <h3>DB Filter</h3>
            <button type="button" id="select-all">Select All</button>
            <button type="button" id="clear-all">Clear All</button>
            <div id="db-filter">{db_boxes}</div>
            <h3>Case Filter</h3>
            <div id="case-filter">{"".join(case_groups)}</div>
        </aside>"""

    def _generate_initial_charts(self) -> str:
        """Server-side placeholders for the initial selection.

        The script below replaces these with Chart.js canvases.
        """
        filtered = filter_chart_records(self.data.chart_data, self.state)
        if not filtered:
            return '<div class="empty">No data available</div>'
        parts = []
        for section in build_case_sections(filtered):
            charts = "".join(
                f'<div class="metric"><h4>{html.escape(c.title)}<span>({c.direction})</span></h4>'
                f'<div style="height: {c.height}px"></div></div>'
                for c in section.charts
            )
            parts.append(
                f'<div class="case"><h3>{html.escape(section.title)}</h3>{charts}</div>'
            )
        return "".join(parts)

    def _records_payload(self) -> list[dict[str, Any]]:
        rows = []
        for r in self.data.chart_data:
            rows.append(
                {
                    "db_name": r.db_name,
                    "db_label": r.db_label,
                    "case_id": r.case_id,
                    "file_date": r.file_date.isoformat() if r.file_date else None,
                    "filename": r.filename,
                    "metrics_set": list(r.metrics_set),
                    "color": bar_color(r.db_name),
                    **{m: _finite_or_none(r.metric(m)) for m in CHART_METRIC_ORDER},
                }
            )
        return rows

    def _generate_scripts(self) -> str:
        """Embed data and the client-side filter/chart logic."""
        config = {
            "records": self._records_payload(),
            "dbNames": list(self.data.db_names),
            "caseIds": list(self.data.case_ids),
            "caseLabels": {str(k): v for k, v in CASE_LABELS.items()},
            "metrics": [
                {
                    "name": name,
                    "title": METRICS_BY_NAME[name].title,
                    "unit": METRICS_BY_NAME[name].unit,
                    "lessIsBetter": METRICS_BY_NAME[name].less_is_better,
                }
                for name in CHART_METRIC_ORDER
            ],
            "initialState": self.state.to_dict(),
            "pinState": self.pin_state,
            "defaultStartDate": DEFAULT_START_DATE.isoformat(),
            "barHeight": BAR_HEIGHT,
            "axisHeight": AXIS_HEIGHT_AND_PADDING,
        }
        return (
            f'<script id="dashboard-config" type="application/json">'
            f"{_json_for_script(config)}</script>\n<script>{_CLIENT_SCRIPT}</script>"
        )


_CLIENT_SCRIPT = """
(function () {
    const cfg = JSON.parse(document.getElementById('dashboard-config').textContent);
    const STORAGE_PREFIX = 'vdbbench:';
    const charts = [];

    function load(key) {
        if (cfg.pinState) return cfg.initialState[key];
        try {
            const raw = window.localStorage.getItem(STORAGE_PREFIX + key);
            return raw === null ? cfg.initialState[key] : JSON.parse(raw);
        } catch (e) {
            return cfg.initialState[key];
        }
    }
    function save(key, value) {
        try { window.localStorage.setItem(STORAGE_PREFIX + key, JSON.stringify(value)); } catch (e) {}
    }

    const state = {
        dbNames: (load('dbNames') || []).filter(d => cfg.dbNames.includes(d)),
        case: load('case'),
        startDate: load('startDate') || cfg.defaultStartDate,
    };
    if (!cfg.caseIds.includes(state.case)) state.case = cfg.initialState.case;
    if (cfg.pinState) Object.keys(state).forEach(key => save(key, state[key]));

    function filterRecords() {
        return cfg.records.filter(r =>
            state.dbNames.includes(r.db_name) &&
            r.case_id === state.case &&
            (!state.startDate || !r.file_date || r.file_date >= state.startDate));
    }

    function matchingFiles() {
        const names = new Set();
        cfg.records.forEach(r => {
            if (r.filename && (!state.startDate || (r.file_date && r.file_date >= state.startDate))) {
                names.add(r.filename);
            }
        });
        return Array.from(names);
    }

    function render() {
        charts.forEach(c => c.destroy());
        charts.length = 0;
        const files = matchingFiles();
        const count = document.getElementById('file-count');
        count.textContent = files.length + ' files match';
        count.title = files.join('\\n');

        const container = document.getElementById('charts');
        container.innerHTML = '';
        const data = filterRecords();
        if (!data.length) {
            container.innerHTML = '<div class="empty">No data available</div>';
            return;
        }
        const present = new Set(data.flatMap(r => r.metrics_set));
        const metrics = cfg.metrics.filter(m => present.has(m.name));
        const byCase = new Map();
        data.forEach(r => {
            if (!byCase.has(r.case_id)) byCase.set(r.case_id, []);
            byCase.get(r.case_id).push(r);
        });

        byCase.forEach((caseData, caseId) => {
            const section = document.createElement('div');
            section.className = 'case';
            const heading = document.createElement('h3');
            heading.textContent = cfg.caseLabels[String(caseId)] || ('Case ' + caseId);
            section.appendChild(heading);

            metrics.forEach(m => {
                const rows = caseData
                    .filter(r => r.metrics_set.includes(m.name) &&
                        typeof r[m.name] === 'number' && r[m.name] > 1e-7)
                    .sort((a, b) => m.lessIsBetter ? a[m.name] - b[m.name] : b[m.name] - a[m.name]);
                if (!rows.length) return;

                const block = document.createElement('div');
                block.className = 'metric';
                const title = document.createElement('h4');
                title.textContent = m.title;
                const hint = document.createElement('span');
                hint.textContent = '(' + (m.lessIsBetter ? 'less' : 'more') + ' is better)';
                title.appendChild(hint);
                const holder = document.createElement('div');
                holder.style.height = (rows.length * cfg.barHeight + cfg.axisHeight) + 'px';
                const canvas = document.createElement('canvas');
                holder.appendChild(canvas);
                block.appendChild(title);
                block.appendChild(holder);
                section.appendChild(block);

                charts.push(new Chart(canvas, {
                    type: 'bar',
                    data: {
                        labels: rows.map(r => r.db_label),
                        datasets: [{
                            data: rows.map(r => r[m.name]),
                            backgroundColor: rows.map(r => r.color),
                            hoverBackgroundColor: rows.map(r => r.color),
                        }],
                    },
                    options: {
                        indexAxis: 'y',
                        responsive: true,
                        maintainAspectRatio: false,
                        animation: false,
                        layout: { padding: { left: 50, right: 75, bottom: 10 } },
                        plugins: {
                            legend: { display: false },
                            tooltip: {
                                callbacks: {
                                    title: items => rows[items[0].dataIndex].db_label,
                                    label: item => {
                                        const r = rows[item.dataIndex];
                                        const lines = [m.name.replace('_', ' ') + ' (' + m.unit + '): ' + item.parsed.x];
                                        if (r.filename) lines.push('File: ' + r.filename);
                                        return lines;
                                    },
                                },
                            },
                        },
                        scales: { y: { grid: { display: false } } },
                    },
                }));
            });
            container.appendChild(section);
        });
    }

    document.querySelectorAll('#db-filter input').forEach(box => {
        box.checked = state.dbNames.includes(box.value);
        box.addEventListener('change', () => {
            state.dbNames = box.checked
                ? state.dbNames.concat([box.value])
                : state.dbNames.filter(d => d !== box.value);
            save('dbNames', state.dbNames);
            render();
        });
    });
    document.getElementById('select-all').addEventListener('click', () => {
        state.dbNames = cfg.dbNames.slice();
        document.querySelectorAll('#db-filter input').forEach(b => { b.checked = true; });
        save('dbNames', state.dbNames);
        render();
    });
    document.getElementById('clear-all').addEventListener('click', () => {
        state.dbNames = [];
        document.querySelectorAll('#db-filter input').forEach(b => { b.checked = false; });
        save('dbNames', state.dbNames);
        render();
    });
    document.querySelectorAll('#case-filter input').forEach(radio => {
        radio.checked = Number(radio.value) === state.case;
        radio.addEventListener('change', () => {
            state.case = Number(radio.value);
            save('case', state.case);
            render();
        });
    });
    const startInput = document.getElementById('start-date');
    startInput.value = state.startDate;
    startInput.addEventListener('change', () => {
        state.startDate = startInput.value || cfg.defaultStartDate;
        startInput.value = state.startDate;
        save('startDate', state.startDate);
        render();
    });

    document.addEventListener('DOMContentLoaded', render);
    if (document.readyState !== 'loading') render();
})();
"""


def render_dashboard(
    data: DashboardData,
    state: FilterState | None = None,
    title: str = DEFAULT_TITLE,
    pin_state: bool = False,
) -> str:
    """Render the dashboard HTML as a string."""
    return DashboardRenderer(data, state, pin_state).render(title)


def write_dashboard(
    output_path: Path,
    data: DashboardData,
    state: FilterState | None = None,
    title: str = DEFAULT_TITLE,
    pin_state: bool = False,
) -> Path:
    """Write the dashboard HTML and return the output path."""
    DashboardRenderer(data, state, pin_state).generate(output_path, title)
    return Path(output_path)
