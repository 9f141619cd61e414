"""Dashboard filter state, the pure filter predicate and filter persistence.

Filter selections are plain values (`FilterState`) passed into
`filter_chart_records`. Remembering them between runs goes through a
`FilterStore`, so callers decide where state lives: in memory, in a
YAML file next to the results, or anywhere else with `get`/`set`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import date
from pathlib import Path
from typing import Any, Protocol

import yaml

from vdbbench_dashboard.records.cases import CASE_GROUPS, CaseGroup
from vdbbench_dashboard.records.chart import ChartRecord, ChartRecords, DashboardData

logger = logging.getLogger(__name__)

DEFAULT_START_DATE = date(2023, 1, 1)

DB_NAMES_KEY = "dbNames"
CASE_KEY = "case"
START_DATE_KEY = "startDate"


def _parse_date(raw: object) -> date | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, date):
        return raw
    try:
        return date.fromisoformat(str(raw))
    except ValueError:
        raise ValueError(f"Invalid start date {raw!r}, expected YYYY-MM-DD") from None


@dataclass(frozen=True)
class FilterState:
    """Current dashboard selections.

    Attributes:
        selected_dbs: Display database names to show.
        selected_case: Case id to show, `None` when no case is available.
        start_date: Hide records dated before this day; `None` shows all.
    """

    selected_dbs: tuple[str, ...] = ()
    selected_case: int | None = None
    start_date: date | None = DEFAULT_START_DATE

    def to_dict(self) -> dict[str, Any]:
        return {
            DB_NAMES_KEY: list(self.selected_dbs),
            CASE_KEY: self.selected_case,
            START_DATE_KEY: self.start_date.isoformat() if self.start_date else None,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> FilterState:
        """Inverse of `to_dict`.

        Raises:
            ValueError: If the start date is not an ISO date or the case is
                not an integer.
        """
        dbs = payload.get(DB_NAMES_KEY) or []
        case = payload.get(CASE_KEY)
        if case is not None and (isinstance(case, bool) or not isinstance(case, int)):
            raise ValueError(f"Invalid case id {case!r}")
        return cls(
            selected_dbs=tuple(str(d) for d in dbs),
            selected_case=case,
            start_date=_parse_date(payload.get(START_DATE_KEY)),
        )

    def toggle_db(self, db_name: str) -> FilterState:
        if db_name in self.selected_dbs:
            return replace(self, selected_dbs=tuple(d for d in self.selected_dbs if d != db_name))
        return replace(self, selected_dbs=(*self.selected_dbs, db_name))

    def select_all_dbs(self, db_names: Iterable[str]) -> FilterState:
        return replace(self, selected_dbs=tuple(db_names))

    def clear_dbs(self) -> FilterState:
        return replace(self, selected_dbs=())

    def with_case(self, case_id: int) -> FilterState:
        return replace(self, selected_case=case_id)

    def with_start_date(self, start: date | None) -> FilterState:
        """Set the start date; clearing it falls back to `DEFAULT_START_DATE`."""
        return replace(self, start_date=start or DEFAULT_START_DATE)


def default_filter_state(data: DashboardData) -> FilterState:
    """All databases, the first available case, results since 2023-01-01."""
    return FilterState(
        selected_dbs=tuple(data.db_names),
        selected_case=data.case_ids[0] if data.case_ids else None,
        start_date=DEFAULT_START_DATE,
    )


def _is_on_or_after(record: ChartRecord, start: date | None) -> bool:
    if start is None or record.file_date is None:
        return True
    return record.file_date >= start


def filter_chart_records(
    records: Iterable[ChartRecord],
    state: FilterState,
) -> ChartRecords:
    """Records matching the selected databases, case and start date."""
    selected = set(state.selected_dbs)
    return ChartRecords(
        [
            r
            for r in records
            if r.db_name in selected
            and r.case_id == state.selected_case
            and _is_on_or_after(r, state.start_date)
        ]
    )


def matching_files(records: Iterable[ChartRecord], start_date: date | None) -> list[str]:
    """Distinct filenames that pass the start-date filter, first-seen order.

    With a start date, records whose filename carries no date are not
    counted. Without one, every filename is.
    """
    if start_date is None:
        names = (r.filename for r in records if r.filename)
    else:
        names = (
            r.filename
            for r in records
            if r.filename and r.file_date is not None and r.file_date >= start_date
        )
    return list(dict.fromkeys(names))


def grouped_cases(case_ids: Sequence[int]) -> list[CaseGroup]:
    """Case groups restricted to available ids, empty groups dropped."""
    available = set(case_ids)
    groups = [
        CaseGroup(g.title, tuple(i for i in g.ids if i in available)) for g in CASE_GROUPS
    ]
    return [g for g in groups if g.ids]


class FilterStore(Protocol):
    """Key-value storage for filter selections."""

    def get(self, key: str) -> Any:
        """Stored value for `key`, or `None`."""
        ...

    def set(self, key: str, value: Any) -> None: ...


class MemoryFilterStore:
    """Filter store kept in a dict for the lifetime of the object."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Any:
        return self._values.get(key)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value


class YAMLFilterStore:
    """Filter store persisted as a flat YAML mapping on disk."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            raw = yaml.safe_load(self.path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid filter state file: {self.path}") from e
        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ValueError(f"Invalid filter state file (not a mapping): {self.path}")
        return raw

    def get(self, key: str) -> Any:
        return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        values = self._read()
        values[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(yaml.safe_dump(values, sort_keys=True), encoding="utf-8")


def load_filter_state(store: FilterStore, data: DashboardData) -> FilterState:
    """Restore saved selections, falling back to defaults for stale values.

    Databases no longer present are dropped. A saved case that is no
    longer present, or an unreadable saved date, is replaced by its
    default.
    """
    state = default_filter_state(data)

    saved_dbs = store.get(DB_NAMES_KEY)
    if isinstance(saved_dbs, list):
        available = set(data.db_names)
        state = replace(state, selected_dbs=tuple(d for d in saved_dbs if d in available))

    saved_case = store.get(CASE_KEY)
    if not isinstance(saved_case, bool) and saved_case in data.case_ids:
        state = state.with_case(saved_case)

    try:
        saved_start = _parse_date(store.get(START_DATE_KEY))
    except ValueError:
        logger.warning("Ignoring saved start date %r", store.get(START_DATE_KEY))
        saved_start = None
    if saved_start is not None:
        state = state.with_start_date(saved_start)
    return state


def save_filter_state(store: FilterStore, state: FilterState) -> None:
    for key, value in state.to_dict().items():
        store.set(key, value)
