from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from vdbbench_dashboard.raw import extract_date_from_filename, is_result_filename


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("result_20240512_run.json", date(2024, 5, 12)),
        ("result_20230101.json", date(2023, 1, 1)),
        ("run_20231231_x_20240101.json", date(2023, 12, 31)),
        ("result_2024051299_milvus.json", date(2024, 5, 12)),
        ("result_latest.json", None),
        ("result_2024_05_12.json", None),
        ("result_20241301_bad_month.json", None),
        ("result_20240230_bad_day.json", None),
    ],
)
def test_extract_date_from_filename(name: str, expected: date | None) -> None:
    assert extract_date_from_filename(name) == expected


def test_extract_date_ignores_directories() -> None:
    path = Path("/data/20240101/result_custom.json")
    assert extract_date_from_filename(path) is None
    assert extract_date_from_filename(Path("/data/x/result_20240102_a.json")) == date(2024, 1, 2)


def test_is_result_filename() -> None:
    assert is_result_filename("result_20240512_run.json")
    assert is_result_filename(Path("/a/b/result_x.json"))
    assert not is_result_filename("results.json")
    assert not is_result_filename("result_20240512_run.json.bak")
    assert not is_result_filename("summary_result_1.json")
