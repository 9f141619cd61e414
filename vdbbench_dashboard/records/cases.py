"""VectorDBBench case identifiers and their display labels."""

from __future__ import annotations

from dataclasses import dataclass

CASE_LABELS: dict[int, str] = {
    1: "Capacity (128D)",
    2: "Capacity (960D)",
    3: "Performance (100M, 768D)",
    4: "Performance (10M, 768D)",
    5: "Performance (1M, 768D)",
    6: "Filtering (10M, 768D, 1%)",
    7: "Filtering (1M, 768D, 1%)",
    8: "Filtering (10M, 768D, 99%)",
    9: "Filtering (1M, 768D, 99%)",
    10: "Performance (500K, 1536D)",
    11: "Performance (5M, 1536D)",
    12: "Filtering (500K, 1536D, 1%)",
    13: "Filtering (5M, 1536D, 1%)",
    14: "Filtering (500K, 1536D, 99%)",
    15: "Filtering (5M, 1536D, 99%)",
    50: "Performance (50K, 1536D)",
    100: "Custom",
    101: "Custom Dataset Performance",
}


@dataclass(frozen=True)
class CaseGroup:
    """A titled group of case ids shown together in the case filter."""

    title: str
    ids: tuple[int, ...]


CASE_GROUPS: tuple[CaseGroup, ...] = (
    CaseGroup("Capacity Tests", (2, 1)),
    CaseGroup("768D Performance Tests", (3, 4, 5)),
    CaseGroup("768D Filtering Tests", (6, 7, 8, 9)),
    CaseGroup("1536D Performance Tests", (11, 10, 50)),
    CaseGroup("1536D Filtering Tests", (13, 12, 15, 14)),
    CaseGroup("Custom Tests", (100, 101)),
)


def case_label(case_id: int) -> str | None:
    """Display label for a case id, or `None` for ids outside the catalog."""
    return CASE_LABELS.get(case_id)
