"""Filename helpers for VectorDBBench result layouts."""

from __future__ import annotations

import logging
import re
from datetime import date
from pathlib import Path

logger = logging.getLogger(__name__)

RESULT_PREFIX = "result_"
RESULT_SUFFIX = ".json"

_DATE_TOKEN = re.compile(r"[0-9]{8}")


def is_result_filename(name: str | Path) -> bool:
    """Whether a path's base name follows the `result_*.json` convention."""
    base = Path(name).name
    return base.startswith(RESULT_PREFIX) and base.endswith(RESULT_SUFFIX)


def extract_date_from_filename(filename: str | Path) -> date | None:
    """Extract a `YYYYMMDD` date from the first 8-digit run in a filename.

    A longer digit run contributes its first eight digits, e.g.
    `result_2024051299_milvus.json` still yields 2024-05-12.

    Args:
        filename: File name or path. Only the base name is searched.

    Returns:
        The calendar date, or `None` when the name holds no 8-digit run
        or the digits do not form a valid date (e.g. month 13).
    """
    base = Path(filename).name
    match = _DATE_TOKEN.search(base)
    if match is None:
        return None
    token = match.group(0)
    try:
        return date(int(token[:4]), int(token[4:6]), int(token[6:8]))
    except ValueError:
        logger.debug("Ignoring implausible date token %r in %s", token, base)
        return None
