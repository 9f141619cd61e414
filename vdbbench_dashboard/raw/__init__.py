"""Raw layout parsers."""

from vdbbench_dashboard.raw.filename_parser import (
    extract_date_from_filename,
    is_result_filename,
)

__all__ = [
    "extract_date_from_filename",
    "is_result_filename",
]
