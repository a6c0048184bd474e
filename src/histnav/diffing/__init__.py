from .parser import extract_file_path, hunk_line_totals, parse_diff_to_hunks, parse_hunk_range
from .stats import compute_file_stats

__all__ = [
    "compute_file_stats",
    "extract_file_path",
    "hunk_line_totals",
    "parse_diff_to_hunks",
    "parse_hunk_range",
]
