import sys
from pathlib import Path

from rich.console import Console

from histnav.diffing.parser import parse_diff_to_hunks
from histnav.diffing.render import render_hunks
from histnav.diffing.stats import compute_file_stats
from histnav.exceptions import InvalidInputError


def render_diff(file_path: Path | None) -> None:
    if file_path is None:
        if sys.stdin.isatty():
            raise InvalidInputError("No diff given. Pass a file or pipe a diff to stdin.")
        raw_diff = sys.stdin.read()
    else:
        try:
            raw_diff = file_path.read_text(encoding="utf-8")
        except OSError as e:
            raise InvalidInputError(f"Could not read {file_path}: {e.strerror or e}") from e

    hunks = parse_diff_to_hunks(raw_diff, compute_file_stats(raw_diff))
    Console().print(render_hunks(hunks))
