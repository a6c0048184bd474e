import re
from collections.abc import Iterable

from loguru import logger

from histnav.models import DiffHunk, DiffLine, FileStat, LineKind

FILE_MARKER = "diff --git"

_FILE_PATH_RE = re.compile(r"^diff --git a/(.+) b/")
_HUNK_RANGE_RE = re.compile(r"^@@ -(\d+)(?:,\d+)? \+(\d+)(?:,\d+)? @@")
_NO_NEWLINE_MARKER = "\\ No newline at end of file"


def _split_lines(raw_diff: str) -> list[str]:
    # Only "\n" separates lines; content may legitimately contain other line breaks.
    lines = raw_diff.split("\n")
    if lines and lines[-1] == "":
        _ = lines.pop()
    return lines


def _index_stats(file_stats: Iterable[FileStat]) -> dict[str, FileStat]:
    by_path: dict[str, FileStat] = {}
    for stat in file_stats:
        _ = by_path.setdefault(stat.path, stat)
    return by_path


def extract_file_path(marker_line: str) -> str:
    """Returns the path after the `a/` prefix of a file marker, or '' when it cannot be found."""
    match = _FILE_PATH_RE.match(marker_line)
    return match.group(1) if match else ""


def parse_hunk_range(header_line: str) -> tuple[int, int]:
    """
    Returns the starting (old, new) line numbers of an `@@ -a,b +c,d @@` header.
    Unparsable headers yield (0, 0).
    """
    match = _HUNK_RANGE_RE.match(header_line)
    if not match:
        return 0, 0
    return int(match.group(1)), int(match.group(2))


def parse_diff_to_hunks(raw_diff: str, file_stats: Iterable[FileStat]) -> list[DiffHunk]:
    """
    Converts concatenated per-file unified diff sections into one DiffHunk per file.

    Never raises: anything that is not a file marker, a range header, or a content
    line inside a range is ignored, so one corrupt section cannot stop the rest
    from rendering. Addition/deletion totals come from `file_stats` (0/0 if the
    file is missing there), never from the parsed lines.
    """
    stats = _index_stats(file_stats)
    hunks: list[DiffHunk] = []
    current: DiffHunk | None = None
    in_range = False
    old_line = 0
    new_line = 0
    skipped = 0

    for line in _split_lines(raw_diff):
        if line.startswith(FILE_MARKER):
            if current is not None:
                hunks.append(current)
            path = extract_file_path(line)
            stat = stats.get(path)
            current = DiffHunk(
                file=path,
                additions=stat.additions if stat else 0,
                deletions=stat.deletions if stat else 0,
            )
            in_range = False
            continue

        if current is None:
            skipped += 1
            continue

        if line.startswith("@@"):
            old_line, new_line = parse_hunk_range(line)
            current.lines.append(DiffLine(kind=LineKind.HEADER, text=line))
            in_range = True
            continue

        # Metadata (index, mode, rename, ---/+++) only ever precedes the first range header.
        if not in_range or line.startswith(_NO_NEWLINE_MARKER):
            continue

        if line.startswith("+"):
            current.lines.append(DiffLine(kind=LineKind.ADDITION, text=line[1:], new_line_number=new_line))
            new_line += 1
        elif line.startswith("-"):
            current.lines.append(DiffLine(kind=LineKind.DELETION, text=line[1:], old_line_number=old_line))
            old_line += 1
        else:
            text = line[1:] if line.startswith(" ") else line
            current.lines.append(
                DiffLine(kind=LineKind.CONTEXT, text=text, old_line_number=old_line, new_line_number=new_line)
            )
            old_line += 1
            new_line += 1

    if current is not None:
        hunks.append(current)

    if skipped:
        logger.debug("Ignored {} line(s) before the first file marker", skipped)
    return hunks


def hunk_line_totals(hunk: DiffHunk) -> tuple[int, int]:
    """Counts rendered addition and deletion lines. For display only."""
    added = sum(1 for line in hunk.lines if line.kind is LineKind.ADDITION)
    deleted = sum(1 for line in hunk.lines if line.kind is LineKind.DELETION)
    return added, deleted
