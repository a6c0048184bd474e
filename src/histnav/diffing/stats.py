from histnav.diffing.parser import FILE_MARKER, extract_file_path
from histnav.models import FileStat


def compute_file_stats(raw_diff: str) -> list[FileStat]:
    """
    Counts added and removed lines per file section of a unified diff.

    Used where no service-reported stats exist, e.g. rendering a local patch
    file. `+++`/`---` file headers are not counted.
    """
    files: list[FileStat] = []
    current: str | None = None
    additions = 0
    deletions = 0

    for line in raw_diff.split("\n"):
        if line.startswith(FILE_MARKER):
            if current is not None:
                files.append(FileStat(path=current, additions=additions, deletions=deletions))
            current = extract_file_path(line) or None
            additions = 0
            deletions = 0
        elif line.startswith("+") and not line.startswith("+++"):
            additions += 1
        elif line.startswith("-") and not line.startswith("---"):
            deletions += 1

    if current is not None:
        files.append(FileStat(path=current, additions=additions, deletions=deletions))
    return files
