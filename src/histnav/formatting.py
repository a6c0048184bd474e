import re
from datetime import UTC, datetime

from histnav.config import SHORT_SHA_LENGTH

_COMMIT_PREFIX_RE = re.compile(r"^(auto|user):\s*", re.IGNORECASE)


def strip_commit_prefix(message: str) -> str:
    """Removes the service's `auto:`/`user:` marker from a version message."""
    return _COMMIT_PREFIX_RE.sub("", message, count=1)


def short_sha(sha: str, length: int = SHORT_SHA_LENGTH) -> str:
    return sha[:length]


def format_relative_time(timestamp: int, now: datetime | None = None) -> str:
    """
    Formats a unix timestamp (seconds) relative to `now`.

    Under a minute is 'just now', then minutes, hours and days up to a week;
    anything older is shown as a calendar date.
    """
    moment = datetime.fromtimestamp(timestamp, tz=UTC)
    reference = now or datetime.now(UTC)
    mins = int((reference - moment).total_seconds() // 60)
    if mins < 1:
        return "just now"
    if mins < 60:
        return f"{mins}m ago"
    hours = mins // 60
    if hours < 24:
        return f"{hours}h ago"
    days = hours // 24
    if days < 7:
        return f"{days}d ago"
    return moment.date().isoformat()


def describe_changes(file_count: int) -> str:
    if file_count == 0:
        return "No changes in this version"
    return f"{file_count} file{'' if file_count == 1 else 's'} changed"
