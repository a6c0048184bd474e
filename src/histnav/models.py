from enum import Enum
from typing import Generic, TypeVar

from msgspec import Struct, field

T = TypeVar("T")


class Mode(str, Enum):
    EDITING = "editing"
    PREVIEWING = "previewing"


class Direction(str, Enum):
    OLDER = "older"
    NEWER = "newer"


class LineKind(str, Enum):
    HEADER = "header"
    CONTEXT = "context"
    ADDITION = "addition"
    DELETION = "deletion"


class ViewMode(str, Enum):
    CHANGES = "changes"
    FILES = "files"


class LoadStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class VersionEntry(Struct, frozen=True, rename="camel"):
    """
    A saved workspace state as reported by the versioning service.

    The service speaks camelCase and calls the author field `email`.
    """

    sha: str
    message: str
    timestamp: int
    author: str = field(default="", name="email")
    is_user_version: bool = False
    is_initial: bool = False


class VersionFlags(Struct, frozen=True):
    is_head: bool
    is_initial: bool

    @property
    def protected(self) -> bool:
        return self.is_head or self.is_initial


class FileStat(Struct, frozen=True):
    path: str
    additions: int = 0
    deletions: int = 0


class DiffPayload(Struct, frozen=True):
    diff: str
    files: list[FileStat] = field(default_factory=list)


class TreePayload(Struct, frozen=True):
    files: list[str] = field(default_factory=list)


class CreateResult(Struct, frozen=True):
    sha: str | None = None
    note: str | None = None


class DiffLine(Struct, frozen=True):
    kind: LineKind
    text: str
    old_line_number: int | None = None
    new_line_number: int | None = None


class DiffHunk(Struct, frozen=True):
    """
    All changed lines of one file.

    `additions`/`deletions` are the service-reported stats for the file; the
    line list is for rendering only and is never used to recompute them.
    """

    file: str
    additions: int
    deletions: int
    lines: list[DiffLine] = field(default_factory=list)


class FileTreeNode(Struct):
    name: str
    is_file: bool = False
    children: dict[str, "FileTreeNode"] = field(default_factory=dict)


class NavigatorState(Struct, frozen=True):
    mode: Mode = Mode.EDITING
    active_sha: str | None = None
    project_id: str | None = None
    versions: tuple[VersionEntry, ...] = ()

    @property
    def is_previewing(self) -> bool:
        return self.mode is Mode.PREVIEWING


class RequestToken(Struct, frozen=True):
    """Tags an in-flight collaborator call with what was current when it was issued."""

    seq: int
    project_id: str
    sha: str | None = None


# Collaborator response variants


class Ok(Struct, Generic[T], frozen=True):
    value: T


class Failure(Struct, frozen=True):
    message: str


class Unavailable(Struct, frozen=True):
    message: str = "Version control is not available"


# Editor content sources


class LiveContent(Struct, frozen=True, tag="live"):
    pass


class VersionContent(Struct, frozen=True, tag="version"):
    sha: str
    project_id: str


type ContentSource = LiveContent | VersionContent
