# pyright: standard

import asyncio
import hashlib
from collections.abc import Callable

from histnav.collaborators import CreateOutcome, DiffResult, ListResult, MutationResult, TreeResult
from histnav.models import (
    ContentSource,
    CreateResult,
    DiffPayload,
    Ok,
    TreePayload,
    VersionEntry,
)

BASE_TIMESTAMP = 1_700_000_000
PROJECT_ID = "proj-1"


def make_sha(label: str) -> str:
    return hashlib.sha1(label.encode()).hexdigest()


def make_versions(count: int = 3) -> list[VersionEntry]:
    """Newest-first list: index 0 is the head, the last entry is the initial version."""
    versions: list[VersionEntry] = []
    for i in range(count):
        is_initial = i == count - 1
        versions.append(
            VersionEntry(
                sha=make_sha(f"v{i}"),
                author="user@pagegen.local",
                message="auto: Initial commit" if is_initial else f"auto: change {count - 1 - i}",
                timestamp=BASE_TIMESTAMP - i * 60,
                is_user_version=False,
                is_initial=is_initial,
            )
        )
    return versions


class FakeBackend:
    """
    Scriptable versioning collaborator.

    Calls are recorded in `calls`. A call blocks while `gates[key]` is an unset
    asyncio.Event, where key is the operation name ("list", "rollback",
    "delete", "create") or "diff:<sha>" / "tree:<sha>".
    """

    def __init__(self, versions: list[VersionEntry] | None = None) -> None:
        self.versions = list(versions or [])
        self.calls: list[tuple[str, str | None]] = []
        self.gates: dict[str, asyncio.Event] = {}
        self.list_result: ListResult | None = None
        self.create_result: CreateOutcome = Ok(CreateResult(sha=None, note="No changes to save"))
        self.rollback_result: MutationResult = Ok(None)
        self.delete_result: MutationResult = Ok(None)
        self.diffs: dict[str, DiffResult] = {}
        self.trees: dict[str, TreeResult] = {}
        self.before_call: Callable[[str, str | None], None] | None = None
        self.raise_on: set[str] = set()
        self.closed = False

    async def __aenter__(self) -> "FakeBackend":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.closed = True

    def gate(self, key: str) -> asyncio.Event:
        event = asyncio.Event()
        self.gates[key] = event
        return event

    def count(self, operation: str) -> int:
        return sum(1 for name, _ in self.calls if name == operation)

    async def _enter(self, operation: str, sha: str | None, gate_key: str) -> None:
        self.calls.append((operation, sha))
        if self.before_call is not None:
            self.before_call(operation, sha)
        if gate := self.gates.get(gate_key):
            _ = await gate.wait()
        if operation in self.raise_on:
            raise ConnectionError(f"{operation} exploded")

    async def list_versions(self, project_id: str) -> ListResult:
        await self._enter("list", None, "list")
        if self.list_result is not None:
            return self.list_result
        return Ok(list(self.versions))

    async def create_version(self, project_id: str, label: str | None = None) -> CreateOutcome:
        await self._enter("create", label, "create")
        match self.create_result:
            case Ok(value=CreateResult(sha=str(sha))):
                self.versions.insert(
                    0, VersionEntry(sha=sha, message=f"user: {label or 'Saved'}", timestamp=BASE_TIMESTAMP + 60)
                )
            case _:
                pass
        return self.create_result

    async def get_diff(self, sha: str, project_id: str) -> DiffResult:
        await self._enter("diff", sha, f"diff:{sha}")
        return self.diffs.get(sha, Ok(DiffPayload(diff="", files=[])))

    async def get_tree(self, sha: str, project_id: str) -> TreeResult:
        await self._enter("tree", sha, f"tree:{sha}")
        return self.trees.get(sha, Ok(TreePayload(files=[])))

    async def rollback(self, sha: str, project_id: str) -> MutationResult:
        await self._enter("rollback", sha, "rollback")
        return self.rollback_result

    async def delete_version(self, sha: str, project_id: str) -> MutationResult:
        await self._enter("delete", sha, "delete")
        if isinstance(self.delete_result, Ok):
            self.versions = [v for v in self.versions if v.sha != sha]
        return self.delete_result


class RecordingEditor:
    def __init__(self) -> None:
        self.read_only = False
        self.content: ContentSource | None = None
        self.events: list[tuple[str, object]] = []

    def set_read_only(self, read_only: bool) -> None:
        self.read_only = read_only
        self.events.append(("read_only", read_only))

    def set_displayed_content(self, source: ContentSource) -> None:
        self.content = source
        self.events.append(("content", source))


def single_file_diff(path: str, body: str) -> str:
    return f"diff --git a/{path} b/{path}\nindex 1111111..2222222 100644\n--- a/{path}\n+++ b/{path}\n{body}"
