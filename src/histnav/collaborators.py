"""
Contracts for the two external collaborators.

The versioning service owns all storage; the editor surface only exposes a
read-only toggle and the content it displays.
"""

from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable

from loguru import logger

from histnav.models import (
    ContentSource,
    CreateResult,
    DiffPayload,
    Failure,
    Ok,
    TreePayload,
    Unavailable,
    VersionEntry,
)

type ListResult = Ok[list[VersionEntry]] | Unavailable | Failure
type CreateOutcome = Ok[CreateResult] | Unavailable | Failure
type DiffResult = Ok[DiffPayload] | Failure
type TreeResult = Ok[TreePayload] | Failure
type MutationResult = Ok[None] | Failure


@runtime_checkable
class VersioningBackend(Protocol):
    async def list_versions(self, project_id: str) -> ListResult:
        """Newest first; index 0 is the head."""
        ...

    async def create_version(self, project_id: str, label: str | None = None) -> CreateOutcome: ...

    async def get_diff(self, sha: str, project_id: str) -> DiffResult: ...

    async def get_tree(self, sha: str, project_id: str) -> TreeResult: ...

    async def rollback(self, sha: str, project_id: str) -> MutationResult: ...

    async def delete_version(self, sha: str, project_id: str) -> MutationResult: ...


@runtime_checkable
class EditorSurface(Protocol):
    def set_read_only(self, read_only: bool) -> None: ...

    def set_displayed_content(self, source: ContentSource) -> None: ...


async def guarded_call[R](call: Callable[[], Awaitable[R]], fallback: str) -> R | Failure:
    """
    Awaits a collaborator call, turning any exception it raises into a Failure.

    Collaborator errors must never escape the navigator or the coordinator.
    """
    try:
        return await call()
    except Exception as e:
        logger.opt(exception=e).warning("Collaborator call failed: {}", fallback)
        return Failure(message=fallback)
