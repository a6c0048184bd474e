from collections.abc import Callable, Sequence
from itertools import count
from typing import Literal

from loguru import logger

from histnav.collaborators import VersioningBackend, guarded_call
from histnav.exceptions import GuardViolationError, NavigationError, OperationInProgressError
from histnav.formatting import short_sha
from histnav.models import (
    CreateResult,
    Direction,
    Failure,
    Mode,
    NavigatorState,
    Ok,
    RequestToken,
    Unavailable,
    VersionEntry,
    VersionFlags,
)

type Listener = Callable[[NavigatorState, NavigatorState], None]
type Operation = Literal["rollback", "delete"]


class VersionNavigator:
    """
    The state machine for browsing and mutating a project's version history.

    Lives for one project session (see `reset` for project switches). Local
    transitions (`start_preview`, `navigate`, `stop_preview`) apply immediately;
    mutations (`rollback`, `delete`, `create_version`) change local state
    only after the versioning service confirms them. Every service call carries a
    RequestToken, and results whose token is no longer current are dropped.

    Collaborator failures are recorded in `error` (dismissable) and never raised.
    Contract violations (unknown sha, protected version, duplicate in-flight
    mutation) raise before any service call is made.
    """

    def __init__(self, backend: VersioningBackend, project_id: str) -> None:
        self._backend = backend
        self._project_id = project_id
        self._mode = Mode.EDITING
        self._active_sha: str | None = None
        self._versions: tuple[VersionEntry, ...] = ()
        self._positions: dict[str, int] = {}
        self._flags: dict[str, VersionFlags] = {}
        self._in_flight: dict[str, tuple[Operation, int]] = {}
        self._listeners: list[Listener] = []
        self._seq = count(1)
        self._last_seq = 0
        self._reset_seq = 0
        self._latest_list_seq = 0

        self.error: str | None = None
        self.unavailable = False

    # ---------- State ----------

    @property
    def state(self) -> NavigatorState:
        return NavigatorState(
            mode=self._mode,
            active_sha=self._active_sha,
            project_id=self._project_id,
            versions=self._versions,
        )

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def backend(self) -> VersioningBackend:
        return self._backend

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def active_sha(self) -> str | None:
        return self._active_sha

    @property
    def versions(self) -> tuple[VersionEntry, ...]:
        return self._versions

    @property
    def is_previewing(self) -> bool:
        return self._mode is Mode.PREVIEWING

    @property
    def active_version(self) -> VersionEntry | None:
        if self._active_sha is None:
            return None
        return self._versions[self._positions[self._active_sha]]

    def index_of(self, sha: str) -> int | None:
        return self._positions.get(sha)

    def flags_for(self, sha: str) -> VersionFlags | None:
        return self._flags.get(sha)

    def is_busy(self, sha: str) -> bool:
        return sha in self._in_flight

    @property
    def has_older(self) -> bool:
        index = self._active_index()
        return index is not None and index < len(self._versions) - 1

    @property
    def has_newer(self) -> bool:
        index = self._active_index()
        return index is not None and index > 0

    def can_rollback(self, sha: str) -> bool:
        return self._is_mutable(sha)

    def can_delete(self, sha: str) -> bool:
        return self._is_mutable(sha)

    def dismiss_error(self) -> None:
        self.error = None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Registers a listener called with (previous, current) after every state change.
        Returns a function that removes it again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def issue_token(self, sha: str | None) -> RequestToken:
        """Tags a new request with the current project and a fresh sequence number."""
        self._last_seq = next(self._seq)
        return RequestToken(seq=self._last_seq, project_id=self._project_id, sha=sha)

    def is_live(self, token: RequestToken) -> bool:
        """False once the project the token was issued for has been reset or switched."""
        return token.project_id == self._project_id and token.seq > self._reset_seq

    # ---------- Local transitions ----------

    def start_preview(self, sha: str) -> None:
        if sha not in self._positions:
            raise NavigationError(f"Version {short_sha(sha)} is not in the version list.")
        if sha in self._in_flight:
            raise OperationInProgressError(f"Version {short_sha(sha)} is being modified.")

        previous = self.state
        self._mode = Mode.PREVIEWING
        self._active_sha = sha
        self._emit(previous)

    def navigate(self, direction: Direction) -> bool:
        """
        Moves the preview to the adjacent version. Returns False (and changes
        nothing) at either end of the list, outside preview, or when either end
        of the move is being modified.
        """
        index = self._active_index()
        if index is None or self._active_sha is None:
            return False

        target_index = index + 1 if direction is Direction.OLDER else index - 1
        if not 0 <= target_index < len(self._versions):
            return False

        target = self._versions[target_index].sha
        if self._active_sha in self._in_flight or target in self._in_flight:
            logger.debug("Navigation {} rejected: a mutation is in flight", direction.value)
            return False

        previous = self.state
        self._active_sha = target
        self._emit(previous)
        return True

    def stop_preview(self) -> None:
        if self._mode is Mode.EDITING:
            return
        previous = self.state
        self._mode = Mode.EDITING
        self._active_sha = None
        self._emit(previous)

    def reset(self, project_id: str) -> None:
        """Starts a fresh session for `project_id`; results still pending for the old one are dropped."""
        previous = self.state
        self._project_id = project_id
        self._mode = Mode.EDITING
        self._active_sha = None
        self._set_versions(())
        self._in_flight.clear()
        self._reset_seq = self._last_seq
        self.error = None
        self.unavailable = False
        self._emit(previous)

    # ---------- Service-backed operations ----------

    async def refresh(self) -> bool:
        """
        Reloads the version list. Returns True when a new list was applied.

        Only the most recently issued refresh may apply its result. If the
        previewed version is gone from the new list, the preview ends.
        """
        token = self.issue_token(None)
        self._latest_list_seq = token.seq
        result = await guarded_call(
            lambda: self._backend.list_versions(token.project_id), "Failed to load versions"
        )

        if not self.is_live(token) or token.seq != self._latest_list_seq:
            logger.debug("Dropping stale version list (request {})", token.seq)
            return False

        match result:
            case Ok(value=entries):
                previous = self.state
                self.unavailable = False
                self._set_versions(tuple(entries))
                self._emit(previous)
                return True
            case Unavailable(message=message):
                logger.info("Version control unavailable for {}: {}", token.project_id, message)
                self.unavailable = True
                return False
            case Failure(message=message):
                self.error = message or "Failed to load versions"
                return False
            case _:
                return False

    async def rollback(self, sha: str | None = None) -> bool:
        """
        Restores the live workspace to `sha` (default: the previewed version).

        On success the preview ends and the list is reloaded. On failure the state
        is left untouched and the reason is stored in `error`.
        """
        target = self._resolve_mutation_target(sha, "rollback")
        self.error = None
        token = self.issue_token(target)
        self._in_flight[target] = ("rollback", token.seq)
        try:
            result = await guarded_call(lambda: self._backend.rollback(target, token.project_id), "Rollback failed")
        finally:
            self._release(target, token)

        if not self.is_live(token):
            return False

        match result:
            case Failure(message=message):
                logger.warning("Rollback to {} failed: {}", short_sha(target), message)
                self.error = message or "Rollback failed"
                return False
            case _:
                pass

        logger.info("Rolled back to {}", short_sha(target))
        self.stop_preview()
        _ = await self.refresh()
        return True

    async def delete(self, sha: str | None = None) -> bool:
        """
        Deletes `sha` (default: the previewed version).

        When `sha` is being previewed, the preview first moves to the nearest older
        version not itself being modified, else the nearest such newer one, else
        ends; only then is the service asked to delete. If that call fails the
        preview stays where it moved to.
        """
        target = self._resolve_mutation_target(sha, "delete")
        self.error = None
        token = self.issue_token(target)
        self._in_flight[target] = ("delete", token.seq)
        try:
            if self._mode is Mode.PREVIEWING and self._active_sha == target:
                self._step_off(target)
            result = await guarded_call(
                lambda: self._backend.delete_version(target, token.project_id), "Delete failed"
            )
        finally:
            self._release(target, token)

        if not self.is_live(token):
            return False

        match result:
            case Failure(message=message):
                logger.warning("Deleting {} failed: {}", short_sha(target), message)
                self.error = message or "Delete failed"
                return False
            case _:
                pass

        logger.info("Deleted version {}", short_sha(target))
        _ = await self.refresh()
        return True

    async def create_version(self, label: str | None = None) -> CreateResult | None:
        """
        Saves the live workspace as a new version and reloads the list.

        Returns None when the request failed. A result whose `sha` is None means
        there was nothing to save; its note (default "No changes to save") is
        also shown through `error`.
        """
        if self._mode is Mode.PREVIEWING:
            raise GuardViolationError("Cannot save a version while previewing.")

        self.error = None
        token = self.issue_token(None)
        result = await guarded_call(
            lambda: self._backend.create_version(token.project_id, label), "Failed to save version"
        )
        if not self.is_live(token):
            return None

        match result:
            case Ok(value=CreateResult() as created):
                pass
            case Unavailable():
                self.unavailable = True
                return None
            case Failure(message=message):
                self.error = message or "Failed to save version"
                return None
            case _:
                return None

        if created.sha is None:
            self.error = created.note or "No changes to save"
        else:
            logger.info("Saved version {}", short_sha(created.sha))
        _ = await self.refresh()
        return created

    # ---------- Internal ----------

    def _emit(self, previous: NavigatorState) -> None:
        current = self.state
        if current == previous:
            return
        logger.debug(
            "Navigator {} -> {} ({})",
            previous.mode.value,
            current.mode.value,
            short_sha(current.active_sha) if current.active_sha else "live",
        )
        for listener in list(self._listeners):
            listener(previous, current)

    def _active_index(self) -> int | None:
        if self._mode is not Mode.PREVIEWING or self._active_sha is None:
            return None
        return self._positions.get(self._active_sha)

    def _is_mutable(self, sha: str) -> bool:
        flags = self._flags.get(sha)
        return flags is not None and not flags.protected and not self.unavailable and sha not in self._in_flight

    def _set_versions(self, versions: Sequence[VersionEntry]) -> None:
        # Head/initial protection is resolved here, once per fetched list.
        self._versions = tuple(versions)
        self._positions = {}
        self._flags = {}
        for index, entry in enumerate(self._versions):
            if entry.sha in self._positions:
                continue
            self._positions[entry.sha] = index
            self._flags[entry.sha] = VersionFlags(is_head=index == 0, is_initial=entry.is_initial)

        if self._active_sha is not None and self._active_sha not in self._positions:
            logger.info("Previewed version {} is no longer listed; leaving preview", short_sha(self._active_sha))
            self._mode = Mode.EDITING
            self._active_sha = None

    def _resolve_mutation_target(self, sha: str | None, operation: Operation) -> str:
        target = sha if sha is not None else self._active_sha
        if target is None:
            raise NavigationError(f"No version selected to {operation}.")

        flags = self._flags.get(target)
        if flags is None:
            raise NavigationError(f"Version {short_sha(target)} is not in the version list.")
        if flags.protected:
            which = "initial" if flags.is_initial else "latest"
            logger.warning("Refusing {} of the {} version {}", operation, which, short_sha(target))
            raise GuardViolationError(f"Cannot {operation} the {which} version.")
        if target in self._in_flight:
            raise OperationInProgressError(
                f"A {self._in_flight[target][0]} of version {short_sha(target)} is already in progress."
            )
        return target

    def _release(self, sha: str, token: RequestToken) -> None:
        # A call from before a reset must not clear a marker set by a newer call.
        entry = self._in_flight.get(sha)
        if entry is not None and entry[1] == token.seq:
            del self._in_flight[sha]

    def _step_off(self, sha: str) -> None:
        # `sha` itself is in flight, so it is never chosen.
        index = self._positions[sha]
        older = (v.sha for v in self._versions[index + 1 :] if v.sha not in self._in_flight)
        newer = (v.sha for v in reversed(self._versions[:index]) if v.sha not in self._in_flight)
        landing = next(older, None) or next(newer, None)

        previous = self.state
        if landing is None:
            self._mode = Mode.EDITING
            self._active_sha = None
        else:
            self._active_sha = landing
        self._emit(previous)
