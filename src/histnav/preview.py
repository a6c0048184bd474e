import asyncio
from collections.abc import Coroutine
from typing import Any, Literal

from loguru import logger
from msgspec import Struct, field

from histnav.collaborators import EditorSurface, VersioningBackend, guarded_call
from histnav.diffing.parser import parse_diff_to_hunks
from histnav.file_tree import build_file_tree
from histnav.formatting import describe_changes, short_sha
from histnav.models import (
    DiffHunk,
    Failure,
    FileTreeNode,
    LiveContent,
    LoadStatus,
    NavigatorState,
    Ok,
    RequestToken,
    VersionContent,
    ViewMode,
)
from histnav.navigator import VersionNavigator

DIFF_ERROR = "Failed to load diff"
TREE_ERROR = "File tree unavailable"

type FetchKind = Literal["diff", "tree"]


class PreviewView(Struct):
    """What the preview panel shows for the active version."""

    sha: str
    diff_status: LoadStatus = LoadStatus.IDLE
    hunks: list[DiffHunk] = field(default_factory=list)
    diff_error: str | None = None
    tree_status: LoadStatus = LoadStatus.IDLE
    tree: FileTreeNode | None = None
    tree_error: str | None = None


class PreviewCoordinator:
    """
    Keeps the editor and the preview panel in step with a VersionNavigator.

    While a version is previewed the coordinator owns the editor's read-only
    flag. Diff data is fetched on every change of previewed version, tree data
    only while the files view is active. A response is applied only if it
    answers the most recent request of its kind for the still-active version;
    anything else is discarded, the underlying call is never aborted.

    Fetches run as tasks on the running event loop.
    """

    def __init__(
        self,
        navigator: VersionNavigator,
        backend: VersioningBackend,
        editor: EditorSurface,
        view_mode: ViewMode = ViewMode.CHANGES,
    ) -> None:
        self._navigator = navigator
        self._backend = backend
        self._editor = editor
        self._view_mode = view_mode
        self._owns_editor = False
        self._latest: dict[FetchKind, int] = {"diff": 0, "tree": 0}
        self._tasks: set[asyncio.Task[None]] = set()
        self.view: PreviewView | None = None

        self._unsubscribe = navigator.subscribe(self._on_transition)
        if navigator.is_previewing:
            self._on_transition(NavigatorState(project_id=navigator.project_id), navigator.state)

    @property
    def view_mode(self) -> ViewMode:
        return self._view_mode

    @property
    def summary(self) -> str | None:
        match self.view:
            case None:
                return None
            case PreviewView(diff_status=LoadStatus.LOADED, hunks=hunks):
                return describe_changes(len(hunks))
            case PreviewView(diff_status=LoadStatus.FAILED, diff_error=error):
                return error
            case _:
                return "Loading diff..."

    def set_view_mode(self, mode: ViewMode) -> None:
        """Switches between the changes and files views, fetching the tree the first time it is needed."""
        self._view_mode = mode
        if (
            mode is ViewMode.FILES
            and self.view is not None
            and self.view.tree_status in (LoadStatus.IDLE, LoadStatus.FAILED)
        ):
            self._request_tree(self.view.sha)

    async def settle(self) -> None:
        """Waits until every outstanding fetch has completed."""
        while self._tasks:
            _ = await asyncio.gather(*self._tasks)

    def close(self) -> None:
        """Stops following the navigator and hands the editor back."""
        self._unsubscribe()
        if self._owns_editor or self.view is not None:
            self._show_live()

    # ---------- Transitions ----------

    def _on_transition(self, previous: NavigatorState, current: NavigatorState) -> None:
        if current.is_previewing and current.active_sha is not None:
            unchanged = (
                previous.is_previewing
                and previous.active_sha == current.active_sha
                and self.view is not None
                and self.view.sha == current.active_sha
            )
            if not unchanged:
                self._show_version(current.active_sha)
        elif previous.is_previewing or self._owns_editor:
            self._show_live()

    def _show_version(self, sha: str) -> None:
        if not self._owns_editor:
            self._editor.set_read_only(True)
            self._owns_editor = True
        self._editor.set_displayed_content(VersionContent(sha=sha, project_id=self._navigator.project_id))

        self.view = PreviewView(sha=sha)
        self._request_diff(sha)
        if self._view_mode is ViewMode.FILES:
            self._request_tree(sha)

    def _show_live(self) -> None:
        self.view = None
        if self._owns_editor:
            self._editor.set_read_only(False)
            self._owns_editor = False
        self._editor.set_displayed_content(LiveContent())

    # ---------- Fetching ----------

    def _request_diff(self, sha: str) -> None:
        token = self._issue("diff", sha)
        if self.view is not None:
            self.view.diff_status = LoadStatus.LOADING
            self.view.diff_error = None
        self._spawn(self._load_diff(token))

    def _request_tree(self, sha: str) -> None:
        token = self._issue("tree", sha)
        if self.view is not None:
            self.view.tree_status = LoadStatus.LOADING
            self.view.tree_error = None
        self._spawn(self._load_tree(token))

    def _issue(self, kind: FetchKind, sha: str) -> RequestToken:
        token = self._navigator.issue_token(sha)
        self._latest[kind] = token.seq
        logger.debug("Requesting {} for {} (request {})", kind, short_sha(sha), token.seq)
        return token

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _is_current(self, kind: FetchKind, token: RequestToken) -> bool:
        return (
            self._latest[kind] == token.seq
            and self._navigator.is_live(token)
            and self._navigator.active_sha == token.sha
            and self.view is not None
            and self.view.sha == token.sha
        )

    async def _load_diff(self, token: RequestToken) -> None:
        sha = token.sha or ""
        result = await guarded_call(lambda: self._backend.get_diff(sha, token.project_id), DIFF_ERROR)
        if not self._is_current("diff", token) or self.view is None:
            logger.debug("Dropping stale diff for {} (request {})", short_sha(sha), token.seq)
            return

        match result:
            case Ok(value=payload):
                self.view.hunks = parse_diff_to_hunks(payload.diff, payload.files)
                self.view.diff_status = LoadStatus.LOADED
            case Failure():
                self.view.hunks = []
                self.view.diff_status = LoadStatus.FAILED
                self.view.diff_error = DIFF_ERROR

    async def _load_tree(self, token: RequestToken) -> None:
        sha = token.sha or ""
        result = await guarded_call(lambda: self._backend.get_tree(sha, token.project_id), TREE_ERROR)
        if not self._is_current("tree", token) or self.view is None:
            logger.debug("Dropping stale tree for {} (request {})", short_sha(sha), token.seq)
            return

        match result:
            case Ok(value=payload):
                self.view.tree = build_file_tree(payload.files)
                self.view.tree_status = LoadStatus.LOADED
            case Failure():
                self.view.tree = None
                self.view.tree_status = LoadStatus.FAILED
                self.view.tree_error = TREE_ERROR
