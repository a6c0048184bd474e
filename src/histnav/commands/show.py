import asyncio

from rich.console import Console

from histnav.commands.common import BannerEditor, open_navigator, resolve_sha
from histnav.config import load_settings
from histnav.diffing.render import render_hunks
from histnav.exceptions import RequestFailedError
from histnav.file_tree import render_file_tree
from histnav.formatting import short_sha
from histnav.models import LoadStatus, ViewMode
from histnav.preview import PreviewCoordinator, PreviewView


async def _preview(project: str | None, ref: str, view_mode: ViewMode, console: Console) -> PreviewView:
    async with open_navigator(project) as navigator:
        sha = resolve_sha(navigator, ref)
        coordinator = PreviewCoordinator(
            navigator, navigator.backend, BannerEditor(console, navigator), view_mode=view_mode
        )
        navigator.start_preview(sha)
        await coordinator.settle()
        view = coordinator.view
        coordinator.close()

    if view is None:
        raise RequestFailedError(f"Version {short_sha(sha)} could not be previewed.")
    return view


def show(project: str | None, ref: str, view_mode: ViewMode | None = None) -> None:
    mode = view_mode or load_settings().view_mode
    if mode is ViewMode.FILES:
        tree(project, ref)
        return

    console = Console()
    view = asyncio.run(_preview(project, ref, ViewMode.CHANGES, console))
    if view.diff_status is LoadStatus.FAILED:
        raise RequestFailedError(view.diff_error or "Failed to load diff")
    console.print(render_hunks(view.hunks))


def tree(project: str | None, ref: str) -> None:
    console = Console()
    view = asyncio.run(_preview(project, ref, ViewMode.FILES, console))
    if view.tree is None:
        raise RequestFailedError(view.tree_error or "File tree unavailable")
    console.print(render_file_tree(view.tree, label=short_sha(view.sha)))
