from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from rich.console import Console
from rich.text import Text

from histnav.backends.http import HttpVersioningBackend
from histnav.config import load_settings
from histnav.exceptions import (
    CollaboratorUnavailableError,
    ConfigurationError,
    NavigationError,
    RequestFailedError,
)
from histnav.formatting import format_relative_time, short_sha, strip_commit_prefix
from histnav.models import ContentSource, VersionContent
from histnav.navigator import VersionNavigator


class BannerEditor:
    """
    Editor surface for the terminal: announces the version being shown,
    the way the workspace's preview banner does.
    """

    def __init__(self, console: Console, navigator: VersionNavigator) -> None:
        self.console = console
        self.navigator = navigator
        self.read_only = False

    def set_read_only(self, read_only: bool) -> None:
        self.read_only = read_only

    def set_displayed_content(self, source: ContentSource) -> None:
        match source:
            case VersionContent(sha=sha):
                index = self.navigator.index_of(sha)
                entry = self.navigator.versions[index] if index is not None else None
                banner = Text.assemble(("Viewing: ", "bold yellow"))
                if entry is not None:
                    banner.append(strip_commit_prefix(entry.message))
                    banner.append(f"  {short_sha(sha)}", style="dim")
                    banner.append(f"  {format_relative_time(entry.timestamp)}", style="dim")
                else:
                    banner.append(short_sha(sha))
                self.console.print(banner)
            case _:
                pass


def ensure_usable(navigator: VersionNavigator) -> None:
    if navigator.unavailable:
        raise CollaboratorUnavailableError("Version control is not available for this project.")
    if navigator.error:
        raise RequestFailedError(navigator.error)


def resolve_sha(navigator: VersionNavigator, ref: str) -> str:
    """Resolves a full sha or a unique sha prefix against the loaded version list."""
    matches = [v.sha for v in navigator.versions if v.sha.startswith(ref)]
    if not matches:
        raise NavigationError(f"No version matches '{ref}'.")
    if len(set(matches)) > 1:
        raise NavigationError(f"'{ref}' is ambiguous; it matches {len(set(matches))} versions.")
    return matches[0]


@asynccontextmanager
async def open_navigator(project: str | None) -> AsyncIterator[VersionNavigator]:
    """Connects to the configured versioning server and loads the project's versions."""
    settings = load_settings()
    project_id = project or settings.project_id
    if not project_id:
        raise ConfigurationError("No project given. Pass --project or set HISTNAV_PROJECT_ID.")

    async with HttpVersioningBackend(settings.server_url, timeout=settings.timeout) as backend:
        navigator = VersionNavigator(backend, project_id)
        _ = await navigator.refresh()
        ensure_usable(navigator)
        yield navigator
