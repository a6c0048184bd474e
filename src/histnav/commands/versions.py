import asyncio

from rich.console import Console
from rich.table import Table
from rich.text import Text

from histnav.commands.common import ensure_usable, open_navigator
from histnav.formatting import format_relative_time, short_sha, strip_commit_prefix
from histnav.navigator import VersionNavigator


def _render_table(navigator: VersionNavigator) -> Table:
    table = Table(title="Versions", show_header=True, header_style="bold", box=None, padding=(0, 1))
    table.add_column("#", justify="right")
    table.add_column("SHA", style="dim")
    table.add_column("Message", overflow="ellipsis", min_width=20)
    table.add_column("When", style="dim")
    table.add_column("", style="dim")

    for index, entry in enumerate(navigator.versions):
        flags = navigator.flags_for(entry.sha)
        markers: list[str] = []
        if entry.is_user_version:
            markers.append("[cyan]saved[/cyan]")
        if flags is not None and flags.is_head:
            markers.append("head")
        if flags is not None and flags.is_initial:
            markers.append("initial")
        table.add_row(
            str(index),
            short_sha(entry.sha),
            Text(strip_commit_prefix(entry.message)),
            format_relative_time(entry.timestamp),
            " ".join(markers),
        )
    return table


def list_versions(project: str | None) -> None:
    async def run() -> None:
        async with open_navigator(project) as navigator:
            console = Console()
            if not navigator.versions:
                console.print("No versions yet.")
                return
            console.print(_render_table(navigator))

    asyncio.run(run())


def save(project: str | None, label: str | None) -> None:
    async def run() -> None:
        async with open_navigator(project) as navigator:
            created = await navigator.create_version(label)
            if created is None:
                ensure_usable(navigator)
                return
            if created.sha is None:
                print(created.note or "No changes to save")
                return
            print(f"Saved version {short_sha(created.sha)}.")

    asyncio.run(run())
