from collections.abc import Sequence

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from histnav.formatting import describe_changes
from histnav.models import DiffHunk, LineKind

_LINE_STYLES = {
    LineKind.ADDITION: ("+", "green"),
    LineKind.DELETION: ("-", "red"),
    LineKind.CONTEXT: (" ", "dim"),
}


def _gutter(number: int | None) -> str:
    return "" if number is None else str(number)


def render_hunk(hunk: DiffHunk) -> Panel:
    """A panel for one file: stats in the title, numbered and colored lines in the body."""
    table = Table(show_header=False, box=None, padding=(0, 1), expand=True)
    table.add_column("old", justify="right", style="dim", no_wrap=True, width=5)
    table.add_column("new", justify="right", style="dim", no_wrap=True, width=5)
    table.add_column("text", no_wrap=True, overflow="ellipsis")

    for line in hunk.lines:
        if line.kind is LineKind.HEADER:
            table.add_row("", "", Text(line.text, style="blue"))
            continue
        marker, style = _LINE_STYLES[line.kind]
        table.add_row(
            _gutter(line.old_line_number),
            _gutter(line.new_line_number),
            Text(f"{marker}{line.text}", style=style),
        )

    title = Text.assemble(
        (hunk.file or "<unknown>", "bold"),
        "  ",
        (f"+{hunk.additions}", "green"),
        " ",
        (f"-{hunk.deletions}", "red"),
    )
    return Panel(table, title=title, title_align="left")


def render_hunks(hunks: Sequence[DiffHunk]) -> RenderableType:
    if not hunks:
        return Text(describe_changes(0), style="dim")
    renderables: list[RenderableType] = [Text(describe_changes(len(hunks)), style="dim")]
    renderables.extend(render_hunk(hunk) for hunk in hunks)
    return Group(*renderables)
