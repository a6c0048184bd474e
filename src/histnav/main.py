from collections.abc import Sequence
from pathlib import Path
from sys import exit
from typing import Annotated, Any, final, override

import typer
from click import Context
from typer.core import TyperGroup

from histnav.exceptions import HistnavError
from histnav.models import ViewMode

app: typer.Typer


@final
class AliasGroup(TyperGroup):
    @override
    def main(  # pyright: ignore[reportAny]
        self,
        args: Sequence[str] | None = None,
        prog_name: str | None = None,
        complete_var: str | None = None,
        standalone_mode: bool = True,
        windows_expand_args: bool = True,
        **extra: Any,  # pyright: ignore[reportAny, reportExplicitAny]
    ) -> Any:  # pyright: ignore[reportExplicitAny]
        try:
            return super().main(args, prog_name, complete_var, standalone_mode, windows_expand_args, **extra)  #  pyright: ignore[reportAny]
        except HistnavError as e:
            typer.secho(f"Error: {e.message}", err=True, fg=typer.colors.RED)
            exit(e.exit_code)
        except Exception as e:
            typer.secho("Unexpected Internal Error", err=True, fg=typer.colors.RED)
            typer.echo(str(e), err=True)
            exit(1)

    @override
    def get_command(self, ctx: Context, cmd_name: str):
        cmd = super().get_command(ctx, cmd_name)
        if cmd:
            return cmd

        # Commands may be registered as "name | alias"
        resolved_name = self._group_cmd_name(cmd_name)
        if resolved_name != cmd_name:
            return super().get_command(ctx, resolved_name)
        return None

    def _group_cmd_name(self, default_name: str):
        for cmd in self.commands.values():
            if cmd.name:
                aliases = [s.strip() for s in cmd.name.replace(",", "|").split("|") if s.strip()]
                if default_name in aliases:
                    return cmd.name
        return default_name


app = typer.Typer(cls=AliasGroup, no_args_is_help=True)

ProjectOption = Annotated[
    str | None,
    typer.Option(
        "--project",
        "-p",
        help="Project to operate on. Defaults to $HISTNAV_PROJECT_ID.",
    ),
]


@app.callback()
def main() -> None:
    """
    Browse, preview, roll back and prune a workspace's saved versions.
    """
    from histnav.config import load_settings
    from histnav.console import configure_logging

    configure_logging(load_settings().log_level)


@app.command("list | ls")
def list_versions(project: ProjectOption = None) -> None:
    """
    List the project's versions, newest first.
    """
    from histnav.commands import versions

    versions.list_versions(project)


@app.command("show")
def show(
    sha: Annotated[str, typer.Argument(help="Full sha or unique prefix of the version.")],
    project: ProjectOption = None,
    view_mode: Annotated[
        ViewMode | None,
        typer.Option(
            "--view",
            help="What to show for the version. Defaults to $HISTNAV_VIEW_MODE or 'changes'.",
        ),
    ] = None,
) -> None:
    """
    Show the changes a version introduced.
    """
    from histnav.commands import show

    show.show(project, sha, view_mode)


@app.command("tree")
def tree(
    sha: Annotated[str, typer.Argument(help="Full sha or unique prefix of the version.")],
    project: ProjectOption = None,
) -> None:
    """
    Show the files that existed in a version.
    """
    from histnav.commands import show

    show.tree(project, sha)


@app.command("save")
def save(
    project: ProjectOption = None,
    label: Annotated[str | None, typer.Option("--label", "-l", help="Name for the new version.")] = None,
) -> None:
    """
    Save the current workspace as a new version.
    """
    from histnav.commands import versions

    versions.save(project, label)


@app.command("rollback")
def rollback(
    sha: Annotated[str, typer.Argument(help="Full sha or unique prefix of the version to restore.")],
    project: ProjectOption = None,
) -> None:
    """
    Restore the workspace to an earlier version.

    The latest and the initial version cannot be rolled back to.
    """
    from histnav.commands import history

    history.rollback(project, sha)


@app.command("delete | rm")
def delete(
    sha: Annotated[str, typer.Argument(help="Full sha or unique prefix of the version to delete.")],
    project: ProjectOption = None,
) -> None:
    """
    Delete a version from the history.

    The latest and the initial version cannot be deleted.
    """
    from histnav.commands import history

    history.delete(project, sha)


@app.command("render-diff")
def render_diff(
    file_path: Annotated[
        Path | None,
        typer.Argument(help="Unified diff to render. Reads stdin when omitted."),
    ] = None,
) -> None:
    """
    Render a local unified diff the way version changes are shown.
    """
    from histnav.commands import render_diff

    render_diff.render_diff(file_path)


if __name__ == "__main__":
    app()
