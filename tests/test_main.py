# pyright: standard

from pathlib import Path

import pytest
from pytest_mock import MockerFixture
from typer.testing import CliRunner

from histnav.main import app
from histnav.models import CreateResult, DiffPayload, Failure, FileStat, Ok, TreePayload, Unavailable
from tests.helpers import PROJECT_ID, FakeBackend, make_versions, single_file_diff

runner = CliRunner()

ENV = {
    "HISTNAV_SERVER_URL": "",
    "HISTNAV_PROJECT_ID": PROJECT_ID,
    "HISTNAV_TIMEOUT": "",
    "HISTNAV_VIEW_MODE": "",
    "HISTNAV_LOG_LEVEL": "",
}


@pytest.fixture
def cli_backend(mocker: MockerFixture) -> FakeBackend:
    backend = FakeBackend(make_versions(3))
    _ = mocker.patch("histnav.console.configure_logging")
    _ = mocker.patch("histnav.commands.common.HttpVersioningBackend", return_value=backend)
    return backend


def test_list_shows_versions_newest_first(cli_backend: FakeBackend) -> None:
    # GIVEN a project with three versions
    # WHEN listing them
    result = runner.invoke(app, ["list"], env=ENV)

    # THEN messages are shown without their prefixes, with head and initial marked
    assert result.exit_code == 0, result.output
    lines = result.stdout.splitlines()
    head_line = next(line for line in lines if "change 2" in line)
    initial_line = next(line for line in lines if "Initial commit" in line)
    assert "head" in head_line
    assert "initial" in initial_line
    assert "auto:" not in result.stdout
    assert cli_backend.versions[0].sha[:7] in head_line
    assert cli_backend.closed


def test_ls_alias_and_empty_history(cli_backend: FakeBackend) -> None:
    cli_backend.versions = []

    result = runner.invoke(app, ["ls", "--project", "other"], env=ENV)

    assert result.exit_code == 0
    assert "No versions yet." in result.stdout


def test_missing_project_is_a_configuration_error(cli_backend: FakeBackend) -> None:
    result = runner.invoke(app, ["list"], env={**ENV, "HISTNAV_PROJECT_ID": ""})

    assert result.exit_code == 1
    assert "Error: No project given" in result.stderr
    assert cli_backend.calls == []


def test_invalid_configuration_is_reported(cli_backend: FakeBackend) -> None:
    result = runner.invoke(app, ["list"], env={**ENV, "HISTNAV_TIMEOUT": "never"})

    assert result.exit_code == 1
    assert "Error: Invalid histnav configuration" in result.stderr


def test_unavailable_version_control(cli_backend: FakeBackend) -> None:
    cli_backend.list_result = Unavailable()

    result = runner.invoke(app, ["list"], env=ENV)

    assert result.exit_code == 1
    assert "Error: Version control is not available for this project." in result.stderr


def test_rollback_by_prefix(cli_backend: FakeBackend) -> None:
    v1 = cli_backend.versions[1].sha

    result = runner.invoke(app, ["rollback", v1[:10]], env=ENV)

    assert result.exit_code == 0, result.output
    assert f"Rolled back to {v1[:7]}." in result.stdout
    assert ("rollback", v1) in cli_backend.calls


def test_rollback_of_latest_version_is_refused(cli_backend: FakeBackend) -> None:
    # GIVEN the head version
    head = cli_backend.versions[0].sha

    # WHEN rolling back to it
    result = runner.invoke(app, ["rollback", head], env=ENV)

    # THEN the command fails without contacting the service
    assert result.exit_code == 1
    assert "Error: Cannot rollback the latest version." in result.stderr
    assert cli_backend.count("rollback") == 0


def test_rollback_failure_reports_service_message(cli_backend: FakeBackend) -> None:
    cli_backend.rollback_result = Failure(message="working tree is dirty")

    result = runner.invoke(app, ["rollback", cli_backend.versions[1].sha], env=ENV)

    assert result.exit_code == 1
    assert "Error: working tree is dirty" in result.stderr


def test_rm_alias_deletes_version(cli_backend: FakeBackend) -> None:
    v1 = cli_backend.versions[1].sha

    result = runner.invoke(app, ["rm", v1], env=ENV)

    assert result.exit_code == 0, result.output
    assert f"Deleted version {v1[:7]}." in result.stdout
    assert all(v.sha != v1 for v in cli_backend.versions)


def test_delete_of_initial_version_is_refused(cli_backend: FakeBackend) -> None:
    result = runner.invoke(app, ["delete", cli_backend.versions[2].sha], env=ENV)

    assert result.exit_code == 1
    assert "Error: Cannot delete the initial version." in result.stderr
    assert cli_backend.count("delete") == 0


def test_unknown_ref(cli_backend: FakeBackend) -> None:
    result = runner.invoke(app, ["show", "zzzzzzz"], env=ENV)

    assert result.exit_code == 1
    assert "Error: No version matches 'zzzzzzz'." in result.stderr


def test_save_without_changes(cli_backend: FakeBackend) -> None:
    result = runner.invoke(app, ["save"], env=ENV)

    assert result.exit_code == 0
    assert "No changes to save" in result.stdout


def test_save_with_label(cli_backend: FakeBackend) -> None:
    cli_backend.create_result = Ok(CreateResult(sha="f" * 40))

    result = runner.invoke(app, ["save", "-l", "before refactor"], env=ENV)

    assert result.exit_code == 0, result.output
    assert "Saved version fffffff." in result.stdout
    assert ("create", "before refactor") in cli_backend.calls


def test_show_renders_banner_and_diff(cli_backend: FakeBackend) -> None:
    # GIVEN a version whose diff touches one file
    v1 = cli_backend.versions[1].sha
    raw = single_file_diff("src/app.ts", "@@ -1 +1 @@\n-const a = 1;\n+const a = 2;\n")
    cli_backend.diffs[v1] = Ok(DiffPayload(diff=raw, files=[FileStat(path="src/app.ts", additions=1, deletions=1)]))

    # WHEN showing it
    result = runner.invoke(app, ["show", v1[:7]], env=ENV)

    # THEN the banner names the version and the diff is rendered
    assert result.exit_code == 0, result.output
    assert "Viewing: change 1" in result.stdout
    assert "1 file changed" in result.stdout
    assert "src/app.ts" in result.stdout
    assert "+const a = 2;" in result.stdout
    assert cli_backend.count("tree") == 0


def test_show_diff_failure(cli_backend: FakeBackend) -> None:
    cli_backend.raise_on.add("diff")

    result = runner.invoke(app, ["show", cli_backend.versions[1].sha], env=ENV)

    assert result.exit_code == 1
    assert "Error: Failed to load diff" in result.stderr


def test_tree_lists_files(cli_backend: FakeBackend) -> None:
    v2 = cli_backend.versions[2].sha
    cli_backend.trees[v2] = Ok(TreePayload(files=["index.html", "src/main.ts"]))

    result = runner.invoke(app, ["tree", v2], env=ENV)

    assert result.exit_code == 0, result.output
    assert v2[:7] in result.stdout
    assert "src/" in result.stdout
    assert "main.ts" in result.stdout
    assert "index.html" in result.stdout


def test_show_with_files_view_from_environment(cli_backend: FakeBackend) -> None:
    v1 = cli_backend.versions[1].sha
    cli_backend.trees[v1] = Ok(TreePayload(files=["a.txt"]))

    result = runner.invoke(app, ["show", v1], env={**ENV, "HISTNAV_VIEW_MODE": "files"})

    assert result.exit_code == 0, result.output
    assert "a.txt" in result.stdout
    assert cli_backend.count("tree") == 1


def test_render_diff_from_stdin(cli_backend: FakeBackend) -> None:
    raw = single_file_diff("notes.md", "@@ -1,2 +1,2 @@\n keep\n-old\n+new\n")

    result = runner.invoke(app, ["render-diff"], input=raw, env=ENV)

    assert result.exit_code == 0, result.output
    assert "notes.md" in result.stdout
    assert "+1 -1" in result.stdout
    assert cli_backend.calls == []


def test_render_diff_missing_file(cli_backend: FakeBackend, tmp_path: Path) -> None:
    missing = tmp_path / "nope.diff"

    result = runner.invoke(app, ["render-diff", str(missing)], env=ENV)

    assert result.exit_code == 1
    assert f"Error: Could not read {missing}" in result.stderr
