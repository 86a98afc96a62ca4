"""CLI tests for issue commands (init, new, id, list, show, set, close, reopen, edit)."""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest
from click.testing import CliRunner

from lit.cli import cli
from lit.core import ISSUES_FILENAME, LIT_DIR_NAME, IssueStore
from lit.fields import get_field
from tests.cli.conftest import _new_issue
from tests.conftest import editor_rewriting, editor_untouched


def _load(root: Path) -> IssueStore:
    store = IssueStore(root / LIT_DIR_NAME)
    store.load()
    return store


class TestInit:
    def test_init_creates_lit_dir(self, tmp_path: Path, cli_runner: CliRunner) -> None:
        original = os.getcwd()
        os.chdir(str(tmp_path))
        try:
            result = cli_runner.invoke(cli, ["init"])
            assert result.exit_code == 0
            assert (tmp_path / LIT_DIR_NAME / ISSUES_FILENAME).exists()
        finally:
            os.chdir(original)

    def test_init_flat(self, tmp_path: Path, cli_runner: CliRunner) -> None:
        original = os.getcwd()
        os.chdir(str(tmp_path))
        try:
            result = cli_runner.invoke(cli, ["--flat", "init"])
            assert result.exit_code == 0
            assert (tmp_path / ISSUES_FILENAME).exists()
            assert not (tmp_path / LIT_DIR_NAME).exists()
        finally:
            os.chdir(original)

    def test_flat_mode_round_trip(self, tmp_path: Path, cli_runner: CliRunner) -> None:
        original = os.getcwd()
        os.chdir(str(tmp_path))
        try:
            cli_runner.invoke(cli, ["--flat", "init"])
            created = cli_runner.invoke(cli, ["--flat", "new", "-s", "flat issue"]).output.strip()
            listed = cli_runner.invoke(cli, ["--flat", "id"]).output.split()
            assert listed == [created]
            assert "summary: flat issue" in (tmp_path / ISSUES_FILENAME).read_text()
        finally:
            os.chdir(original)

    def test_init_already_exists(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["init"])
        assert result.exit_code == 0
        assert "already exists" in result.output

    def test_command_outside_project(self, tmp_path: Path, cli_runner: CliRunner) -> None:
        original = os.getcwd()
        os.chdir(str(tmp_path))
        try:
            result = cli_runner.invoke(cli, ["id"])
            assert result.exit_code == 1
            assert "lit init" in result.output
        finally:
            os.chdir(original)


class TestNew:
    def test_new_prints_id_and_stores(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        issue_id = _new_issue(runner, "-s", "Fix the bug", "-p", "1", "-t", "ui", "-t", "bug")
        issue = _load(root).get_issue(issue_id)
        assert get_field(issue, "summary") == "Fix the bug"
        assert get_field(issue, "priority") == "1"
        assert get_field(issue, "tags") == "bug ui"
        assert get_field(issue, "created").endswith(" tester")

    def test_new_count(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        result = runner.invoke(cli, ["new", "-n", "3"])
        assert result.exit_code == 0
        assert len(result.output.split()) == 3
        assert len(_load(root).issue_ids()) == 3

    def test_new_bad_count(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        result = runner.invoke(cli, ["new", "-n", "lots"])
        assert result.exit_code == 1
        assert "integer" in result.output
        assert _load(root).issue_ids() == []

    def test_new_with_edit(self, cli_in_project: tuple[CliRunner, Path], monkeypatch: pytest.MonkeyPatch) -> None:
        runner, root = cli_in_project
        monkeypatch.setattr(
            "lit.editing.launch_editor",
            editor_rewriting(lambda text: text.replace("summary:", "summary: from editor")),
        )
        issue_id = _new_issue(runner, "--edit")
        assert get_field(_load(root).get_issue(issue_id), "summary") == "from editor"

    def test_new_with_edit_unchanged_keeps_issue(
        self, cli_in_project: tuple[CliRunner, Path], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        runner, root = cli_in_project
        monkeypatch.setattr("lit.editing.launch_editor", editor_untouched)
        issue_id = _new_issue(runner, "--edit")
        assert _load(root).issue(issue_id) is not None


class TestQueries:
    def test_id_defaults_to_open(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        a = _new_issue(runner, "-s", "A")
        b = _new_issue(runner, "-s", "B")
        runner.invoke(cli, ["close", b])
        result = runner.invoke(cli, ["id"])
        assert result.output.split() == [a]
        result = runner.invoke(cli, ["id", "closed"])
        assert result.output.split() == [b]

    def test_id_sorted(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        low = _new_issue(runner, "-p", "1")
        high = _new_issue(runner, "-p", "3")
        mid = _new_issue(runner, "-p", "2")
        result = runner.invoke(cli, ["id", "all", "sort", "priority"])
        assert result.output.split() == [low, mid, high]
        result = runner.invoke(cli, ["id", "all", "rsort", "priority"])
        assert result.output.split() == [high, mid, low]

    def test_list(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        issue_id = _new_issue(runner, "-s", "Crash on start", "-p", "1")
        result = runner.invoke(cli, ["list"])
        assert result.exit_code == 0
        assert issue_id[:8] in result.output
        assert "Crash on start" in result.output
        assert "1 issues" in result.output

    def test_list_json(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        issue_id = _new_issue(runner, "-s", "S")
        data = json.loads(runner.invoke(cli, ["list", "--json", "all"]).output)
        assert data[0]["id"] == issue_id
        assert data[0]["summary"] == "S"

    def test_show_outline(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        issue_id = _new_issue(runner, "-s", "Visible")
        result = runner.invoke(cli, ["show", issue_id[:6]])
        assert result.exit_code == 0
        assert result.output.startswith(f"= {issue_id}\n")
        assert "summary: Visible" in result.output

    def test_show_unknown_id_reports_and_continues(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        issue_id = _new_issue(runner, "-s", "Real")
        result = runner.invoke(cli, ["show", "zzzz", issue_id])
        assert result.exit_code == 0
        assert "Not found: zzzz" in result.output
        assert "summary: Real" in result.output

    def test_bad_spec(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["id", "less", "priority"])
        assert result.exit_code == 1
        assert "requires a value" in result.output


class TestMutations:
    def test_set(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        issue_id = _new_issue(runner)
        result = runner.invoke(cli, ["--actor", "bob", "set", "assign", "carol", issue_id])
        assert result.exit_code == 0
        assert "Updated 1 issue(s)" in result.output
        issue = _load(root).get_issue(issue_id)
        assert get_field(issue, "assigned") == "carol"
        assert get_field(issue, "updated").endswith(" bob")

    def test_set_requires_spec(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        _new_issue(runner)
        result = runner.invoke(cli, ["set", "priority", "1"])
        assert result.exit_code == 1

    def test_close_and_reopen(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        issue_id = _new_issue(runner)
        assert runner.invoke(cli, ["--actor", "bob", "close", issue_id]).exit_code == 0
        assert get_field(_load(root).get_issue(issue_id), "closed").endswith(" bob")
        assert runner.invoke(cli, ["reopen", issue_id]).exit_code == 0
        assert get_field(_load(root).get_issue(issue_id), "closed") == ""

    def test_bad_actor(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["--actor", "   ", "new"])
        assert result.exit_code == 1
        assert "actor" in result.output


class TestEdit:
    def test_edit_merges(self, cli_in_project: tuple[CliRunner, Path], monkeypatch: pytest.MonkeyPatch) -> None:
        runner, root = cli_in_project
        issue_id = _new_issue(runner, "-s", "old")
        monkeypatch.setattr("lit.editing.launch_editor", editor_rewriting(lambda t: t.replace("old", "new")))
        result = runner.invoke(cli, ["edit", issue_id])
        assert result.exit_code == 0
        assert "Updated 1 issue(s)" in result.output
        assert get_field(_load(root).get_issue(issue_id), "summary") == "new"

    def test_edit_unchanged(self, cli_in_project: tuple[CliRunner, Path], monkeypatch: pytest.MonkeyPatch) -> None:
        runner, root = cli_in_project
        _new_issue(runner, "-s", "same")
        before = (root / LIT_DIR_NAME / ISSUES_FILENAME).read_text()
        monkeypatch.setattr("lit.editing.launch_editor", editor_untouched)
        result = runner.invoke(cli, ["edit"])
        assert result.exit_code == 1
        assert "No changes made" in result.output
        assert (root / LIT_DIR_NAME / ISSUES_FILENAME).read_text() == before

    def test_edit_uses_configured_editor(
        self, cli_in_project: tuple[CliRunner, Path], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        runner, _ = cli_in_project
        _new_issue(runner)
        calls: list[list[str]] = []

        def launcher(argv: list[str]) -> int:
            calls.append(argv)
            return 0

        monkeypatch.setattr("lit.editing.launch_editor", launcher)
        runner.invoke(cli, ["edit"], env={"VISUAL": "myeditor -f", "EDITOR": None})
        assert calls[0][:2] == ["myeditor", "-f"]


class TestCommandLog:
    def test_command_logged(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        _new_issue(runner, "-s", "logged")
        lines = (root / LIT_DIR_NAME / "lit.log").read_text().splitlines()
        commands = [json.loads(line).get("command") for line in lines]
        assert "new" in commands


class TestPipedSelection:
    def test_close_piped_ids(self, cli_in_project: tuple[CliRunner, Path], monkeypatch: pytest.MonkeyPatch) -> None:
        runner, root = cli_in_project
        bug = _new_issue(runner, "-t", "bug")
        other = _new_issue(runner)
        piped = runner.invoke(cli, ["id", "with", "tags", "bug"]).output
        monkeypatch.setattr("lit.cli_common.stdin_is_pipe", lambda: True)
        result = runner.invoke(cli, ["close"], input=piped)
        assert result.exit_code == 0, result.output
        assert "Closed 1 issue(s)" in result.output
        store = _load(root)
        assert get_field(store.get_issue(bug), "closed") != ""
        assert get_field(store.get_issue(other), "closed") == ""

    def test_empty_pipe_selects_nothing(
        self, cli_in_project: tuple[CliRunner, Path], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        runner, _ = cli_in_project
        _new_issue(runner)
        monkeypatch.setattr("lit.cli_common.stdin_is_pipe", lambda: True)
        result = runner.invoke(cli, ["id"], input="")
        assert result.exit_code == 0
        assert result.output == ""

    def test_piped_ids_extend_arguments(
        self, cli_in_project: tuple[CliRunner, Path], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        runner, _ = cli_in_project
        first = _new_issue(runner)
        second = _new_issue(runner)
        monkeypatch.setattr("lit.cli_common.stdin_is_pipe", lambda: True)
        result = runner.invoke(cli, ["id", first], input=f"{second}\n")
        assert result.output.split() == [first, second]

    def test_mutation_with_empty_pipe_fails(
        self, cli_in_project: tuple[CliRunner, Path], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        runner, _ = cli_in_project
        _new_issue(runner)
        monkeypatch.setattr("lit.cli_common.stdin_is_pipe", lambda: True)
        result = runner.invoke(cli, ["close"], input="\n")
        assert result.exit_code == 1
        assert "needs a selection" in result.output


class TestFieldNames:
    @pytest.mark.parametrize("name", ["=x", "a:b", ""])
    def test_set_rejects_unsafe_field_name(self, cli_in_project: tuple[CliRunner, Path], name: str) -> None:
        runner, root = cli_in_project
        issue_id = _new_issue(runner)
        before = (root / LIT_DIR_NAME / ISSUES_FILENAME).read_text()
        result = runner.invoke(cli, ["set", name, "v", issue_id])
        assert result.exit_code == 1
        assert "field name" in result.output
        assert (root / LIT_DIR_NAME / ISSUES_FILENAME).read_text() == before


class TestListColumns:
    def test_row_shows_marks_assignee_tags_and_attachments(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        issue_id = _new_issue(runner, "-s", "Crash", "-p", "1", "-t", "ui")
        runner.invoke(cli, ["set", "assigned", "carol", issue_id])
        src = root / "log.txt"
        src.write_text("x")
        runner.invoke(cli, ["attach", str(src), issue_id, "-c", ""])
        runner.invoke(cli, ["close", issue_id])

        lines = runner.invoke(cli, ["list", "all"]).output.splitlines()
        assert lines[0].split() == ["id", "c", "p", "a", "assigned", "tags", "summary"]
        assert lines[1] == f"{issue_id[:8]} * 1 1 carol    ui              Crash"

    def test_blank_attachment_column_without_attachments(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        issue_id = _new_issue(runner, "-s", "Open one")
        lines = runner.invoke(cli, ["list"]).output.splitlines()
        assert lines[1] == issue_id[:8] + " " * 32 + "Open one"


class TestEditWriteFailure:
    def test_store_error_reported(
        self, cli_in_project: tuple[CliRunner, Path], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        runner, _ = cli_in_project
        issue_id = _new_issue(runner, "-s", "old")
        monkeypatch.setattr("lit.editing.launch_editor", editor_rewriting(lambda t: t.replace("old", "new")))

        def broken_store(self: IssueStore) -> None:
            raise OSError("disk full")

        monkeypatch.setattr(IssueStore, "store", broken_store)
        result = runner.invoke(cli, ["edit", issue_id])
        assert result.exit_code == 1
        assert "Error: disk full" in result.output
        assert not isinstance(result.exception, OSError)
