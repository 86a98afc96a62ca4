"""Editor round-trip: bulk-edit issues in an external editor and merge them back.

An ``EditSession`` walks a fixed sequence of states::

    COLLECT -> SNAPSHOT -> SUSPEND -> DETECT -> REPARSE -> MERGE -> COMMIT

Each state either hands its output to the next or raises a typed error.
The in-memory store is only touched in MERGE, after every check that can
abort has passed, and the store is only written in COMMIT. Merging replaces
whole issue subtrees: what the user leaves in the editor is exactly what is
stored for that issue.
"""

from __future__ import annotations

import enum
import logging
import os
import shlex
import subprocess
import tempfile
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from lit.core import IssueStore
from lit.errors import EditorError, NoChangeError, NotFoundError, NoUpdateError
from lit.fields import set_field, stamp
from lit.outline import Branch, dump, new_root, parse

logger = logging.getLogger(__name__)

# Runs the editor on a file and returns its exit status.
Launcher = Callable[[list[str]], int]


class EditState(enum.Enum):
    COLLECT = "collect"
    SNAPSHOT = "snapshot"
    SUSPEND = "suspend"
    DETECT = "detect"
    REPARSE = "reparse"
    MERGE = "merge"
    COMMIT = "commit"
    DONE = "done"


@dataclass
class EditResult:
    """Outcome of a committed edit session."""

    updated: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def launch_editor(argv: list[str]) -> int:
    """Run the editor in the foreground, attached to the terminal."""
    try:
        return subprocess.run(argv, check=False).returncode
    except OSError as exc:
        msg = f"Could not start editor {argv[0]!r}: {exc}"
        raise EditorError(msg) from exc


class EditSession:
    """One editor round-trip over a selection of issues."""

    def __init__(
        self,
        store: IssueStore,
        *,
        editor: str,
        actor: str | None = None,
        launcher: Launcher | None = None,
        scratch_dir: Path | None = None,
    ) -> None:
        self.store = store
        self.editor = editor
        self.actor = actor or store.actor
        self.launcher = launcher or launch_editor
        self.scratch_dir = scratch_dir
        self.state = EditState.COLLECT

    def run(self, ids: Sequence[str]) -> EditResult:
        """Edit the issues in *ids* and persist the result.

        Raises NotFoundError (nothing to edit), EditorError, NoChangeError,
        ParseError, or NoUpdateError; in every error case the store is left
        as it was.
        """
        result = EditResult()
        self.state = EditState.COLLECT
        issues = self._collect(ids, result)
        path = self._write_scratch(issues)
        try:
            self.state = EditState.SNAPSHOT
            before = path.stat().st_mtime_ns

            self.state = EditState.SUSPEND
            self._suspend(path)

            self.state = EditState.DETECT
            if path.stat().st_mtime_ns == before:
                msg = "No changes made"
                raise NoChangeError(msg)

            self.state = EditState.REPARSE
            edited = parse(path.read_text(encoding="utf-8"))
        finally:
            path.unlink(missing_ok=True)

        self.state = EditState.MERGE
        replacements = _match_edited(edited, [issue.key for issue in issues])

        self.state = EditState.COMMIT
        if not replacements:
            msg = "No issues were updated"
            raise NoUpdateError(msg)
        for issue_id, branch in replacements:
            self.store.replace_issue(issue_id, branch)
            result.updated.append(issue_id)
        self.store.store()
        self.state = EditState.DONE
        logger.info("Edited %d issue(s)", len(result.updated), extra={"command": "edit"})
        return result

    def _collect(self, ids: Sequence[str], result: EditResult) -> list[Branch]:
        issues: list[Branch] = []
        updated = stamp(self.actor)
        for issue_id in ids:
            issue = self.store.issue(issue_id)
            if issue is None:
                logger.warning("Skipping %s: no such issue", issue_id)
                result.skipped.append(issue_id)
                continue
            working = issue.copy()
            set_field(working, "updated", updated)
            issues.append(working)
        if not issues:
            msg = "No issues to edit"
            raise NotFoundError(msg)
        return issues

    def _write_scratch(self, issues: list[Branch]) -> Path:
        buffer = new_root()
        for issue in issues:
            buffer.append(issue)
        return _write_scratch(dump(buffer), self.scratch_dir)

    def _suspend(self, path: Path) -> None:
        _run_editor(self.editor, path, self.launcher)


def edit_text(
    editor: str,
    initial: str = "",
    *,
    launcher: Launcher | None = None,
    scratch_dir: Path | None = None,
) -> str:
    """Open *initial* in the editor and return what the user saved.

    Uses the same modification-time check as ``EditSession``: quitting
    without saving raises NoChangeError.
    """
    path = _write_scratch(initial, scratch_dir)
    try:
        before = path.stat().st_mtime_ns
        _run_editor(editor, path, launcher or launch_editor)
        if path.stat().st_mtime_ns == before:
            msg = "No changes made"
            raise NoChangeError(msg)
        return path.read_text(encoding="utf-8")
    finally:
        path.unlink(missing_ok=True)


def _write_scratch(text: str, scratch_dir: Path | None) -> Path:
    fd, name = tempfile.mkstemp(prefix="lit-", suffix=".txt", dir=scratch_dir)
    with os.fdopen(fd, "w", encoding="utf-8") as fh:
        fh.write(text)
    return Path(name)


def _run_editor(editor: str, path: Path, launcher: Launcher) -> None:
    argv = [*shlex.split(editor), str(path)]
    status = launcher(argv)
    if status != 0:
        msg = f"Editor exited with status {status}"
        raise EditorError(msg)


def _match_edited(edited: Branch, ids: list[str]) -> list[tuple[str, Branch]]:
    """Pair each selected id with the first edited branch whose key starts with it.

    The matched branch takes the selected id as its key, so text appended to
    an issue header in the editor never renames the issue.
    """
    pairs = []
    for issue_id in ids:
        for branch in edited.branches():
            if branch.key.startswith(issue_id):
                branch.key = issue_id
                pairs.append((issue_id, branch))
                break
    return pairs
