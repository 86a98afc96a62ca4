"""Shared pytest fixtures for lit tests."""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path

import pytest
from click.testing import CliRunner

from lit.core import LIT_DIR_NAME, IssueStore
from lit.fields import set_field


@pytest.fixture
def store(tmp_path: Path) -> IssueStore:
    """Fresh, initialized IssueStore for each test."""
    s = IssueStore(tmp_path / LIT_DIR_NAME, actor="tester")
    s.init()
    return s


@pytest.fixture
def populated_store(store: IssueStore) -> IssueStore:
    """IssueStore pre-populated with a representative issue set.

    Creates, in tree order:
    - A: open, priority "1", tags "bug ui", summary "Crash on start"
    - B: open, priority "3", summary "Add export", comment "this is urgent"
    - C: closed, priority "2", summary "Docs typo"
    """
    a, b, c = store.new_issues(3)
    set_field(a, "summary", "Crash on start")
    set_field(a, "priority", "1")
    set_field(a, "tags", "bug ui")
    set_field(b, "summary", "Add export")
    set_field(b, "priority", "3")
    store.add_comment(b, "this is urgent")
    set_field(c, "summary", "Docs typo")
    set_field(c, "priority", "2")
    store.close_issue(c)
    store._test_ids = {"a": a.key, "b": b.key, "c": c.key}  # type: ignore[attr-defined]
    return store


@pytest.fixture
def lit_project(tmp_path: Path) -> Path:
    """A tmp directory set up as a lit project (.lit/ with an empty issue file).

    Returns the project root (parent of .lit/).
    """
    IssueStore(tmp_path / LIT_DIR_NAME).init()
    return tmp_path


@pytest.fixture
def cli_runner() -> CliRunner:
    """Click CLI test runner."""
    return CliRunner()


def editor_rewriting(transform: Callable[[str], str]) -> Callable[[list[str]], int]:
    """Fake editor launcher that rewrites the scratch file and bumps its mtime."""

    def launcher(argv: list[str]) -> int:
        path = Path(argv[-1])
        path.write_text(transform(path.read_text()))
        st = path.stat()
        os.utime(path, ns=(st.st_atime_ns, st.st_mtime_ns + 1_000_000_000))
        return 0

    return launcher


def editor_untouched(argv: list[str]) -> int:
    """Fake editor launcher that exits without saving."""
    return 0
