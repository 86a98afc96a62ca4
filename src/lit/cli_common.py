"""Shared CLI helpers used by ``cli.py`` and the ``cli_commands`` modules.

Provides ``get_store()`` (discovery, settings, logging, load),
``select_ids()`` (selection specs, piped ids, per-id reporting), ``save()``, and
``fail()`` so every command reports errors the same way.
"""

from __future__ import annotations

import json as json_mod
import os
import stat
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import NoReturn

import click

from lit.core import LIT_DIR_NAME, IssueStore, Settings, find_lit_root, resolve_settings
from lit.errors import LitError, NotFoundError
from lit.logging import setup_logging
from lit.selection import parse_selection


def fail(message: str, *, as_json: bool = False) -> NoReturn:
    """Report an error and exit with status 1."""
    if as_json:
        click.echo(json_mod.dumps({"error": message}))
    else:
        click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _store_dir(ctx: click.Context) -> Path:
    if ctx.obj.get("flat"):
        return Path.cwd()
    try:
        return find_lit_root()
    except NotFoundError:
        click.echo(f"No {LIT_DIR_NAME}/ found. Run 'lit init' first.", err=True)
        sys.exit(1)


def get_settings(ctx: click.Context, store_dir: Path | None = None) -> Settings:
    """Resolve (once per invocation) the actor and editor for this command."""
    settings: Settings | None = ctx.obj.get("settings")
    if settings is None:
        config_dir = None if ctx.obj.get("flat") else store_dir
        try:
            settings = resolve_settings(config_dir, actor=ctx.obj.get("actor"))
        except LitError as e:
            fail(str(e))
        ctx.obj["settings"] = settings
    return settings


def get_store(ctx: click.Context) -> IssueStore:
    """Discover the issue file, set up logging, and return a loaded IssueStore."""
    store_dir = _store_dir(ctx)
    settings = get_settings(ctx, store_dir)
    if not ctx.obj.get("flat"):
        setup_logging(store_dir)
    store = IssueStore(store_dir, actor=settings.actor)
    try:
        store.load()
    except LitError as e:
        fail(str(e))
    return store


def stdin_is_pipe() -> bool:
    """True when stdin is a pipe, as in ``lit id with tags bug | lit close``."""
    try:
        mode = os.fstat(sys.stdin.fileno()).st_mode
    except (OSError, ValueError):
        return False
    return stat.S_ISFIFO(mode)


def select_ids(
    store: IssueStore,
    spec: Sequence[str],
    *,
    required_by: str | None = None,
    use_stdin: bool = True,
) -> list[str]:
    """Resolve a selection spec, reporting explicit ids that match nothing.

    When stdin is a pipe its whitespace-separated tokens are appended to
    *spec*, and an empty result selects nothing instead of the open issues.
    Commands named by *required_by* refuse to run without any selection.
    """
    tokens = list(spec)
    piped = use_stdin and stdin_is_pipe()
    if piped:
        tokens.extend(click.get_text_stream("stdin").read().split())
    if not tokens:
        if required_by:
            fail(f"'{required_by}' needs a selection (ids, 'all', 'with ...', ...)")
        if piped:
            return []
    try:
        selection = parse_selection(tokens)
    except LitError as e:
        fail(str(e))
    for clause in selection.clauses:
        for prefix in clause.ids:
            if store.issue(prefix) is None:
                click.echo(f"Not found: {prefix}", err=True)
    return store.select(selection)


def save(store: IssueStore) -> None:
    """Persist the store, turning failures into a CLI error."""
    try:
        store.store()
    except (LitError, OSError) as e:
        fail(f"could not write {store.issues_path}: {e}")
