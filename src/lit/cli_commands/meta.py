"""CLI commands for tags, comments, and attachments."""

from __future__ import annotations

import shutil
from pathlib import Path

import click

from lit.cli_common import fail, get_settings, get_store, save, select_ids
from lit.editing import edit_text
from lit.errors import LitError
from lit.fields import modify_tag


def _compose(ctx: click.Context) -> str:
    """Write comment text in the editor; an unsaved buffer aborts the command."""
    try:
        return edit_text(get_settings(ctx).editor).strip()
    except (LitError, OSError) as e:
        fail(str(e))


@click.command()
@click.argument("action", type=click.Choice(["add", "del"]))
@click.argument("tag_name")
@click.argument("spec", nargs=-1)
@click.pass_context
def tag(ctx: click.Context, action: str, tag_name: str, spec: tuple[str, ...]) -> None:
    """Add or remove a tag on the selected issues."""
    store = get_store(ctx)
    ids = select_ids(store, spec, required_by="tag")
    for issue_id in ids:
        issue = store.get_issue(issue_id)
        modify_tag(issue, tag_name, action == "add")
        store.touch(issue)
    save(store)
    click.echo(f"Updated {len(ids)} issue(s)")


@click.command()
@click.option("--message", "-m", default=None, help="Comment text; '-' reads stdin. Omit to use the editor.")
@click.argument("spec", nargs=-1)
@click.pass_context
def comment(ctx: click.Context, message: str | None, spec: tuple[str, ...]) -> None:
    """Add a comment to the selected issues."""
    from_stdin = message == "-"
    store = get_store(ctx)
    ids = select_ids(store, spec, required_by="comment", use_stdin=not from_stdin)
    if from_stdin:
        text = click.get_text_stream("stdin").read().rstrip("\n")
    elif message is None:
        text = _compose(ctx)
    else:
        text = message
    if not text.strip():
        fail("comment text must not be empty")
    for issue_id in ids:
        store.add_comment(store.get_issue(issue_id), text)
    save(store)
    click.echo(f"Commented on {len(ids)} issue(s)")


@click.command()
@click.argument("path", type=click.Path(dir_okay=False))
@click.argument("issue_id")
@click.option("--comment", "-c", "note", default=None, help="Attachment comment. Omit to use the editor.")
@click.pass_context
def attach(ctx: click.Context, path: str, issue_id: str, note: str | None) -> None:
    """Attach the file at PATH to an issue."""
    store = get_store(ctx)
    issue = store.issue(issue_id)
    if issue is None:
        fail(f"Not found: {issue_id}")
    if not Path(path).is_file():
        fail(f"Attachment source not found: {path}")
    if note is None:
        note = _compose(ctx)
    try:
        store.attach(issue, path, comment=note)
    except (LitError, OSError) as e:
        fail(str(e))
    store.touch(issue)
    save(store)
    click.echo(f"Attached {path} to {issue.key}")


@click.command()
@click.argument("issue_id")
@click.pass_context
def attachments(ctx: click.Context, issue_id: str) -> None:
    """List an issue's attachments."""
    store = get_store(ctx)
    issue = store.issue(issue_id)
    if issue is None:
        fail(f"Not found: {issue_id}")
    names = store.attachments(issue)
    if not names:
        click.echo("No attachments.")
        return
    for name in names:
        click.echo(name)


@click.command("cat-attachment")
@click.argument("issue_id")
@click.argument("name")
@click.pass_context
def cat_attachment(ctx: click.Context, issue_id: str, name: str) -> None:
    """Write an attachment's contents to stdout."""
    store = get_store(ctx)
    issue = store.issue(issue_id)
    if issue is None:
        fail(f"Not found: {issue_id}")
    try:
        fh = store.get_attachment(issue, name)
    except LitError as e:
        fail(str(e))
    with fh:
        shutil.copyfileobj(fh, click.get_binary_stream("stdout"))
