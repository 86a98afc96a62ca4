"""CLI commands for issues: new, id, list, show, set, close, reopen, edit."""

from __future__ import annotations

import json as json_mod
import logging

import click

from lit.cli_common import fail, get_settings, get_store, save, select_ids
from lit.core import IssueStore
from lit.editing import EditSession
from lit.errors import LitError, NoChangeError
from lit.fields import get_field, is_open, issue_to_dict, set_field
from lit.outline import Branch, dump, new_root
from lit.validation import check_field_name, parse_count

logger = logging.getLogger(__name__)

# Columns: id, closed mark, priority, attachment count, assignee, tags, summary.
_LIST_FORMAT = "{:<8.8} {:<1.1} {:<1.1} {:<1.1} {:<8.8} {:<15.15} {}"


@click.command()
@click.option("--count", "-n", default="1", help="Number of issues to create")
@click.option("--summary", "-s", default="", help="Summary for the new issue(s)")
@click.option("--priority", "-p", default="", help="Priority for the new issue(s)")
@click.option("--tag", "-t", "tags", multiple=True, help="Tag (repeatable)")
@click.option("--edit", "open_editor", is_flag=True, help="Open the new issue(s) in the editor")
@click.pass_context
def new(ctx: click.Context, count: str, summary: str, priority: str, tags: tuple[str, ...], open_editor: bool) -> None:
    """Create new issues and print their ids."""
    try:
        num = parse_count(count)
    except LitError as e:
        fail(str(e))
    store = get_store(ctx)
    issues = store.new_issues(num)
    for issue in issues:
        if summary:
            set_field(issue, "summary", summary)
        if priority:
            set_field(issue, "priority", priority)
        if tags:
            set_field(issue, "tags", " ".join(sorted(set(tags))))
    save(store)
    for issue in issues:
        click.echo(issue.key)
    if open_editor:
        session = EditSession(store, editor=get_settings(ctx).editor)
        try:
            session.run([issue.key for issue in issues])
        except NoChangeError:
            pass
        except (LitError, OSError) as e:
            fail(str(e))


@click.command("id")
@click.argument("spec", nargs=-1)
@click.pass_context
def show_ids(ctx: click.Context, spec: tuple[str, ...]) -> None:
    """Print the ids of selected issues (default: open)."""
    store = get_store(ctx)
    for issue_id in select_ids(store, spec):
        click.echo(issue_id)


@click.command("list")
@click.argument("spec", nargs=-1)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def list_issues(ctx: click.Context, spec: tuple[str, ...], as_json: bool) -> None:
    """List selected issues, one per line (default: open)."""
    store = get_store(ctx)
    ids = select_ids(store, spec)
    if as_json:
        click.echo(json_mod.dumps([issue_to_dict(store.get_issue(i)) for i in ids], indent=2))
        return
    click.echo(_LIST_FORMAT.format("id", "c", "p", "a", "assigned", "tags", "summary"))
    for issue_id in ids:
        click.echo(_list_row(store, store.get_issue(issue_id)))
    click.echo(f"\n{len(ids)} issues")


def _list_row(store: IssueStore, issue: Branch) -> str:
    closed = " " if is_open(issue) else "*"
    count = len(store.attachments(issue))
    if not count:
        attached = " "
    else:
        attached = str(count) if count < 10 else "*"
    return _LIST_FORMAT.format(
        issue.key,
        closed,
        get_field(issue, "priority") or "",
        attached,
        get_field(issue, "assigned") or "",
        get_field(issue, "tags") or "",
        get_field(issue, "summary") or "",
    )


@click.command()
@click.argument("spec", nargs=-1)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def show(ctx: click.Context, spec: tuple[str, ...], as_json: bool) -> None:
    """Show selected issues in full (default: open)."""
    store = get_store(ctx)
    issues = [store.get_issue(i) for i in select_ids(store, spec)]
    if as_json:
        click.echo(json_mod.dumps([issue_to_dict(issue) for issue in issues], indent=2))
        return
    view = new_root()
    view.kids.extend(issues)
    click.echo(dump(view), nl=False)


@click.command("set")
@click.argument("field")
@click.argument("value")
@click.argument("spec", nargs=-1)
@click.pass_context
def set_field_cmd(ctx: click.Context, field: str, value: str, spec: tuple[str, ...]) -> None:
    """Set FIELD to VALUE on the selected issues."""
    try:
        check_field_name(field)
    except LitError as e:
        fail(str(e))
    store = get_store(ctx)
    ids = select_ids(store, spec, required_by="set")
    for issue_id in ids:
        store.set_value(store.get_issue(issue_id), field, value)
    save(store)
    logger.info("Set %s on %d issue(s)", field, len(ids), extra={"command": "set"})
    click.echo(f"Updated {len(ids)} issue(s)")


@click.command()
@click.argument("spec", nargs=-1)
@click.pass_context
def close(ctx: click.Context, spec: tuple[str, ...]) -> None:
    """Close the selected issues."""
    store = get_store(ctx)
    ids = select_ids(store, spec, required_by="close")
    for issue_id in ids:
        store.close_issue(store.get_issue(issue_id))
    save(store)
    click.echo(f"Closed {len(ids)} issue(s)")


@click.command()
@click.argument("spec", nargs=-1)
@click.pass_context
def reopen(ctx: click.Context, spec: tuple[str, ...]) -> None:
    """Reopen the selected issues."""
    store = get_store(ctx)
    ids = select_ids(store, spec, required_by="reopen")
    for issue_id in ids:
        store.reopen_issue(store.get_issue(issue_id))
    save(store)
    click.echo(f"Reopened {len(ids)} issue(s)")


@click.command()
@click.argument("spec", nargs=-1)
@click.pass_context
def edit(ctx: click.Context, spec: tuple[str, ...]) -> None:
    """Edit the selected issues in $EDITOR (default: open)."""
    store = get_store(ctx)
    ids = select_ids(store, spec)
    session = EditSession(store, editor=get_settings(ctx).editor)
    try:
        result = session.run(ids)
    except (LitError, OSError) as e:
        fail(str(e))
    click.echo(f"Updated {len(result.updated)} issue(s)")
