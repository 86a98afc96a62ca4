"""CLI for the lit issue tracker.

Convention-based: discovers .lit/ by walking up from cwd (or, with
``--flat``, uses an ``issues`` file in the cwd).

Usage:
    lit init                                  # Initialize .lit/ in cwd
    lit new -s "Crash on start"               # Create an issue
    lit id                                    # Ids of open issues
    lit list all sort priority                # One line per issue
    lit show 1b4e                             # Show issue(s) by id prefix
    lit set priority 1 1b4e                   # Set a field
    lit tag add bug with summary crash        # Add a tag to matching issues
    lit comment -m "Can reproduce" 1b4e       # Add a comment (no -m: editor)
    lit close 1b4e                            # Close issue(s)
    lit id with tags bug | lit close          # Piped ids select the issues
    lit reopen 1b4e                           # Reopen issue(s)
    lit edit with assigned bob                # Bulk-edit in $EDITOR
    lit attach trace.log 1b4e -c "stack"      # Attach a file
    lit attachments 1b4e                      # List attachments
    lit cat-attachment 1b4e trace.log         # Print an attachment

Selection specs: all | open | closed | <id>... | with/without <field> [value]
| less/greater <field> <value> | sort/rsort <field>. Default: open.
"""

from __future__ import annotations

from pathlib import Path

import click

from lit import __version__
from lit.cli_commands.issues import close, edit, list_issues, new, reopen, set_field_cmd, show, show_ids
from lit.cli_commands.meta import attach, attachments, cat_attachment, comment, tag
from lit.cli_common import fail
from lit.core import LIT_DIR_NAME, IssueStore
from lit.logging import command_timer


@click.group()
@click.version_option(version=__version__, prog_name="lit")
@click.option("--actor", default=None, help="Actor identity for stamps (default: $LIT_USER, $USER)")
@click.option("--flat", is_flag=True, help="Use an 'issues' file in the current directory")
@click.pass_context
def cli(ctx: click.Context, actor: str | None, flat: bool) -> None:
    """lit: lightweight issue tracker in a plain-text outline file."""
    ctx.ensure_object(dict)
    ctx.obj["actor"] = actor
    ctx.obj["flat"] = flat
    if ctx.invoked_subcommand:
        ctx.with_resource(command_timer(ctx.invoked_subcommand))


@cli.command()
@click.pass_context
def init(ctx: click.Context) -> None:
    """Initialize an issue file in the current directory."""
    cwd = Path.cwd()
    store_dir = cwd if ctx.obj["flat"] else cwd / LIT_DIR_NAME
    store = IssueStore(store_dir)
    if store.issues_path.exists():
        click.echo(f"{store.issues_path} already exists")
        return
    try:
        store.init()
    except OSError as e:
        fail(str(e))
    click.echo(f"Initialized {store.issues_path}")


cli.add_command(new)
cli.add_command(show_ids)
cli.add_command(list_issues)
cli.add_command(show)
cli.add_command(set_field_cmd)
cli.add_command(close)
cli.add_command(reopen)
cli.add_command(edit)
cli.add_command(tag)
cli.add_command(comment)
cli.add_command(attach)
cli.add_command(attachments)
cli.add_command(cat_attachment)


if __name__ == "__main__":
    cli()
