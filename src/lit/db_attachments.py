"""AttachmentsMixin: per-issue attachment directories.

Each issue's attachments live in a directory named by the full issue id,
next to the issue file. Attaching a file also records a comment on the
issue so the attachment shows up in its history.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import BinaryIO

from lit.db_base import StoreMixinProtocol
from lit.errors import NotFoundError
from lit.fields import add_comment
from lit.outline import Branch

logger = logging.getLogger(__name__)


class AttachmentsMixin(StoreMixinProtocol):
    """Attachment storage methods, composed into ``IssueStore``."""

    def issue_dir(self, issue: Branch) -> Path:
        return self.store_dir / issue.key

    def attach(self, issue: Branch, source: str | Path, *, comment: str = "", actor: str | None = None) -> str:
        """Copy *source* into the issue's directory and record it. Returns the comment stamp."""
        source = Path(source)
        if not source.is_file():
            msg = f"Attachment source not found: {source}"
            raise NotFoundError(msg)
        text = f"Attached {source.name}"
        if comment:
            text += f"\n\n{comment}"
        dest_dir = self.issue_dir(issue)
        dest_dir.mkdir(exist_ok=True)
        shutil.copyfile(source, dest_dir / source.name)
        branch = add_comment(issue, text, actor or self.actor)
        logger.info("Attached %s to %s", source.name, issue.key, extra={"issue_id": issue.key})
        return branch.key

    def attachments(self, issue: Branch) -> list[str]:
        """Return sorted attachment filenames, or [] if the issue has none."""
        dest_dir = self.issue_dir(issue)
        if not dest_dir.is_dir():
            return []
        return sorted(p.name for p in dest_dir.iterdir() if p.is_file())

    def get_attachment(self, issue: Branch, name: str) -> BinaryIO:
        """Open an attachment for reading. Caller closes the returned file."""
        path = self.issue_dir(issue) / Path(name).name
        if not path.is_file():
            msg = f"Attachment not found: {issue.key}/{name}"
            raise NotFoundError(msg)
        return path.open("rb")
