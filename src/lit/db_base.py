"""Shared Protocol for IssueStore mixins."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from lit.outline import Branch


class StoreMixinProtocol(Protocol):
    """Attributes and methods that store mixins access via self.

    Mixins inherit this Protocol so mypy can type-check ``self.root``,
    ``self.issue()``, etc. Actual implementations are provided by
    ``IssueStore`` at composition time.
    """

    store_dir: Path
    actor: str
    root: Branch

    def issue(self, id_or_prefix: str) -> Branch | None: ...

    def issue_ids(self) -> list[str]: ...

    def iter_issues(self) -> list[Branch]: ...
