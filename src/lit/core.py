"""Core issue store for the lit tracker.

Issues live in one outline document (``.lit/issues``). The store parses it
once per process, mutates the tree in place, and rewrites the whole file on
``store()``. Both the CLI and tests import from this module.

Convention-based discovery: each project has a ``.lit/`` directory holding
``issues`` (the outline document), ``config.json`` (actor/editor
overrides), ``lit.log``, and one attachment directory per issue. In flat
mode the ``issues`` file sits directly in the working directory instead.
"""

from __future__ import annotations

import bisect
import contextlib
import getpass
import json
import logging
import os
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypedDict

from lit.db_attachments import AttachmentsMixin
from lit.db_query import QueryMixin
from lit.errors import NotFoundError, NotLoadedError, ParseError
from lit.fields import add_comment, set_field, stamp
from lit.outline import Branch, Leaf, dump, new_root, parse
from lit.validation import parse_count, sanitize_actor

logger = logging.getLogger(__name__)


class ProjectConfig(TypedDict, total=False):
    """Shape of .lit/config.json."""

    actor: str
    editor: str


# ---------------------------------------------------------------------------
# Convention-based discovery
# ---------------------------------------------------------------------------

LIT_DIR_NAME = ".lit"
ISSUES_FILENAME = "issues"
CONFIG_FILENAME = "config.json"
DEFAULT_EDITOR = "vi"


def find_lit_root(start: Path | None = None) -> Path:
    """Walk up from start (default cwd) looking for a .lit/ directory.

    Returns the .lit/ directory path (not the project root).
    """
    current = (start or Path.cwd()).resolve()
    for parent in [current, *current.parents]:
        candidate = parent / LIT_DIR_NAME
        if candidate.is_dir():
            return candidate
    msg = f"No {LIT_DIR_NAME}/ directory found in {current} or any parent"
    raise NotFoundError(msg)


def read_config(lit_dir: Path) -> ProjectConfig:
    """Read .lit/config.json. Returns defaults if missing or corrupt."""
    config_path = lit_dir / CONFIG_FILENAME
    if not config_path.exists():
        return ProjectConfig()
    try:
        data = json.loads(config_path.read_text())
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read %s, using defaults: %s", config_path, exc)
        return ProjectConfig()
    if not isinstance(data, dict):
        logger.warning("Config file %s is not a JSON object, using defaults", config_path)
        return ProjectConfig()
    result: ProjectConfig = data  # type: ignore[assignment]
    return result


def write_config(lit_dir: Path, config: dict[str, Any] | ProjectConfig) -> None:
    """Write .lit/config.json."""
    config_path = lit_dir / CONFIG_FILENAME
    config_path.write_text(json.dumps(config, indent=2) + "\n")


@dataclass(frozen=True)
class Settings:
    """Per-invocation identity and tooling, resolved once at startup."""

    actor: str
    editor: str = DEFAULT_EDITOR


def resolve_settings(
    lit_dir: Path | None,
    *,
    actor: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Resolve actor and editor from explicit options, config, and environment.

    actor: option > config ``actor`` > $LIT_USER > $USER > OS login name.
    editor: config ``editor`` > $VISUAL > $EDITOR > vi.
    """
    env = os.environ if environ is None else environ
    config = read_config(lit_dir) if lit_dir is not None else ProjectConfig()
    raw_actor = actor or config.get("actor") or env.get("LIT_USER") or env.get("USER")
    if not raw_actor:
        try:
            raw_actor = getpass.getuser()
        except (KeyError, OSError):
            raw_actor = "?"
    editor = config.get("editor") or env.get("VISUAL") or env.get("EDITOR") or DEFAULT_EDITOR
    return Settings(actor=sanitize_actor(raw_actor), editor=editor)


# ---------------------------------------------------------------------------
# File helpers
# ---------------------------------------------------------------------------


def write_atomic(path: Path, content: str) -> None:
    """Write content to path atomically via temp file + os.replace()."""
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        tmp.write_text(content, encoding="utf-8")
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp.unlink()
        raise


def new_issue_branch(issue_id: str, created: str) -> Branch:
    """Build an issue branch with the fixed field skeleton."""
    issue = Branch(issue_id)
    issue.append(Leaf("created", created))
    issue.append(Leaf("updated", created))
    issue.append(Leaf("closed", ""))
    issue.append(Leaf("summary", ""))
    issue.append(Leaf("tags", ""))
    issue.append(Leaf("priority", ""))
    issue.append(Leaf("assigned", ""))
    issue.append(Leaf("description", "", "long"))
    return issue


# ---------------------------------------------------------------------------
# IssueStore
# ---------------------------------------------------------------------------


class IssueStore(QueryMixin, AttachmentsMixin):
    """One outline document of issues plus a sorted id index over it.

    The tree is authoritative; the index (sorted id list and id->branch map)
    is a cache rebuilt on load and whenever issues are added or replaced.
    """

    def __init__(self, store_dir: str | Path, *, actor: str = "?") -> None:
        self.store_dir = Path(store_dir)
        self.actor = actor
        self.root: Branch = new_root()
        self._ids: list[str] = []
        self._by_id: dict[str, Branch] = {}
        self._loaded = False

    @classmethod
    def from_project(cls, start: Path | None = None, *, actor: str = "?") -> IssueStore:
        """Discover .lit/ from start (or cwd) and return a loaded store."""
        store = cls(find_lit_root(start), actor=actor)
        store.load()
        return store

    @classmethod
    def flat(cls, directory: Path | None = None, *, actor: str = "?") -> IssueStore:
        """Store whose issue file sits directly in *directory* (default cwd)."""
        return cls(directory or Path.cwd(), actor=actor)

    @property
    def issues_path(self) -> Path:
        return self.store_dir / ISSUES_FILENAME

    # -- Lifecycle -----------------------------------------------------------

    def init(self) -> None:
        """Create the store directory and an empty issue file if absent. Idempotent.

        A freshly created file counts as loaded (empty); an existing one must
        still be ``load()``-ed before ``store()``.
        """
        self.store_dir.mkdir(parents=True, exist_ok=True)
        if self.issues_path.exists():
            return
        self.issues_path.touch()
        logger.info("Initialized issue file %s", self.issues_path)
        if not self._loaded:
            self.root = new_root()
            self._reindex()
            self._loaded = True

    def load(self) -> None:
        """Parse the issue file into the tree and rebuild the index."""
        try:
            text = self.issues_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            msg = f"Issue file not found: {self.issues_path}"
            raise NotFoundError(msg) from None
        except UnicodeDecodeError as exc:
            msg = f"Issue file {self.issues_path} is not valid UTF-8: {exc}"
            raise ParseError(msg) from exc
        self.root = parse(text)
        self._reindex()
        self._loaded = True
        logger.debug("Loaded %d issues from %s", len(self._ids), self.issues_path)

    def store(self) -> None:
        """Rewrite the whole issue file from the tree."""
        if not self._loaded:
            msg = "Issues were never loaded or initialized"
            raise NotLoadedError(msg)
        write_atomic(self.issues_path, dump(self.root))
        logger.debug("Stored %d issues to %s", len(self._ids), self.issues_path)

    # -- Index ---------------------------------------------------------------

    def _reindex(self) -> None:
        self._by_id = {issue.key: issue for issue in self.root.branches()}
        self._ids = sorted(self._by_id)

    def issue(self, id_or_prefix: str) -> Branch | None:
        """Return the first issue (in id order) whose id starts with *id_or_prefix*.

        An ambiguous prefix resolves to the lowest matching id.
        """
        if not id_or_prefix:
            return None
        idx = bisect.bisect_left(self._ids, id_or_prefix)
        if idx < len(self._ids) and self._ids[idx].startswith(id_or_prefix):
            return self._by_id[self._ids[idx]]
        return None

    def get_issue(self, id_or_prefix: str) -> Branch:
        """Like ``issue()`` but raises NotFoundError."""
        issue = self.issue(id_or_prefix)
        if issue is None:
            msg = f"Issue not found: {id_or_prefix}"
            raise NotFoundError(msg)
        return issue

    def issue_ids(self) -> list[str]:
        """All issue ids in tree order."""
        return [issue.key for issue in self.root.branches()]

    def iter_issues(self) -> list[Branch]:
        return list(self.root.branches())

    # -- Mutation ------------------------------------------------------------

    def new_issues(self, count: int = 1, *, actor: str | None = None) -> list[Branch]:
        """Append *count* fresh issues stamped with *actor* and return them."""
        count = parse_count(count)
        created = stamp(actor or self.actor)
        issues = []
        for _ in range(count):
            issue = new_issue_branch(str(uuid.uuid4()), created)
            self.root.append(issue)
            issues.append(issue)
        self._reindex()
        logger.info("Created %d issue(s)", count, extra={"issue_id": issues[0].key})
        return issues

    def replace_issue(self, issue_id: str, branch: Branch) -> None:
        """Swap the whole subtree of *issue_id* for *branch*, keeping its position."""
        current = self._by_id.get(issue_id)
        if current is None:
            msg = f"Issue not found: {issue_id}"
            raise NotFoundError(msg)
        for i, kid in enumerate(self.root.kids):
            if kid is current:
                self.root.kids[i] = branch
                break
        self._reindex()

    def touch(self, issue: Branch, *, actor: str | None = None) -> None:
        """Stamp the issue's ``updated`` field."""
        set_field(issue, "updated", stamp(actor or self.actor))

    def set_value(self, issue: Branch, field: str, value: str, *, actor: str | None = None) -> None:
        """Set a field and stamp ``updated``."""
        set_field(issue, field, value)
        self.touch(issue, actor=actor)

    def close_issue(self, issue: Branch, *, actor: str | None = None) -> None:
        who = actor or self.actor
        set_field(issue, "closed", stamp(who))
        self.touch(issue, actor=who)

    def reopen_issue(self, issue: Branch, *, actor: str | None = None) -> None:
        set_field(issue, "closed", "")
        self.touch(issue, actor=actor)

    def add_comment(self, issue: Branch, text: str, *, actor: str | None = None) -> str:
        """Append a comment and return its stamp key."""
        who = actor or self.actor
        branch = add_comment(issue, text, who)
        self.touch(issue, actor=who)
        return branch.key
