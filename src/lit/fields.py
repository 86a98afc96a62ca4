"""Issue field access: stamps, prefix-resolved leaves, tags, and comments.

Every path that reads or writes an issue field (get, set, match, compare,
sort) goes through ``resolve_field`` so abbreviated names resolve the same
way everywhere.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from lit.outline import Branch, Leaf
from lit.validation import check_field_name

FIELD_KEYS: tuple[str, ...] = (
    "created",
    "updated",
    "closed",
    "summary",
    "tags",
    "priority",
    "assigned",
    "description",
)

# Fields written as multi-line blocks.
LONG_FIELDS = frozenset({"description"})

# Pseudo-fields understood by the query engine rather than stored as leaves.
COMMENT_FIELD = "comment"
ATTACH_FIELD = "attach"


# ---------------------------------------------------------------------------
# Stamps
# ---------------------------------------------------------------------------


def now_rfc3339() -> str:
    return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def stamp(actor: str) -> str:
    """Return ``"<RFC3339 UTC time> <actor>"``."""
    return f"{now_rfc3339()} {actor}"


def split_stamp(value: str) -> tuple[str, str]:
    """Split a stamp into (timestamp, actor). Empty stamps give ("", "")."""
    ts, _, actor = value.strip().partition(" ")
    return ts, actor


# ---------------------------------------------------------------------------
# Field accessor
# ---------------------------------------------------------------------------


def canonical_field(prefix: str) -> str:
    """Expand *prefix* to the first known field key it starts, else return it as-is."""
    for key in FIELD_KEYS:
        if key.startswith(prefix):
            return key
    return prefix


def resolve_field(issue: Branch | None, prefix: str) -> Leaf | None:
    """Return the first named leaf of *issue* whose key starts with *prefix*.

    Comment branches and anonymous text leaves are never considered.
    """
    if issue is None:
        return None
    for leaf in issue.leaves():
        if leaf.is_named and leaf.key.startswith(prefix):
            return leaf
    return None


def get_field(issue: Branch | None, prefix: str) -> str | None:
    """Return the value of the field addressed by *prefix*, or None if absent."""
    leaf = resolve_field(issue, prefix)
    return leaf.value if leaf is not None else None


def set_field(issue: Branch, prefix: str, value: str) -> Leaf:
    """Set the field addressed by *prefix*, creating it if the issue lacks one.

    A new leaf takes the canonical key for *prefix* and is inserted after
    the last named leaf, ahead of any comments. Raises ValidationError for a
    name that is empty, starts with ``=``, or holds a colon or whitespace.
    """
    check_field_name(prefix)
    leaf = resolve_field(issue, prefix)
    if leaf is not None:
        leaf.value = value
        return leaf
    key = canonical_field(prefix)
    leaf = Leaf(key, value, "long" if key in LONG_FIELDS else "short")
    insert_at = 0
    for i, kid in enumerate(issue.kids):
        if isinstance(kid, Leaf) and kid.is_named:
            insert_at = i + 1
    issue.insert(insert_at, leaf)
    return leaf


def is_open(issue: Branch) -> bool:
    return not get_field(issue, "closed")


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------


def parse_tags(value: str) -> set[str]:
    return set(value.split())


def format_tags(tags: set[str]) -> str:
    return " ".join(sorted(tags))


def modify_tag(issue: Branch, tag: str, add: bool) -> str:
    """Add or remove *tag* and write the canonical tag string back. Idempotent."""
    tags = parse_tags(get_field(issue, "tags") or "")
    if add:
        tags.add(tag)
    else:
        tags.discard(tag)
    value = format_tags(tags)
    set_field(issue, "tags", value)
    return value


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


def comments(issue: Branch) -> list[Branch]:
    return list(issue.branches())


def comment_body(comment: Branch) -> str:
    return "\n".join(leaf.value for leaf in comment.leaves())


def add_comment(issue: Branch, text: str, actor: str) -> Branch:
    """Append a comment branch keyed by a fresh stamp."""
    branch = Branch(stamp(actor))
    branch.append(Leaf("", text, "text"))
    issue.append(branch)
    return branch


def issue_to_dict(issue: Branch) -> dict[str, Any]:
    """Plain-dict view of an issue for JSON output."""
    data: dict[str, Any] = {"id": issue.key}
    for leaf in issue.leaves():
        if leaf.is_named:
            data.setdefault(leaf.key, leaf.value)
    data["comments"] = [{"stamp": c.key, "text": comment_body(c)} for c in comments(issue)]
    return data
