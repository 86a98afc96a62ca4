"""Ordered, keyed outline documents: the on-disk format of the issue file.

A document is a tree of ``Branch`` nodes (named, ordered children) and
``Leaf`` nodes (named scalar values, multi-line values, or anonymous text).
The text syntax is line oriented::

    = 1b4e28ba-2fa1-11d2-883f-0016d3cca427
    created: 2026-01-15T10:00:00Z alice
    summary: Crash on empty input
    description::
    Steps to reproduce
    ...
    ::
    == 2026-01-16T08:30:00Z bob
    ::
    Can reproduce on main.
    ::

``=`` repeated *n* times opens a branch at depth *n*; ``key: value`` is a
short leaf; ``key::`` opens a long leaf and a bare ``::`` opens an anonymous
text leaf, both closed by a line holding only ``::``. Inside a block, lines
that begin with ``::`` or a backslash are escaped with a leading backslash.

Only ``\\n`` ends a line. Carriage returns, form feeds and Unicode line
separators are ordinary value characters, and a short value is everything
after the single space following ``key:``.
"""

from __future__ import annotations

import copy
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Literal, Union

from lit.errors import ParseError

LeafKind = Literal["short", "long", "text"]

_BLOCK = "::"
_ESCAPE = "\\"


@dataclass
class Leaf:
    key: str
    value: str = ""
    kind: LeafKind = "short"

    @property
    def is_named(self) -> bool:
        return self.kind != "text"


@dataclass
class Branch:
    key: str
    kids: list[Node] = field(default_factory=list)

    def append(self, node: Node) -> None:
        self.kids.append(node)

    def insert(self, index: int, node: Node) -> None:
        self.kids.insert(index, node)

    def branches(self) -> Iterator[Branch]:
        """Yield direct child branches in order."""
        for kid in self.kids:
            if isinstance(kid, Branch):
                yield kid

    def leaves(self) -> Iterator[Leaf]:
        """Yield direct child leaves in order."""
        for kid in self.kids:
            if isinstance(kid, Leaf):
                yield kid

    def copy(self) -> Branch:
        """Return a deep copy of this subtree."""
        return copy.deepcopy(self)


Node = Union[Branch, Leaf]


def new_root() -> Branch:
    return Branch("")


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse(text: str) -> Branch:
    """Parse outline *text* into a root branch. Raises ParseError."""
    root = new_root()
    stack: list[Branch] = [root]
    block: Leaf | None = None
    block_start = 0
    block_lines: list[str] = []

    for lineno, line in enumerate(text.split("\n"), start=1):
        if block is not None:
            if line == _BLOCK:
                block.value = "\n".join(block_lines)
                stack[-1].append(block)
                block = None
                block_lines = []
            elif line.startswith(_ESCAPE):
                block_lines.append(line[1:])
            else:
                block_lines.append(line)
            continue

        if not line.strip():
            continue

        if line.startswith("="):
            depth = len(line) - len(line.lstrip("="))
            key = line[depth:].strip()
            if not key:
                raise ParseError("branch has no key", line=lineno)
            if depth > len(stack):
                raise ParseError(f"branch at depth {depth} has no parent", line=lineno)
            del stack[depth:]
            branch = Branch(key)
            stack[-1].append(branch)
            stack.append(branch)
            continue

        if line == _BLOCK:
            block = Leaf("", kind="text")
            block_start = lineno
            continue

        key, sep, rest = line.partition(":")
        key = key.strip()
        if not sep or not key:
            raise ParseError(f"expected 'key: value', got {line!r}", line=lineno)
        if rest == ":":
            block = Leaf(key, kind="long")
            block_start = lineno
            continue
        stack[-1].append(Leaf(key, rest[1:] if rest.startswith(" ") else rest))

    if block is not None:
        raise ParseError("unterminated block", line=block_start)
    return root


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def _block_lines(value: str) -> list[str]:
    if not value:
        return []
    out = []
    for line in value.split("\n"):
        if line.startswith((_BLOCK, _ESCAPE)):
            line = _ESCAPE + line
        out.append(line)
    return out


def _dump_node(node: Node, depth: int, out: list[str]) -> None:
    if isinstance(node, Branch):
        if depth == 1 and out:
            out.append("")
        out.append(f"{'=' * depth} {node.key}")
        for kid in node.kids:
            _dump_node(kid, depth + 1, out)
        return
    if node.kind == "text":
        out.append(_BLOCK)
    elif node.kind == "long" or "\n" in node.value:
        out.append(f"{node.key}{_BLOCK}")
    else:
        out.append(f"{node.key}: {node.value}" if node.value else f"{node.key}:")
        return
    out.extend(_block_lines(node.value))
    out.append(_BLOCK)


def dump(root: Branch) -> str:
    """Serialize the children of *root* to outline text."""
    out: list[str] = []
    for kid in root.kids:
        _dump_node(kid, 1, out)
    return "\n".join(out) + "\n" if out else ""
