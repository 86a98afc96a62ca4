"""Selection specs: the token grammar commands use to pick issues.

Grammar (clauses may be chained; results are intersected)::

    all | open | closed
    with <field> [value]      without <field> [value]
    less <field> <value>      greater <field> <value>
    sort <field>              rsort <field>
    <id-prefix> ...

A spec with no clauses selects open issues. A ``with``/``without`` value is
optional: the next token is taken as the value unless it is a keyword.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal

from lit.errors import ValidationError

ClauseOp = Literal["all", "open", "closed", "with", "without", "less", "greater", "ids"]

_SIMPLE = frozenset({"all", "open", "closed"})
_MATCH = frozenset({"with", "without"})
_COMPARE = frozenset({"less", "greater"})
_SORT = frozenset({"sort", "rsort"})
KEYWORDS = _SIMPLE | _MATCH | _COMPARE | _SORT


@dataclass(frozen=True)
class Clause:
    op: ClauseOp
    field: str = ""
    value: str = ""
    ids: tuple[str, ...] = ()


@dataclass
class Selection:
    clauses: list[Clause] = field(default_factory=list)
    # (field, ascending) pairs, applied in order
    sorts: list[tuple[str, bool]] = field(default_factory=list)


def parse_selection(tokens: Sequence[str]) -> Selection:
    """Parse CLI tokens into a Selection. Raises ValidationError on bad specs."""
    selection = Selection()
    pending_ids: list[str] = []
    i = 0

    def take(what: str, op: str) -> str:
        nonlocal i
        if i >= len(tokens):
            raise ValidationError(f"'{op}' requires a {what}")
        tok = tokens[i]
        i += 1
        return tok

    def flush_ids() -> None:
        if pending_ids:
            selection.clauses.append(Clause("ids", ids=tuple(pending_ids)))
            pending_ids.clear()

    while i < len(tokens):
        tok = tokens[i]
        i += 1
        if tok not in KEYWORDS:
            pending_ids.append(tok)
            continue
        flush_ids()
        if tok in _SIMPLE:
            selection.clauses.append(Clause(tok))  # type: ignore[arg-type]
        elif tok in _MATCH:
            name = take("field", tok)
            value = ""
            if i < len(tokens) and tokens[i] not in KEYWORDS:
                value = tokens[i]
                i += 1
            selection.clauses.append(Clause(tok, name, value))  # type: ignore[arg-type]
        elif tok in _COMPARE:
            name = take("field", tok)
            value = take("value", tok)
            selection.clauses.append(Clause(tok, name, value))  # type: ignore[arg-type]
        else:
            selection.sorts.append((take("field", tok), tok == "sort"))
    flush_ids()

    if not selection.clauses:
        selection.clauses.append(Clause("open"))
    return selection
