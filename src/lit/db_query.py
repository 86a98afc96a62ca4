"""QueryMixin: predicate, comparison, sort, and selection over the issue set.

All predicates are pure and walk the issues in tree order, returning ids in
that order. Field names are resolved by prefix via ``lit.fields``; the
``comment`` and ``attach`` pseudo-fields look at comment branches and the
attachment directory respectively.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from lit.db_base import StoreMixinProtocol
from lit.fields import ATTACH_FIELD, COMMENT_FIELD, comments, get_field
from lit.outline import Branch
from lit.selection import Clause, Selection

logger = logging.getLogger(__name__)


class QueryMixin(StoreMixinProtocol):
    """Match/compare/sort methods, composed into ``IssueStore``."""

    if TYPE_CHECKING:

        def attachments(self, issue: Branch) -> list[str]: ...

    # -- Containment ---------------------------------------------------------

    def match(self, field: str, value: str, want_match: bool = True) -> list[str]:
        """Ids of issues whose *field* contains *value* (or not, if want_match is False)."""
        return [issue.key for issue in self.iter_issues() if self._contains(issue, field, value) == want_match]

    def _contains(self, issue: Branch, field: str, value: str) -> bool:
        if field == COMMENT_FIELD:
            return _comment_contains(issue, value)
        if field == ATTACH_FIELD:
            return self._attach_contains(issue, value)
        current = get_field(issue, field)
        if current is None:
            return False
        if not value and not current:
            return False
        return value in current

    def _attach_contains(self, issue: Branch, value: str) -> bool:
        names = self.attachments(issue)
        if not value:
            return bool(names)
        return any(value in name for name in names)

    # -- Ordering comparison -------------------------------------------------

    def compare(self, field: str, value: str, want_less: bool = True) -> list[str]:
        """Ids of issues whose *field* sorts before *value* (want_less) or after it.

        Unset or empty fields count as greater than everything. An empty
        *value* selects nothing.
        """
        if not value:
            return []
        return [issue.key for issue in self.iter_issues() if self._compare(issue, field, value, want_less)]

    def _compare(self, issue: Branch, field: str, value: str, want_less: bool) -> bool:
        if field == COMMENT_FIELD:
            return _comment_compare(issue, value, want_less)
        if field == ATTACH_FIELD:
            return self._attach_compare(issue, value, want_less)
        current = get_field(issue, field)
        if not current:
            return not want_less
        return _ordered(current, value, want_less)

    def _attach_compare(self, issue: Branch, value: str, want_less: bool) -> bool:
        try:
            limit = int(value)
        except ValueError:
            return not want_less
        count = len(self.attachments(issue))
        return count < limit if want_less else count > limit

    # -- Sorting -------------------------------------------------------------

    def sort(self, ids: list[str], field: str, ascending: bool = True) -> list[str]:
        """Return *ids* stably ordered by *field*; missing values sort as ""."""

        def key(issue_id: str) -> str:
            return get_field(self.issue(issue_id), field) or ""

        return sorted(ids, key=key, reverse=not ascending)

    # -- Selection specs -----------------------------------------------------

    def select(self, selection: Selection) -> list[str]:
        """Resolve a parsed selection spec to an ordered id list.

        Clauses are intersected left to right, keeping the order of the
        first clause. Explicit id prefixes that resolve to nothing are
        logged and skipped.
        """
        result: list[str] | None = None
        for clause in selection.clauses:
            ids = self._select_clause(clause)
            if result is None:
                result = ids
            else:
                keep = set(ids)
                result = [i for i in result if i in keep]
        result = result or []
        for sort_field, ascending in selection.sorts:
            result = self.sort(result, sort_field, ascending)
        return result

    def _select_clause(self, clause: Clause) -> list[str]:
        if clause.op == "all":
            return self.issue_ids()
        if clause.op == "open":
            return self.match("closed", "", want_match=False)
        if clause.op == "closed":
            return self.match("closed", "", want_match=True)
        if clause.op == "with":
            return self.match(clause.field, clause.value, want_match=True)
        if clause.op == "without":
            return self.match(clause.field, clause.value, want_match=False)
        if clause.op == "less":
            return self.compare(clause.field, clause.value, want_less=True)
        if clause.op == "greater":
            return self.compare(clause.field, clause.value, want_less=False)
        ids: list[str] = []
        for prefix in clause.ids:
            issue = self.issue(prefix)
            if issue is None:
                logger.warning("No issue matches id %s", prefix)
                continue
            if issue.key not in ids:
                ids.append(issue.key)
        return ids


def _comment_contains(issue: Branch, value: str) -> bool:
    for comment in comments(issue):
        if value in comment.key:
            return True
        if any(value in leaf.value for leaf in comment.leaves()):
            return True
    return False


def _comment_compare(issue: Branch, value: str, want_less: bool) -> bool:
    first = next(issue.branches(), None)
    if first is None:
        return not want_less
    return _ordered(first.key, value, want_less)


def _ordered(current: str, value: str, want_less: bool) -> bool:
    return current < value if want_less else current > value
