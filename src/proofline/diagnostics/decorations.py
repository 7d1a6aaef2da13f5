"""Build the ordered highlight ranges consumed by renderers."""

from __future__ import annotations

from typing import Iterable

from .categories import category_css_class
from .models import DecorationRange, ProcessedIssue


def build_decorations(issues: Iterable[ProcessedIssue], document_length: int) -> list[DecorationRange]:
    """Clip issues to ``[0, document_length]`` and sort by ``(start, end)``.

    Empty spans are dropped. Overlapping ranges are kept as-is; renderers that
    need disjoint input must filter them.
    """

    length = max(0, int(document_length))
    ranges: list[DecorationRange] = []
    for issue in issues:
        start = _clamp(issue.start, length)
        end = _clamp(issue.end, length)
        if end <= start:
            continue
        ranges.append(
            DecorationRange(
                start=start,
                end=end,
                classification=category_css_class(issue.category),
                issue=issue,
            )
        )
    ranges.sort(key=lambda item: (item.start, item.end))
    return ranges


def issue_at(issues: Iterable[ProcessedIssue], offset: int) -> ProcessedIssue | None:
    """Return the earliest-starting issue covering ``offset`` (hover lookups)."""

    covering = [issue for issue in issues if issue.start <= offset <= issue.end]
    if not covering:
        return None
    return min(covering, key=lambda issue: issue.start)


def _clamp(value: int, length: int) -> int:
    return max(0, min(int(value), length))


__all__ = ["build_decorations", "issue_at"]
