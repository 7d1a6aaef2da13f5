"""Turn raw service spans into display-ready issues."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Sequence

from .categories import classify, extract_category_tag
from .models import ProcessedIssue, RawIssue
from .offsets import normalize_span
from .rules import (
    SuppressionCandidate,
    SuppressionContext,
    SuppressionRule,
    analysis_rules,
    compute_inline_code_spans,
    first_match,
)

LOGGER = logging.getLogger(__name__)


def refine_issues(
    text: str,
    issues: Iterable[RawIssue],
    *,
    context: SuppressionContext | None = None,
    rules: Sequence[SuppressionRule] | None = None,
) -> list[ProcessedIssue]:
    """Normalize, classify and filter ``issues`` against ``text``.

    ``context.inline_spans`` is computed from ``text`` when left empty.
    """

    active_context = context or SuppressionContext()
    if not active_context.inline_spans:
        active_context = replace(active_context, inline_spans=compute_inline_code_spans(text))
    active_rules = tuple(rules) if rules is not None else analysis_rules()

    processed: list[ProcessedIssue] = []
    for issue in issues:
        candidate = promote_issue(text, issue)
        if candidate is None:
            continue
        rule_name = first_match(as_candidate(candidate), active_context, active_rules)
        if rule_name is not None:
            LOGGER.debug(
                "Suppressed %s issue at [%d, %d) via %s",
                candidate.category.value,
                candidate.start,
                candidate.end,
                rule_name,
            )
            continue
        processed.append(candidate)
    return processed


def refine_local_issues(text: str, issues: Iterable[RawIssue]) -> list[ProcessedIssue]:
    """Promote fallback issues without running the false-positive rules."""

    processed: list[ProcessedIssue] = []
    for issue in issues:
        candidate = promote_issue(text, issue)
        if candidate is not None:
            processed.append(candidate)
    return processed


def promote_issue(text: str, issue: RawIssue) -> ProcessedIssue | None:
    """Return ``issue`` with a normalized span and canonical category."""

    span = normalize_span(text, issue.start, issue.end)
    if span is None:
        return None
    tag = issue.category_tag or extract_category_tag(issue.message)
    return ProcessedIssue(
        start=span.start,
        end=span.end,
        message=issue.message,
        category=classify(tag),
        snippet=span.snippet,
        suggestion=issue.suggestion,
        severity=issue.severity,
    )


def as_candidate(issue: ProcessedIssue) -> SuppressionCandidate:
    return SuppressionCandidate(
        start=issue.start,
        end=issue.end,
        snippet=issue.snippet,
        category=issue.category,
        suggestion=issue.suggestion,
    )


__all__ = ["as_candidate", "promote_issue", "refine_issues", "refine_local_issues"]
