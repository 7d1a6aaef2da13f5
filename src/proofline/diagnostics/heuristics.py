"""Pattern checks used when the correction service is unavailable."""

from __future__ import annotations

import re

from .models import IssueCategory, RawIssue, Severity

_MULTI_SPACE = re.compile(r" {2,}")
_LINE_BREAK = re.compile(r"\r?\n")

EXTRA_SPACE_MESSAGE = "여분의 공백이 있습니다."
TRAILING_SPACE_MESSAGE = "행 끝에 불필요한 공백이 있습니다."


def local_heuristics(text: str) -> list[RawIssue]:
    """Return spacing issues detectable without the service.

    Offsets are code-point offsets into ``text``.
    """

    document = text or ""
    issues: list[RawIssue] = []
    for match in _MULTI_SPACE.finditer(document):
        issues.append(
            RawIssue(
                start=match.start(),
                end=match.end(),
                message=EXTRA_SPACE_MESSAGE,
                suggestion=" ",
                severity=Severity.WARNING,
                category_tag=IssueCategory.SPACING.value,
            )
        )

    line_start = 0
    for line in _LINE_BREAK.split(document):
        trimmed_length = len(line.rstrip())
        if trimmed_length < len(line):
            issues.append(
                RawIssue(
                    start=line_start + trimmed_length,
                    end=line_start + len(line),
                    message=TRAILING_SPACE_MESSAGE,
                    suggestion="",
                    severity=Severity.INFO,
                    category_tag=IssueCategory.SPACING.value,
                )
            )
        line_start += len(line) + 1
    return issues


__all__ = ["EXTRA_SPACE_MESSAGE", "TRAILING_SPACE_MESSAGE", "local_heuristics"]
