"""Dataclasses shared across the diagnostics package."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping


class Severity(str, Enum):
    """Severity reported alongside an issue."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @classmethod
    def coerce(cls, value: Any) -> "Severity | None":
        if value is None or isinstance(value, Severity):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


class IssueCategory(str, Enum):
    """Canonical categories every raw category tag collapses into."""

    TYPO = "TYPO"
    SPACING = "SPACING"
    STANDARD = "STANDARD"
    STATISTICAL = "STATISTICAL"
    DEFAULT = "DEFAULT"


@dataclass(slots=True, frozen=True)
class CategoryInfo:
    """Display metadata attached to a canonical category."""

    category: IssueCategory
    label: str
    tooltip: str
    css_class: str


@dataclass(slots=True, frozen=True)
class RawIssue:
    """Issue as reported by the correction service or the local fallback.

    ``start``/``end`` are expressed in the reporting unit of the producer,
    which may be code points or UTF-8 bytes.
    """

    start: int
    end: int
    message: str
    suggestion: str | None = None
    severity: Severity | None = None
    category_tag: str | None = None

    def as_dict(self) -> dict[str, object]:
        return {
            "start": self.start,
            "end": self.end,
            "message": self.message,
            "suggestion": self.suggestion,
            "severity": self.severity.value if self.severity else None,
            "category_tag": self.category_tag,
        }


@dataclass(slots=True, frozen=True)
class ProcessedIssue:
    """Issue aligned to the live document and ready for display.

    Offsets are code-point offsets satisfying ``0 <= start < end <= len(text)``.
    """

    start: int
    end: int
    message: str
    category: IssueCategory
    snippet: str
    suggestion: str | None = None
    severity: Severity | None = None

    @property
    def length(self) -> int:
        return self.end - self.start

    def as_dict(self) -> dict[str, object]:
        return {
            "start": self.start,
            "end": self.end,
            "message": self.message,
            "category": self.category.value,
            "snippet": self.snippet,
            "suggestion": self.suggestion,
            "severity": self.severity.value if self.severity else None,
        }

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "ProcessedIssue":
        category = payload.get("category") or IssueCategory.DEFAULT.value
        return cls(
            start=int(payload["start"]),
            end=int(payload["end"]),
            message=str(payload.get("message") or ""),
            category=IssueCategory(category),
            snippet=str(payload.get("snippet") or ""),
            suggestion=payload.get("suggestion"),
            severity=Severity.coerce(payload.get("severity")),
        )


@dataclass(slots=True, frozen=True)
class DecorationRange:
    """Highlight span handed to the rendering collaborator."""

    start: int
    end: int
    classification: str
    issue: ProcessedIssue | None = None

    def to_tuple(self) -> tuple[int, int, str]:
        return (self.start, self.end, self.classification)


@dataclass(slots=True, frozen=True)
class LineColumn:
    """1-based line/column position."""

    line: int
    column: int


__all__ = [
    "CategoryInfo",
    "DecorationRange",
    "IssueCategory",
    "LineColumn",
    "ProcessedIssue",
    "RawIssue",
    "Severity",
]
