"""Per-document state and value types owned by the diagnostics engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Hashable

from ..diagnostics.models import ProcessedIssue

REALTIME_TRIGGER = "realtime"
MANUAL_TRIGGER = "manual"


class AnalysisStatus(str, Enum):
    """Status signal describing how a document's issues were produced."""

    IDLE = "idle"
    DISABLED = "disabled"
    ANALYZING = "analyzing"
    SERVICE = "service"
    LOCAL_NO_CREDENTIALS = "local_no_credentials"
    LOCAL_SERVICE_ERROR = "local_service_error"


def status_label(status: AnalysisStatus, issue_count: int = 0) -> str:
    """Human readable status-bar text."""

    if status is AnalysisStatus.SERVICE:
        if issue_count == 0:
            return "No issues"
        return "1 issue" if issue_count == 1 else f"{issue_count} issues"
    return {
        AnalysisStatus.IDLE: "Idle",
        AnalysisStatus.DISABLED: "Disabled",
        AnalysisStatus.ANALYZING: "Analyzing...",
        AnalysisStatus.LOCAL_NO_CREDENTIALS: "API key required (local)",
        AnalysisStatus.LOCAL_SERVICE_ERROR: "API error (local)",
    }[status]


@dataclass(slots=True, frozen=True)
class EngineSettings:
    """Read-only settings view consumed by the engine."""

    enabled: bool = True
    has_credentials: bool = False
    debounce_ms: int = 1200
    cooldown_ms: int = 5000
    analysis_trigger: str = REALTIME_TRIGGER
    ignore_foreign_script: bool = True
    custom_dict_enabled: bool = False
    suppress_dict_issues: bool = True

    @property
    def realtime(self) -> bool:
        return self.analysis_trigger == REALTIME_TRIGGER


@dataclass(slots=True, frozen=True)
class AnalysisOutcome:
    """Result of one analysis attempt.

    ``committed`` is false when a newer run superseded this one; ``issues``
    then holds what the run computed but never published.
    """

    document_id: Hashable
    token: int
    status: AnalysisStatus
    issues: tuple[ProcessedIssue, ...] = ()
    committed: bool = False

    @property
    def label(self) -> str:
        return status_label(self.status, len(self.issues))


@dataclass(slots=True)
class DocumentRecord:
    """Everything the engine remembers about one document."""

    issues: tuple[ProcessedIssue, ...] | None = None
    content: str | None = None
    status: AnalysisStatus = AnalysisStatus.IDLE
    committed_token: int = 0


@dataclass(slots=True)
class DocumentStateStore:
    """Document records indexed by document key."""

    _records: dict[Hashable, DocumentRecord] = field(default_factory=dict)

    def get(self, key: Hashable) -> DocumentRecord | None:
        return self._records.get(key)

    def ensure(self, key: Hashable) -> DocumentRecord:
        record = self._records.get(key)
        if record is None:
            record = DocumentRecord()
            self._records[key] = record
        return record

    def discard(self, key: Hashable) -> DocumentRecord | None:
        return self._records.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def __len__(self) -> int:
        return len(self._records)


__all__ = [
    "AnalysisOutcome",
    "AnalysisStatus",
    "DocumentRecord",
    "DocumentStateStore",
    "EngineSettings",
    "MANUAL_TRIGGER",
    "REALTIME_TRIGGER",
    "status_label",
]
