"""Scheduling and staleness reconciliation for document diagnostics."""

from .engine import CorrectionService, DiagnosticsEngine
from .events import (
    DiagnosticsBus,
    DiagnosticsChangedEvent,
    DiagnosticsClearedEvent,
    DiagnosticsEvent,
    FiltersChangedEvent,
    StatusChangedEvent,
)
from .run_tracker import RunTracker
from .scheduler import AnalysisScheduler, AsyncioTimerBackend, ManualTimerBackend
from .state import AnalysisOutcome, AnalysisStatus, EngineSettings

__all__ = [
    "AnalysisOutcome",
    "AnalysisScheduler",
    "AnalysisStatus",
    "AsyncioTimerBackend",
    "CorrectionService",
    "DiagnosticsBus",
    "DiagnosticsChangedEvent",
    "DiagnosticsClearedEvent",
    "DiagnosticsEngine",
    "DiagnosticsEvent",
    "EngineSettings",
    "FiltersChangedEvent",
    "ManualTimerBackend",
    "RunTracker",
    "StatusChangedEvent",
]
