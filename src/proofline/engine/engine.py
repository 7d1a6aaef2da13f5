"""Diagnostic lifecycle engine: scheduling, staleness checks and commits."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Awaitable, Callable, Collection, Hashable, Protocol, Sequence

from ..diagnostics.decorations import build_decorations
from ..diagnostics.heuristics import local_heuristics
from ..diagnostics.models import DecorationRange, IssueCategory, ProcessedIssue, RawIssue
from ..diagnostics.refine import as_candidate, refine_issues, refine_local_issues
from ..diagnostics.rules import DictionaryRule, SuppressionContext, compute_inline_code_spans
from ..services.errors import CorrectionError
from .events import (
    DiagnosticsBus,
    DiagnosticsChangedEvent,
    DiagnosticsClearedEvent,
    FiltersChangedEvent,
    StatusChangedEvent,
)
from .run_tracker import RunTracker
from .scheduler import AnalysisScheduler, TimerBackend
from .state import AnalysisOutcome, AnalysisStatus, DocumentStateStore, EngineSettings, status_label

LOGGER = logging.getLogger(__name__)

DictionaryLookup = Callable[[str], Collection[str]]


class CorrectionService(Protocol):
    """Anything that can turn text into raw issues asynchronously."""

    def analyze(self, text: str) -> Awaitable[list[RawIssue]]:
        ...


class DocumentSource(Protocol):
    def get_text(self, key: str) -> str | None:
        ...

    def is_included(self, key: str) -> bool:
        ...


class DiagnosticsEngine:
    """Keeps per-document diagnostics in sync with edits.

    All state lives on one event loop; the only suspension point inside
    :meth:`analyze` is the call to the correction service.
    """

    def __init__(
        self,
        *,
        settings: EngineSettings | None = None,
        service: CorrectionService | None = None,
        dictionary_lookup: DictionaryLookup | None = None,
        documents: DocumentSource | None = None,
        bus: DiagnosticsBus | None = None,
        timer_backend: TimerBackend | None = None,
    ) -> None:
        self._settings = settings or EngineSettings()
        self._service = service
        self._dictionary_lookup = dictionary_lookup
        self._documents = documents
        self._bus = bus or DiagnosticsBus()
        self._runs = RunTracker()
        self._store = DocumentStateStore()
        self._scheduler = AnalysisScheduler(self._on_timer_fired, backend=timer_backend)
        self._disabled_categories: set[IssueCategory] = set()
        self._tasks: set[asyncio.Task[AnalysisOutcome]] = set()
        self._closed = False

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------
    @property
    def settings(self) -> EngineSettings:
        return self._settings

    @property
    def bus(self) -> DiagnosticsBus:
        return self._bus

    @property
    def scheduler(self) -> AnalysisScheduler:
        return self._scheduler

    @property
    def runs(self) -> RunTracker:
        return self._runs

    def update_settings(self, settings: EngineSettings) -> None:
        previous = self._settings
        self._settings = settings
        if (previous.custom_dict_enabled, previous.suppress_dict_issues) != (
            settings.custom_dict_enabled,
            settings.suppress_dict_issues,
        ):
            self._bus.publish(FiltersChangedEvent(setting="dictionary"))

    def set_service(self, service: CorrectionService | None) -> None:
        self._service = service

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------
    def on_edit(self, key: str, snapshot_provider: Callable[[], str] | None = None) -> bool:
        """Schedule analysis after an edit; returns ``False`` when nothing was armed."""

        if self._closed or not self._settings.realtime:
            return False
        if self._documents is not None and not self._documents.is_included(key):
            return False
        provider = snapshot_provider or self._provider_for(key)
        self._scheduler.schedule(key, provider, self._settings.debounce_ms, self._settings.cooldown_ms)
        return True

    async def analyze_document(self, key: str) -> AnalysisOutcome | None:
        """Analyze ``key`` immediately using the document provider's text."""

        if self._documents is None:
            raise RuntimeError("analyze_document requires a document provider")
        if not self._documents.is_included(key):
            self.clear_diagnostics(key, reason="excluded")
            return None
        text = self._documents.get_text(key)
        if text is None:
            return None
        return await self.analyze(key, text)

    async def analyze(self, key: Hashable, text: str) -> AnalysisOutcome:
        """Run one analysis for ``key`` and commit it unless superseded."""

        token = self._runs.begin_run(key)
        record = self._store.ensure(key)
        record.content = text
        settings = self._settings

        if not settings.enabled:
            self.clear_diagnostics(key, reason="disabled")
            self._set_status(key, AnalysisStatus.DISABLED)
            return AnalysisOutcome(document_id=key, token=token, status=AnalysisStatus.DISABLED, committed=True)

        if self._service is None or not settings.has_credentials:
            issues = refine_local_issues(text, local_heuristics(text))
            return self._commit(key, token, issues, AnalysisStatus.LOCAL_NO_CREDENTIALS)

        self._set_status(key, AnalysisStatus.ANALYZING)
        try:
            raw = await self._service.analyze(text)
        except CorrectionError as exc:
            LOGGER.warning("Correction service failed for %s: %s", key, exc, exc_info=True)
            if self._runs.is_stale(key, token):
                return AnalysisOutcome(document_id=key, token=token, status=AnalysisStatus.LOCAL_SERVICE_ERROR)
            issues = refine_local_issues(text, local_heuristics(text))
            return self._commit(key, token, issues, AnalysisStatus.LOCAL_SERVICE_ERROR)

        context = SuppressionContext(
            inline_spans=compute_inline_code_spans(text),
            ignore_foreign_script=settings.ignore_foreign_script,
        )
        issues = refine_issues(text, raw, context=context)
        return self._commit(key, token, issues, AnalysisStatus.SERVICE)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------
    def get_diagnostics(self, key: Hashable) -> list[ProcessedIssue]:
        record = self._store.get(key)
        if record is None or record.issues is None:
            return []
        return list(record.issues)

    def get_visible_issues(self, key: Hashable) -> list[ProcessedIssue]:
        """Committed issues minus disabled categories and dictionary matches."""

        context = self._dictionary_context()
        rule = DictionaryRule()
        return [
            issue
            for issue in self.get_diagnostics(key)
            if issue.category not in self._disabled_categories and not rule.matches(as_candidate(issue), context)
        ]

    def get_decorations(self, key: Hashable, document_length: int | None = None) -> list[DecorationRange]:
        if document_length is None:
            document_length = len(self.get_cached_content(key) or "")
        return build_decorations(self.get_visible_issues(key), document_length)

    def get_cached_content(self, key: Hashable) -> str | None:
        record = self._store.get(key)
        return record.content if record else None

    def status(self, key: Hashable) -> AnalysisStatus:
        record = self._store.get(key)
        return record.status if record else AnalysisStatus.IDLE

    def has_diagnostics(self, key: Hashable) -> bool:
        record = self._store.get(key)
        return bool(record and record.issues is not None)

    # ------------------------------------------------------------------
    # Visibility toggles
    # ------------------------------------------------------------------
    def is_category_enabled(self, category: IssueCategory) -> bool:
        return category not in self._disabled_categories

    def toggle_category(self, category: IssueCategory) -> bool:
        """Flip visibility for ``category``; returns the new enabled state."""

        if category in self._disabled_categories:
            self._disabled_categories.discard(category)
            enabled = True
        else:
            self._disabled_categories.add(category)
            enabled = False
        self._bus.publish(FiltersChangedEvent(setting=f"category:{category.value}"))
        return enabled

    def reset_category_filters(self) -> None:
        if not self._disabled_categories:
            return
        self._disabled_categories.clear()
        self._bus.publish(FiltersChangedEvent(setting="categories"))

    def toggle_dictionary_suppression(self) -> bool:
        self._settings = replace(self._settings, suppress_dict_issues=not self._settings.suppress_dict_issues)
        self._bus.publish(FiltersChangedEvent(setting="dictionary"))
        return self._settings.suppress_dict_issues

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def clear_diagnostics(self, key: Hashable, *, reason: str | None = None) -> bool:
        record = self._store.get(key)
        if record is None or record.issues is None:
            return False
        record.issues = None
        self._bus.publish(DiagnosticsClearedEvent(document_id=key, reason=reason))
        return True

    def close_document(self, key: Hashable) -> None:
        """Forget every piece of state held for ``key``."""

        self._scheduler.forget(key)
        self._runs.forget(key)
        record = self._store.discard(key)
        if record is not None and record.issues is not None:
            self._bus.publish(DiagnosticsClearedEvent(document_id=key, reason="closed"))

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._scheduler.cancel_all()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def drain(self) -> None:
        """Wait for analyses spawned by timers to finish."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _commit(
        self,
        key: Hashable,
        token: int,
        issues: Sequence[ProcessedIssue],
        status: AnalysisStatus,
    ) -> AnalysisOutcome:
        outcome_issues = tuple(issues)
        if self._runs.is_stale(key, token):
            LOGGER.debug("Discarding %d issue(s) from stale run %s for %s", len(outcome_issues), token, key)
            return AnalysisOutcome(document_id=key, token=token, status=status, issues=outcome_issues)
        record = self._store.ensure(key)
        record.issues = outcome_issues
        record.committed_token = token
        self._scheduler.record_commit(key)
        self._bus.publish(
            DiagnosticsChangedEvent(
                document_id=key,
                issue_count=len(outcome_issues),
                status=status.value,
                token=token,
            )
        )
        self._set_status(key, status, len(outcome_issues))
        return AnalysisOutcome(document_id=key, token=token, status=status, issues=outcome_issues, committed=True)

    def _set_status(self, key: Hashable, status: AnalysisStatus, issue_count: int = 0) -> None:
        record = self._store.ensure(key)
        record.status = status
        self._bus.publish(StatusChangedEvent(document_id=key, status=status.value, label=status_label(status, issue_count)))

    def _dictionary_context(self) -> SuppressionContext:
        return SuppressionContext(
            custom_dict_enabled=self._settings.custom_dict_enabled,
            suppress_dict_issues=self._settings.suppress_dict_issues,
            dictionary_lookup=self._dictionary_lookup,
        )

    def _provider_for(self, key: str) -> Callable[[], str]:
        documents = self._documents

        def _snapshot() -> str:
            if documents is None:
                return self.get_cached_content(key) or ""
            return documents.get_text(key) or ""

        return _snapshot

    def _on_timer_fired(self, key: Hashable, text: str) -> None:
        if self._closed:
            return
        task = asyncio.ensure_future(self.analyze(key, text))
        self._tasks.add(task)
        task.add_done_callback(self._task_finished)

    def _task_finished(self, task: asyncio.Task[AnalysisOutcome]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error("Scheduled analysis failed", exc_info=exc)


__all__ = ["CorrectionService", "DiagnosticsEngine", "DictionaryLookup", "DocumentSource"]
