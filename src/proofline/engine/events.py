"""Change notifications published by the diagnostics engine."""

from __future__ import annotations

import logging
from typing import Callable, Hashable, Type

_LOGGER = logging.getLogger(__name__)


class DiagnosticsEvent:
    """Base class for engine notifications."""

    __slots__ = ("document_id",)

    def __init__(self, document_id: Hashable | None) -> None:
        self.document_id = document_id


class DiagnosticsChangedEvent(DiagnosticsEvent):
    """Published after a non-stale run replaced a document's issues."""

    __slots__ = ("issue_count", "status", "token")

    def __init__(self, *, document_id: Hashable, issue_count: int, status: str, token: int) -> None:
        super().__init__(document_id)
        self.issue_count = int(issue_count)
        self.status = status
        self.token = int(token)


class DiagnosticsClearedEvent(DiagnosticsEvent):
    """Published when a document's issues were removed."""

    __slots__ = ("reason",)

    def __init__(self, *, document_id: Hashable, reason: str | None = None) -> None:
        super().__init__(document_id)
        self.reason = reason


class FiltersChangedEvent(DiagnosticsEvent):
    """Published when visibility toggles change; applies to every document."""

    __slots__ = ("setting",)

    def __init__(self, *, setting: str) -> None:
        super().__init__(None)
        self.setting = setting


class StatusChangedEvent(DiagnosticsEvent):
    """Published with the status signal of the latest run."""

    __slots__ = ("status", "label")

    def __init__(self, *, document_id: Hashable, status: str, label: str) -> None:
        super().__init__(document_id)
        self.status = status
        self.label = label


Subscriber = Callable[[DiagnosticsEvent], None]


class DiagnosticsBus:
    """Synchronous pub/sub bus keyed by event type.

    Handlers run in subscription order on the publishing thread. A handler
    that raises is logged and skipped so the remaining handlers still run.
    """

    def __init__(self) -> None:
        self._subscribers: dict[Type[DiagnosticsEvent], list[Subscriber]] = {}

    def subscribe(self, event_type: Type[DiagnosticsEvent], handler: Subscriber) -> Callable[[], None]:
        """Register ``handler``; the returned callable unsubscribes it."""

        self._subscribers.setdefault(event_type, []).append(handler)
        return lambda: self.unsubscribe(event_type, handler)

    def unsubscribe(self, event_type: Type[DiagnosticsEvent], handler: Subscriber) -> None:
        handlers = self._subscribers.get(event_type)
        if not handlers:
            return
        handlers[:] = [existing for existing in handlers if existing != handler]
        if not handlers:
            self._subscribers.pop(event_type, None)

    def publish(self, event: DiagnosticsEvent) -> None:
        to_invoke = [
            handler
            for event_type, handlers in list(self._subscribers.items())
            if isinstance(event, event_type)
            for handler in list(handlers)
        ]
        for handler in to_invoke:
            try:
                handler(event)
            except Exception:
                _LOGGER.exception("Diagnostics subscriber failed for %s", type(event).__name__)


__all__ = [
    "DiagnosticsBus",
    "DiagnosticsChangedEvent",
    "DiagnosticsClearedEvent",
    "DiagnosticsEvent",
    "FiltersChangedEvent",
    "StatusChangedEvent",
    "Subscriber",
]
