"""Shared test stubs for the diagnostics engine tests."""

from __future__ import annotations

import asyncio
from typing import Callable

from proofline.diagnostics.models import RawIssue


class StaticService:
    """Correction service stub returning canned issues (or raising)."""

    def __init__(self, issues: list[RawIssue] | None = None, *, error: Exception | None = None) -> None:
        self.issues = list(issues or [])
        self.error = error
        self.calls: list[str] = []

    async def analyze(self, text: str) -> list[RawIssue]:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return list(self.issues)


class GatedService:
    """Service whose calls block until the test releases them one by one.

    ``responder`` builds the issues for a call from its text.
    """

    def __init__(self, responder: Callable[[str], list[RawIssue]]) -> None:
        self._responder = responder
        self.calls: list[str] = []
        self._gates: list[asyncio.Future[None]] = []

    async def analyze(self, text: str) -> list[RawIssue]:
        gate: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self.calls.append(text)
        self._gates.append(gate)
        await gate
        return self._responder(text)

    def release(self, index: int, error: Exception | None = None) -> None:
        gate = self._gates[index]
        if error is not None:
            gate.set_exception(error)
        else:
            gate.set_result(None)


async def settle(rounds: int = 5) -> None:
    """Let pending callbacks and tasks run."""

    for _ in range(rounds):
        await asyncio.sleep(0)
