"""Shared pytest fixtures."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from proofline.engine.scheduler import ManualTimerBackend


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in list(os.environ):
        if name.startswith("PROOFLINE_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("PROOFLINE_LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture
def clock() -> ManualTimerBackend:
    return ManualTimerBackend()
