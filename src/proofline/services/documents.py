"""Document providers and the glob-based inclusion policy."""

from __future__ import annotations

import fnmatch
from pathlib import Path, PurePosixPath
from typing import Iterable, Protocol


class DocumentProvider(Protocol):
    """Supplies document text and decides which documents participate."""

    def get_text(self, key: str) -> str | None:
        ...

    def is_included(self, key: str) -> bool:
        ...


class InclusionPolicy:
    """Matches document paths against include globs; no globs means everything."""

    def __init__(self, include_globs: Iterable[str] = ("**/*.md",)) -> None:
        self._globs = tuple(pattern.strip() for pattern in include_globs if pattern and pattern.strip())

    @property
    def globs(self) -> tuple[str, ...]:
        return self._globs

    def __call__(self, key: str) -> bool:
        return self.matches(key)

    def matches(self, key: str) -> bool:
        if not self._globs:
            return True
        relative = PurePosixPath(str(key).replace("\\", "/")).as_posix().lstrip("/")
        anchored = f"/{relative}"
        return any(
            fnmatch.fnmatchcase(relative, pattern) or fnmatch.fnmatchcase(anchored, pattern)
            for pattern in self._globs
        )


class InMemoryDocumentProvider:
    """Dictionary-backed provider used by the CLI and tests."""

    def __init__(self, policy: InclusionPolicy | None = None) -> None:
        self._policy = policy or InclusionPolicy()
        self._texts: dict[str, str] = {}

    def set_text(self, key: str, text: str) -> None:
        self._texts[key] = text

    def remove(self, key: str) -> None:
        self._texts.pop(key, None)

    def get_text(self, key: str) -> str | None:
        return self._texts.get(key)

    def is_included(self, key: str) -> bool:
        return self._policy.matches(key)


class FileDocumentProvider(InMemoryDocumentProvider):
    """Reads documents from disk on demand, preferring in-memory overrides."""

    def __init__(self, root: Path | str | None = None, policy: InclusionPolicy | None = None) -> None:
        super().__init__(policy)
        self._root = Path(root) if root is not None else None

    def get_text(self, key: str) -> str | None:
        text = super().get_text(key)
        if text is not None:
            return text
        path = self._root / key if self._root is not None else Path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None


__all__ = ["DocumentProvider", "FileDocumentProvider", "InMemoryDocumentProvider", "InclusionPolicy"]
