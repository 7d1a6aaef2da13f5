"""Per-document run tokens used to discard superseded analysis results."""

from __future__ import annotations

import logging
from typing import Hashable

LOGGER = logging.getLogger(__name__)


class RunTracker:
    """Hands out strictly increasing tokens per document key.

    Only the token returned by the most recent :meth:`begin_run` for a key is
    considered current; results tagged with any older token are stale.
    """

    def __init__(self) -> None:
        self._tokens: dict[Hashable, int] = {}
        # Last token of each forgotten key; a reopened key resumes above it.
        self._retired: dict[Hashable, int] = {}

    def begin_run(self, key: Hashable) -> int:
        token = max(self._tokens.get(key, 0), self._retired.pop(key, 0)) + 1
        self._tokens[key] = token
        return token

    def is_stale(self, key: Hashable, token: int) -> bool:
        stale = self._tokens.get(key) != token
        if stale:
            LOGGER.debug("Run %s for %s superseded by %s", token, key, self._tokens.get(key))
        return stale

    def current(self, key: Hashable) -> int:
        return self._tokens.get(key, 0)

    def forget(self, key: Hashable) -> None:
        """Drop the counter for ``key``; in-flight runs for it become stale."""

        retired = self._tokens.pop(key, None)
        if retired is not None:
            self._retired[key] = retired

    def __len__(self) -> int:
        return len(self._tokens)

    def __contains__(self, key: object) -> bool:
        return key in self._tokens


__all__ = ["RunTracker"]
