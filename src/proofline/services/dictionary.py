"""In-memory custom dictionary consulted by the dictionary suppression rule."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping

LOGGER = logging.getLogger(__name__)

WORD_LIST = "WORD_LIST"
WORD_LIST_COMPOUND = "WORD_LIST_COMPOUND"


@dataclass(slots=True, frozen=True)
class DictionaryBucket:
    """Semantic bucket the service understands."""

    key: str
    label: str
    description: str
    list_type: str = WORD_LIST


BUCKETS: tuple[DictionaryBucket, ...] = (
    DictionaryBucket("np_set", "고유명사", "인명, 작품명 등 단일 명사"),
    DictionaryBucket("cp_set", "복합명사", "여러 단어로 구성된 복합 명사"),
    DictionaryBucket("cp_caret_set", "복합명사 분리", "^ 로 분리된 복합명사", WORD_LIST_COMPOUND),
    DictionaryBucket("vv_set", "동사", "새로운 동사/용언"),
    DictionaryBucket("va_set", "형용사", "새로운 형용사/형용사적 표현"),
)
_BUCKETS_BY_KEY = {bucket.key: bucket for bucket in BUCKETS}


@dataclass(slots=True, frozen=True)
class DictionaryEntry:
    bucket: str
    word: str


class CustomDictionary:
    """Words grouped by bucket, each bucket kept sorted and duplicate free."""

    def __init__(self, data: Mapping[str, Iterable[str]] | None = None) -> None:
        self._words: dict[str, list[str]] = {bucket.key: [] for bucket in BUCKETS}
        self._listeners: list[Callable[[], None]] = []
        self.last_sync: float | None = None
        for key, words in (data or {}).items():
            if key not in self._words:
                LOGGER.debug("Ignoring unknown dictionary bucket %s", key)
                continue
            for word in words:
                self._insert(key, word)

    def lookup(self, word: str) -> set[str]:
        """Return the buckets containing ``word`` (exact match after trimming)."""

        normalized = (word or "").strip()
        if not normalized:
            return set()
        return {key for key, words in self._words.items() if normalized in words}

    def add(self, bucket: str, word: str) -> bool:
        _require_bucket(bucket)
        if not self._insert(bucket, word):
            return False
        self._notify()
        return True

    def remove(self, bucket: str, word: str) -> bool:
        _require_bucket(bucket)
        words = self._words[bucket]
        if word not in words:
            return False
        words.remove(word)
        self._notify()
        return True

    def words(self, bucket: str) -> tuple[str, ...]:
        _require_bucket(bucket)
        return tuple(self._words[bucket])

    def entries(self) -> list[DictionaryEntry]:
        return [DictionaryEntry(bucket=key, word=word) for key, words in self._words.items() for word in words]

    def __len__(self) -> int:
        return sum(len(words) for words in self._words.values())

    def to_dict(self) -> dict[str, list[str]]:
        return {key: list(words) for key, words in self._words.items()}

    def to_payload(self, domain: str) -> dict[str, Any]:
        """Build the custom-dictionary update request for ``domain``."""

        sets: dict[str, Any] = {"domain_name": domain}
        for bucket in BUCKETS:
            words = self._words[bucket.key]
            if not words:
                continue
            sets[bucket.key] = {
                "items": {word: 1 for word in words},
                "type": bucket.list_type,
                "name": domain,
            }
        return {"domain_name": domain, "dict": sets}

    def mark_synced(self, at: float | None = None) -> None:
        self.last_sync = time.time() if at is None else at

    def on_changed(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener) if listener in self._listeners else None

    def _insert(self, bucket: str, word: str) -> bool:
        normalized = (word or "").strip()
        words = self._words[bucket]
        if not normalized or normalized in words:
            return False
        words.append(normalized)
        words.sort()
        return True

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:  # pragma: no cover - listener isolation
                LOGGER.exception("Dictionary listener failed")


def _require_bucket(bucket: str) -> None:
    if bucket not in _BUCKETS_BY_KEY:
        raise KeyError(f"Unknown dictionary bucket: {bucket}")


__all__ = ["BUCKETS", "CustomDictionary", "DictionaryBucket", "DictionaryEntry", "WORD_LIST", "WORD_LIST_COMPOUND"]
