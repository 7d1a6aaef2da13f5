"""Helpers for aligning externally reported spans with the live document."""

from __future__ import annotations

from dataclasses import dataclass

from .models import LineColumn

_BYTE_ENCODING = "utf-8"


@dataclass(slots=True, frozen=True)
class NormalizedSpan:
    """Code-point span clamped to the document plus the text it covers."""

    start: int
    end: int
    snippet: str


def normalize_span(text: str, start: int, end: int) -> NormalizedSpan | None:
    """Map ``[start, end)`` onto ``text`` and capture the covered snippet.

    Offsets already valid as code-point indexes are used verbatim. Anything
    else is treated as UTF-8 byte offsets, mapped to code points and clamped.
    Returns ``None`` when the document is empty or the span collapses.
    """

    document = text or ""
    length = len(document)
    if not length:
        return None
    start = int(start)
    end = int(end)

    if 0 <= start < end <= length:
        snippet = document[start:end]
        if snippet:
            return NormalizedSpan(start=start, end=end, snippet=snippet)

    mapped_start = _clamp(byte_offset_to_index(document, start), length)
    mapped_end = max(byte_offset_to_index(document, end), mapped_start + 1)
    mapped_end = min(mapped_end, length)
    if mapped_end <= mapped_start:
        mapped_end = min(length, mapped_start + 1)

    snippet = document[mapped_start:mapped_end]
    if not snippet:
        return None
    return NormalizedSpan(start=mapped_start, end=mapped_end, snippet=snippet)


def byte_offset_to_index(text: str, offset: int, *, encoding: str = _BYTE_ENCODING) -> int:
    """Return the code-point index where the encoded length first exceeds ``offset``."""

    consumed = 0
    for index, char in enumerate(text):
        consumed += len(char.encode(encoding, errors="surrogatepass"))
        if consumed > offset:
            return index
    return len(text)


def offset_to_line_col(text: str, start: int, end: int) -> tuple[LineColumn, LineColumn] | None:
    """Return 1-based ``(line, column)`` positions for a code-point span."""

    document = text or ""
    if start < 0 or end < 0 or start > len(document):
        return None
    length = len(document)
    return _offset_to_position(document, _clamp(start, length)), _offset_to_position(
        document, _clamp(end, length)
    )


def _offset_to_position(text: str, offset: int) -> LineColumn:
    line = text.count("\n", 0, offset)
    last_newline = text.rfind("\n", 0, offset)
    column = offset - (last_newline + 1)
    return LineColumn(line=line + 1, column=column + 1)


def _clamp(value: int, length: int) -> int:
    return max(0, min(int(value), length))


__all__ = ["NormalizedSpan", "byte_offset_to_index", "normalize_span", "offset_to_line_col"]
