"""Rule table deciding which reported spans are likely false positives."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Collection, Iterable, Protocol, Sequence

from .models import IssueCategory

DictionaryLookup = Callable[[str], Collection[str]]

_HANGUL = "가-힣"
_HANGUL_CHAR = re.compile(f"[{_HANGUL}]")
_LATIN_CHAR = re.compile(r"[A-Za-z]")
_NON_LETTER = re.compile(f"[^A-Za-z{_HANGUL}]")
_URL = re.compile(r"https?://\S+", re.IGNORECASE)
_EMAIL = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
_MARKDOWN_LINK = re.compile(r"\[[^\]]+\]\([^)]+\)")
_PARENTHETICAL = re.compile(r"\(([^)]+)\)")
_LIST_PART = re.compile(f"^[{_HANGUL}0-9\\s·-]+$")
# Word boundaries are ASCII so a Hangul neighbour still terminates a token.
_SHORTCUT_KEY = re.compile(
    r"\b(?:cmd|ctrl|shift|alt|option|enter|esc|tab|space|backspace|delete|del)\b",
    re.IGNORECASE | re.ASCII,
)
_SHORTCUT_JOINER = re.compile(r"[+()\[\]]")
_HANGUL_COMMA_RUN = re.compile(f"[{_HANGUL}],[{_HANGUL}]")
_ALL_CAPS_TOKEN = re.compile(r"\b[A-Z0-9]{3,}\b", re.ASCII)
_DICTIONARY_NOISE = re.compile(r"[`\"'”“‘’\s]+")
_DICTIONARY_EXEMPT = frozenset({IssueCategory.SPACING, IssueCategory.STATISTICAL})


@dataclass(slots=True, frozen=True)
class InlineSpan:
    """Half-open span of an inline code run, backtick fences included."""

    start: int
    end: int

    def intersects(self, start: int, end: int) -> bool:
        return max(self.start, start) < min(self.end, end)


@dataclass(slots=True, frozen=True)
class SuppressionCandidate:
    """Normalized issue fields inspected by the rules."""

    start: int
    end: int
    snippet: str
    category: IssueCategory
    suggestion: str | None = None

    @property
    def trimmed(self) -> str:
        return self.snippet.strip()


@dataclass(slots=True)
class SuppressionContext:
    """Document- and settings-level state shared with every rule."""

    inline_spans: Sequence[InlineSpan] = field(default_factory=tuple)
    ignore_foreign_script: bool = True
    custom_dict_enabled: bool = False
    suppress_dict_issues: bool = True
    dictionary_lookup: DictionaryLookup | None = None


class SuppressionRule(Protocol):
    """Interface implemented by concrete rule classes."""

    name: str

    def matches(self, candidate: SuppressionCandidate, context: SuppressionContext) -> bool:
        ...


class InlineCodeRule:
    name = "inline_code"

    def matches(self, candidate: SuppressionCandidate, context: SuppressionContext) -> bool:
        return any(span.intersects(candidate.start, candidate.end) for span in context.inline_spans)


class BlankSnippetRule:
    name = "blank"

    def matches(self, candidate: SuppressionCandidate, context: SuppressionContext) -> bool:
        return not candidate.trimmed


class ForeignScriptRule:
    name = "foreign_script"

    def matches(self, candidate: SuppressionCandidate, context: SuppressionContext) -> bool:
        if not context.ignore_foreign_script:
            return False
        return is_likely_foreign(candidate.trimmed)


class UrlOrEmailRule:
    name = "url_or_email"

    def matches(self, candidate: SuppressionCandidate, context: SuppressionContext) -> bool:
        return contains_url_or_email(candidate.trimmed)


class MarkdownLinkRule:
    name = "markdown_link"

    def matches(self, candidate: SuppressionCandidate, context: SuppressionContext) -> bool:
        return bool(_MARKDOWN_LINK.search(candidate.trimmed))


class ParentheticalListRule:
    name = "parenthetical_list"

    def matches(self, candidate: SuppressionCandidate, context: SuppressionContext) -> bool:
        return contains_parenthetical_list(candidate.trimmed)


class SpacingArtifactRule:
    """Spacing reports on shortcuts, tight Hangul lists, or acronyms."""

    name = "spacing_artifact"

    def matches(self, candidate: SuppressionCandidate, context: SuppressionContext) -> bool:
        if candidate.category is not IssueCategory.SPACING:
            return False
        text = candidate.trimmed
        return (
            contains_shortcut(text)
            or bool(_HANGUL_COMMA_RUN.search(text))
            or bool(_ALL_CAPS_TOKEN.search(text))
        )


class DictionaryRule:
    name = "dictionary"

    def matches(self, candidate: SuppressionCandidate, context: SuppressionContext) -> bool:
        if not context.custom_dict_enabled or not context.suppress_dict_issues:
            return False
        if context.dictionary_lookup is None or candidate.category in _DICTIONARY_EXEMPT:
            return False
        for word in (candidate.snippet, candidate.suggestion or ""):
            normalized = normalize_dictionary_word(word)
            if normalized and context.dictionary_lookup(normalized):
                return True
        return False


def analysis_rules() -> tuple[SuppressionRule, ...]:
    """Rules that depend only on the text; applied once when results commit."""

    return (
        InlineCodeRule(),
        BlankSnippetRule(),
        ForeignScriptRule(),
        UrlOrEmailRule(),
        MarkdownLinkRule(),
        ParentheticalListRule(),
        SpacingArtifactRule(),
    )


def default_rules() -> tuple[SuppressionRule, ...]:
    return analysis_rules() + (DictionaryRule(),)


def first_match(
    candidate: SuppressionCandidate,
    context: SuppressionContext,
    rules: Iterable[SuppressionRule] | None = None,
) -> str | None:
    """Return the name of the first rule that suppresses ``candidate``."""

    for rule in rules if rules is not None else default_rules():
        if rule.matches(candidate, context):
            return rule.name
    return None


def should_suppress(
    snippet: str,
    suggestion: str | None,
    category: IssueCategory,
    *,
    start: int = 0,
    end: int | None = None,
    inline_spans: Sequence[InlineSpan] = (),
    ignore_foreign_script: bool = True,
    custom_dict_enabled: bool = False,
    suppress_dict_issues: bool = True,
    dictionary_lookup: DictionaryLookup | None = None,
) -> bool:
    candidate = SuppressionCandidate(
        start=start,
        end=start + len(snippet) if end is None else end,
        snippet=snippet,
        category=category,
        suggestion=suggestion,
    )
    context = SuppressionContext(
        inline_spans=tuple(inline_spans),
        ignore_foreign_script=ignore_foreign_script,
        custom_dict_enabled=custom_dict_enabled,
        suppress_dict_issues=suppress_dict_issues,
        dictionary_lookup=dictionary_lookup,
    )
    return first_match(candidate, context) is not None


def compute_inline_code_spans(text: str) -> tuple[InlineSpan, ...]:
    """Locate inline code runs; a fence of ``n`` backticks closes on the next ``n``-run."""

    spans: list[InlineSpan] = []
    length = len(text)
    index = 0
    while index < length:
        if text[index] != "`":
            index += 1
            continue
        fence_len = 1
        while index + fence_len < length and text[index + fence_len] == "`":
            fence_len += 1
        opening = index
        index += fence_len
        closing = text.find("`" * fence_len, index)
        if closing == -1:
            break
        spans.append(InlineSpan(start=opening, end=closing + fence_len))
        index = closing + fence_len
    return tuple(spans)


def is_likely_foreign(text: str) -> bool:
    cleaned = _NON_LETTER.sub("", text)
    if not cleaned or _HANGUL_CHAR.search(cleaned):
        return False
    return bool(_LATIN_CHAR.search(cleaned))


def contains_url_or_email(text: str) -> bool:
    return bool(_URL.search(text) or _EMAIL.search(text))


def contains_shortcut(text: str) -> bool:
    if not _SHORTCUT_KEY.search(text):
        return False
    return bool(_SHORTCUT_JOINER.search(text))


def contains_parenthetical_list(text: str) -> bool:
    match = _PARENTHETICAL.search(text)
    if not match:
        return False
    inner = match.group(1)
    if not _HANGUL_CHAR.search(inner):
        return False
    parts = [part.strip() for part in inner.split(",") if part.strip()]
    if len(parts) < 2:
        return False
    return all(_LIST_PART.match(part) for part in parts)


def normalize_dictionary_word(text: str) -> str:
    return _DICTIONARY_NOISE.sub("", text or "").strip()


__all__ = [
    "BlankSnippetRule",
    "DictionaryLookup",
    "DictionaryRule",
    "ForeignScriptRule",
    "InlineCodeRule",
    "InlineSpan",
    "MarkdownLinkRule",
    "ParentheticalListRule",
    "SpacingArtifactRule",
    "SuppressionCandidate",
    "SuppressionContext",
    "SuppressionRule",
    "UrlOrEmailRule",
    "analysis_rules",
    "compute_inline_code_spans",
    "default_rules",
    "first_match",
    "normalize_dictionary_word",
    "should_suppress",
]
