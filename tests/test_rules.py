"""Tests for the false-positive suppression rules."""

from __future__ import annotations

import pytest

from proofline.diagnostics.models import IssueCategory, RawIssue
from proofline.diagnostics.refine import refine_issues
from proofline.diagnostics.rules import (
    InlineSpan,
    SuppressionCandidate,
    SuppressionContext,
    compute_inline_code_spans,
    contains_parenthetical_list,
    contains_shortcut,
    default_rules,
    first_match,
    is_likely_foreign,
    normalize_dictionary_word,
    should_suppress,
)
from proofline.services.dictionary import CustomDictionary


def _candidate(snippet: str, category: IssueCategory, *, start: int = 0, suggestion: str | None = None):
    return SuppressionCandidate(
        start=start,
        end=start + len(snippet),
        snippet=snippet,
        category=category,
        suggestion=suggestion,
    )


def test_inline_code_spans_include_fences() -> None:
    assert compute_inline_code_spans("a `code` b") == (InlineSpan(2, 8),)


def test_inline_code_spans_match_fence_length() -> None:
    text = "``a`b`` 그리고 `c`"
    assert compute_inline_code_spans(text) == (InlineSpan(0, 7), InlineSpan(12, 15))


def test_unclosed_inline_code_is_ignored() -> None:
    assert compute_inline_code_spans("열린 `코드") == ()


def test_inline_code_rule_uses_half_open_overlap() -> None:
    spans = (InlineSpan(2, 8),)

    assert should_suppress("맞춤", None, IssueCategory.TYPO, start=6, end=10, inline_spans=spans)
    assert not should_suppress("맞춤", None, IssueCategory.TYPO, start=8, end=10, inline_spans=spans)


def test_inline_code_suppression_is_never_readmitted() -> None:
    text = "여기 `teh` 있음"
    issues = [RawIssue(start=4, end=7, message="TYPO", category_tag="TYPO")]
    context = SuppressionContext(ignore_foreign_script=False)

    assert refine_issues(text, issues, context=context) == []


def test_blank_snippet_is_suppressed() -> None:
    assert first_match(_candidate("   ", IssueCategory.TYPO), SuppressionContext()) == "blank"


def test_foreign_script_rule_respects_setting() -> None:
    candidate = _candidate("hello", IssueCategory.TYPO)

    assert first_match(candidate, SuppressionContext(ignore_foreign_script=True)) == "foreign_script"
    assert first_match(candidate, SuppressionContext(ignore_foreign_script=False)) is None


def test_is_likely_foreign() -> None:
    assert is_likely_foreign("Hello, world!")
    assert not is_likely_foreign("hello 세상")
    assert not is_likely_foreign("1234 !!")


@pytest.mark.parametrize("category", list(IssueCategory))
def test_urls_are_always_suppressed(category: IssueCategory) -> None:
    assert should_suppress("https://a.co", None, category, ignore_foreign_script=False)
    candidate = _candidate("https://a.co", category)
    assert first_match(candidate, SuppressionContext(ignore_foreign_script=False)) == "url_or_email"


def test_email_inside_korean_text_is_suppressed() -> None:
    candidate = _candidate("연락처 me@example.com", IssueCategory.TYPO)
    assert first_match(candidate, SuppressionContext()) == "url_or_email"


def test_markdown_link_is_suppressed() -> None:
    candidate = _candidate("[문서](링크)", IssueCategory.STANDARD)
    assert first_match(candidate, SuppressionContext()) == "markdown_link"


@pytest.mark.parametrize("category", [IssueCategory.STANDARD, IssueCategory.SPACING])
def test_parenthetical_list_is_suppressed(category: IssueCategory) -> None:
    assert should_suppress("(가, 나)", None, category)
    assert first_match(_candidate("(가, 나)", category), SuppressionContext()) == "parenthetical_list"


def test_parenthetical_list_shape() -> None:
    assert contains_parenthetical_list("예시(사과, 배, 3-4)")
    assert not contains_parenthetical_list("(가)")
    assert not contains_parenthetical_list("(a, b)")
    assert not contains_parenthetical_list("(가, b)")


@pytest.mark.parametrize("snippet", ["Ctrl+C를", "가,나", "API를"])
def test_spacing_artifacts_only_apply_to_spacing(snippet: str) -> None:
    assert first_match(_candidate(snippet, IssueCategory.SPACING), SuppressionContext()) == "spacing_artifact"
    assert first_match(_candidate(snippet, IssueCategory.TYPO), SuppressionContext()) is None


def test_contains_shortcut_needs_joiner() -> None:
    assert contains_shortcut("cmd+p 누르기")
    assert contains_shortcut("[Shift]키")
    assert not contains_shortcut("shift 키")


def test_dictionary_rule_is_gated_by_settings_and_category() -> None:
    lookup = CustomDictionary({"np_set": ["바른"]}).lookup

    assert should_suppress("“바른”", None, IssueCategory.TYPO, custom_dict_enabled=True, dictionary_lookup=lookup)
    assert should_suppress(
        "바룬", "바른", IssueCategory.STANDARD, custom_dict_enabled=True, dictionary_lookup=lookup
    )
    assert not should_suppress("바른", None, IssueCategory.TYPO, dictionary_lookup=lookup)
    assert not should_suppress(
        "바른",
        None,
        IssueCategory.TYPO,
        custom_dict_enabled=True,
        suppress_dict_issues=False,
        dictionary_lookup=lookup,
    )
    for exempt in (IssueCategory.SPACING, IssueCategory.STATISTICAL):
        assert not should_suppress("바른", None, exempt, custom_dict_enabled=True, dictionary_lookup=lookup)


def test_normalize_dictionary_word_strips_quotes_and_spaces() -> None:
    assert normalize_dictionary_word("`바른 말'") == "바른말"
    assert normalize_dictionary_word(None) == ""


def test_default_rule_order() -> None:
    assert [rule.name for rule in default_rules()] == [
        "inline_code",
        "blank",
        "foreign_script",
        "url_or_email",
        "markdown_link",
        "parenthetical_list",
        "spacing_artifact",
        "dictionary",
    ]


def test_refine_issues_normalizes_and_classifies() -> None:
    text = "안녕하세요 세상"
    issues = [
        RawIssue(start=0, end=5, message="맞춤법 오류", suggestion="안녕하세요!", category_tag="TYPO"),
        RawIssue(start=6, end=8, message="SPACING 띄어 쓰세요"),
    ]

    refined = refine_issues(text, issues)

    assert [issue.category for issue in refined] == [IssueCategory.TYPO, IssueCategory.SPACING]
    assert refined[0].snippet == "안녕하세요"
    assert refined[1].snippet == "세상"
