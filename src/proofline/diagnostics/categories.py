"""Collapse free-form category tags into canonical issue categories."""

from __future__ import annotations

import re

from .models import CategoryInfo, IssueCategory

# Checked in order; the first group with a keyword contained in the tag wins.
_KEYWORD_GROUPS: tuple[tuple[IssueCategory, tuple[str, ...]], ...] = (
    (IssueCategory.TYPO, ("SPELLING", "맞춤법", "TYPO")),
    (IssueCategory.SPACING, ("SPACING", "띄어쓰기")),
    (IssueCategory.STANDARD, ("STANDARD", "표준어")),
    (IssueCategory.STATISTICAL, ("STATISTICAL", "통계")),
)

_CATEGORY_INFO: dict[IssueCategory, CategoryInfo] = {
    IssueCategory.TYPO: CategoryInfo(IssueCategory.TYPO, "맞춤법", "맞춤법/오타", "proofline-spelling"),
    IssueCategory.SPACING: CategoryInfo(IssueCategory.SPACING, "띄어쓰기", "띄어쓰기", "proofline-spacing"),
    IssueCategory.STANDARD: CategoryInfo(IssueCategory.STANDARD, "표준어", "표준어", "proofline-standard"),
    IssueCategory.STATISTICAL: CategoryInfo(
        IssueCategory.STATISTICAL, "통계", "통계적 제안", "proofline-statistical"
    ),
    IssueCategory.DEFAULT: CategoryInfo(IssueCategory.DEFAULT, "기타", "기타", "proofline-default"),
}

_LEADING_TAG = re.compile(r"^([A-Z_가-힣]+)")
UNKNOWN_TAG = "UNKNOWN"


def classify(tag: str | IssueCategory | None) -> IssueCategory:
    """Return the canonical category for ``tag`` (case-insensitive substring match)."""

    if isinstance(tag, IssueCategory):
        return tag
    normalized = (tag or "").upper()
    if not normalized:
        return IssueCategory.DEFAULT
    for category, keywords in _KEYWORD_GROUPS:
        if any(keyword in normalized for keyword in keywords):
            return category
    return IssueCategory.DEFAULT


def category_info(tag: str | IssueCategory | None) -> CategoryInfo:
    return _CATEGORY_INFO[classify(tag)]


def category_label(tag: str | IssueCategory | None) -> str:
    return category_info(tag).label


def category_tooltip(tag: str | IssueCategory | None) -> str:
    return category_info(tag).tooltip


def category_css_class(tag: str | IssueCategory | None) -> str:
    return category_info(tag).css_class


def extract_category_tag(message: str | None) -> str:
    """Pull the leading category word out of a service message.

    The correction service prefixes descriptions with the revision category
    (``"SPACING ..."``); messages without such a prefix map to ``UNKNOWN``.
    """

    match = _LEADING_TAG.match(message or "")
    if match:
        return match.group(1).upper()
    return UNKNOWN_TAG


def all_categories() -> tuple[IssueCategory, ...]:
    """Canonical categories in display order."""

    return tuple(category for category, _ in _KEYWORD_GROUPS) + (IssueCategory.DEFAULT,)


__all__ = [
    "UNKNOWN_TAG",
    "all_categories",
    "category_css_class",
    "category_info",
    "category_label",
    "category_tooltip",
    "classify",
    "extract_category_tag",
]
