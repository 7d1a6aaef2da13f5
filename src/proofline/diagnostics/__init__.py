"""Issue normalization, classification and filtering."""

from .categories import category_info, category_label, classify
from .decorations import build_decorations
from .heuristics import local_heuristics
from .models import CategoryInfo, DecorationRange, IssueCategory, ProcessedIssue, RawIssue, Severity
from .offsets import NormalizedSpan, normalize_span, offset_to_line_col
from .refine import refine_issues, refine_local_issues
from .rules import SuppressionContext, compute_inline_code_spans, should_suppress

__all__ = [
    "CategoryInfo",
    "DecorationRange",
    "IssueCategory",
    "NormalizedSpan",
    "ProcessedIssue",
    "RawIssue",
    "Severity",
    "SuppressionContext",
    "build_decorations",
    "category_info",
    "category_label",
    "classify",
    "compute_inline_code_spans",
    "local_heuristics",
    "normalize_span",
    "offset_to_line_col",
    "refine_issues",
    "refine_local_issues",
    "should_suppress",
]
