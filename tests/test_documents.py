"""Tests for document providers and the inclusion policy."""

from __future__ import annotations

from pathlib import Path

import pytest

from proofline.services.documents import FileDocumentProvider, InclusionPolicy, InMemoryDocumentProvider


@pytest.mark.parametrize(
    ("key", "expected"),
    [
        ("note.md", True),
        ("daily/2024/note.md", True),
        ("daily\\note.md", True),
        ("note.txt", False),
        ("daily/note.md.bak", False),
    ],
)
def test_default_policy_matches_markdown(key: str, expected: bool) -> None:
    assert InclusionPolicy().matches(key) is expected


def test_empty_policy_includes_everything() -> None:
    policy = InclusionPolicy([])

    assert policy("anything.bin")
    assert policy.globs == ()


def test_policy_supports_several_globs() -> None:
    policy = InclusionPolicy(["drafts/*.md", " *.txt ", ""])

    assert policy.globs == ("drafts/*.md", "*.txt")
    assert policy("drafts/a.md")
    assert policy("readme.txt")
    assert not policy("notes/a.md")


def test_in_memory_provider() -> None:
    provider = InMemoryDocumentProvider()
    provider.set_text("a.md", "내용")

    assert provider.get_text("a.md") == "내용"
    assert provider.is_included("a.md")
    provider.remove("a.md")
    assert provider.get_text("a.md") is None


def test_file_provider_reads_from_root(tmp_path: Path) -> None:
    (tmp_path / "notes").mkdir()
    (tmp_path / "notes" / "a.md").write_text("디스크 내용", encoding="utf-8")
    provider = FileDocumentProvider(tmp_path)

    assert provider.get_text("notes/a.md") == "디스크 내용"
    assert provider.get_text("notes/missing.md") is None

    provider.set_text("notes/a.md", "편집 중")
    assert provider.get_text("notes/a.md") == "편집 중"
