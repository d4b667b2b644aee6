"""Tests for article front matter parsing."""

from __future__ import annotations

import pytest
import yaml

from vaultsync.markdown.frontmatter import (
    ArticleMetadata,
    directory_category,
    generate_description,
    parse_article,
    parse_tags,
)

NOW = "2025-06-01T12:00:00+00:00"


def _parse(
    content: str,
    path: str = "Article/Tech/My Post.md",
    previous_created_at: str | None = None,
) -> ArticleMetadata:
    return parse_article(
        content,
        path,
        article_root="Article/",
        now=NOW,
        previous_created_at=previous_created_at,
    )


class TestParseArticle:
    def test_full_frontmatter(self) -> None:
        meta = _parse(
            "---\n"
            "title: Hello\n"
            "description: A greeting\n"
            "category: Notes\n"
            "tags: [python, '#rust']\n"
            "created: 2024-03-01 10:20:30\n"
            "updated: 2024-03-02\n"
            "---\n"
            "Body text\n"
        )

        assert meta.title == "Hello"
        assert meta.description == "A greeting"
        assert meta.category == "Notes"
        assert meta.tags == ["python", "rust"]
        assert meta.created_at == "2024-03-01T10:20:30+00:00"
        assert meta.updated_at == "2024-03-02T00:00:00+00:00"
        assert meta.hidden is False
        assert meta.body.strip() == "Body text"

    def test_frontmatter_removed_from_body(self) -> None:
        meta = _parse("---\ntitle: T\n---\n# Heading\n\ntext")
        assert "title:" not in meta.body
        assert meta.body.startswith("# Heading")

    def test_title_falls_back_to_file_name(self) -> None:
        assert _parse("just text").title == "My Post"

    def test_description_falls_back_to_excerpt(self) -> None:
        meta = _parse("# Title\n\nFirst paragraph.\n\n![[img.png]]\n\nSecond.")
        assert meta.description == "First paragraph. Second."

    def test_category_falls_back_to_directory(self) -> None:
        assert _parse("text").category == "Tech"

    def test_no_category_at_article_root(self) -> None:
        assert _parse("text", path="Article/Top.md").category is None

    def test_category_list_takes_first(self) -> None:
        assert _parse("---\ncategories: [A, B]\n---\nx").category == "A"

    def test_timestamps_default_to_now_for_new_file(self) -> None:
        meta = _parse("text")
        assert meta.created_at == NOW
        assert meta.updated_at == NOW

    def test_modified_file_keeps_first_seen_created_at(self) -> None:
        meta = _parse("text", previous_created_at="2020-01-01T00:00:00+00:00")
        assert meta.created_at == "2020-01-01T00:00:00+00:00"
        assert meta.updated_at == NOW

    def test_frontmatter_created_wins_over_previous(self) -> None:
        meta = _parse(
            "---\ndate: 2023-05-05\n---\nx", previous_created_at="2020-01-01T00:00:00+00:00"
        )
        assert meta.created_at == "2023-05-05T00:00:00+00:00"

    def test_timezone_applied_to_naive_values(self) -> None:
        meta = parse_article(
            "---\ncreated: '2024-03-01 08:00'\n---\nx",
            "Article/a.md",
            article_root="Article/",
            now=NOW,
            default_tz="Asia/Shanghai",
        )
        assert meta.created_at == "2024-03-01T08:00:00+08:00"

    def test_unparseable_timestamp_ignored(self) -> None:
        meta = _parse("---\ncreated: not a date\n---\nx")
        assert meta.created_at == NOW

    def test_draft_marks_hidden(self) -> None:
        assert _parse("---\ndraft: true\n---\nx").hidden is True

    def test_hidden_flag(self) -> None:
        assert _parse("---\nhidden: true\n---\nx").hidden is True

    @pytest.mark.parametrize(
        ("raw", "hidden"),
        [("'false'", False), ("'False'", False), ("'true'", True), ("no", False), ("0", False)],
    )
    def test_quoted_flags(self, raw: str, hidden: bool) -> None:
        assert _parse(f"---\nhidden: {raw}\ndraft: {raw}\n---\nx").hidden is hidden

    def test_numeric_title_coerced(self) -> None:
        assert _parse("---\ntitle: 2024\n---\nx").title == "2024"

    def test_malformed_yaml_raises(self) -> None:
        with pytest.raises(yaml.YAMLError):
            _parse("---\ntitle: [unclosed\n---\nx")


class TestParseTags:
    def test_none(self) -> None:
        assert parse_tags(None) == []

    def test_comma_string(self) -> None:
        assert parse_tags("a, b,#c") == ["a", "b", "c"]

    def test_duplicates_dropped_in_order(self) -> None:
        assert parse_tags(["x", "#x", "y"]) == ["x", "y"]

    def test_unsupported_type(self) -> None:
        assert parse_tags(42) == []


class TestDirectoryCategory:
    def test_nested(self) -> None:
        assert directory_category("Article/A/B/c.md", "Article/") == "A"

    def test_root_file(self) -> None:
        assert directory_category("Article/c.md", "Article/") is None


class TestGenerateDescription:
    def test_skips_code_blocks(self) -> None:
        text = "Intro\n```\ncode line\n```\nOutro"
        assert generate_description(text) == "Intro Outro"

    def test_truncates_on_word_boundary(self) -> None:
        text = "word " * 100
        description = generate_description(text, max_length=23)
        assert description == "word word word word..."
