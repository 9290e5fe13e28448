"""Tests for the constrained front-matter parser."""

from __future__ import annotations

from pathlib import Path

from dotbot_awareness.frontmatter import parse_front_matter, read_front_matter


def test_parses_scalars_and_dependency_list() -> None:
    text = (
        "---\n"
        "type: workflow\n"
        "id: plan-product\n"
        "version: 1.0.0\n"
        "draft: false\n"
        "priority: 2\n"
        "tags: [planning, \"product docs\"]\n"
        "dependencies:\n"
        "  - file: .bot/prompts/agents/planner.md\n"
        "    reason: drafts the plan\n"
        "  - .bot/prompts/standards/style.md\n"
        "---\n"
        "# Plan product\n"
    )

    result = parse_front_matter(text)

    assert result is not None
    assert result.violations == []
    assert result.data == {
        "type": "workflow",
        "id": "plan-product",
        "version": "1.0.0",
        "draft": False,
        "priority": 2,
        "tags": ["planning", "product docs"],
        "dependencies": [
            {"file": ".bot/prompts/agents/planner.md", "reason": "drafts the plan"},
            ".bot/prompts/standards/style.md",
        ],
    }
    assert result.body == "# Plan product\n"
    assert result.end_line == 12


def test_nested_map_and_comments() -> None:
    text = "---\nmeta:\n  owner: platform  # team\n  reviewed: ~\n---\n"

    result = parse_front_matter(text)

    assert result is not None
    assert result.data == {"meta": {"owner": "platform", "reviewed": None}}


def test_document_without_delimiter_has_no_front_matter() -> None:
    assert parse_front_matter("# Title\n\ntype: workflow\n") is None


def test_block_must_start_at_first_byte() -> None:
    assert parse_front_matter("\n---\ntype: workflow\n---\n") is None
    assert parse_front_matter(" ---\ntype: workflow\n---\n") is None


def test_unterminated_block_is_not_front_matter() -> None:
    assert parse_front_matter("---\ntype: workflow\nbody text\n") is None


def test_unsupported_constructs_become_violations() -> None:
    text = (
        "---\n"
        "type: agent\n"
        "base: &defaults value\n"
        "notes: |\n"
        "options: {a: 1}\n"
        "matrix: [[1, 2]]\n"
        "settings:\n"
        "  inner:\n"
        "    - deep\n"
        "type: duplicate\n"
        "---\n"
    )

    result = parse_front_matter(text)

    assert result is not None
    lines = {violation.line for violation in result.violations}
    assert {3, 4, 5, 6, 9, 10} <= lines
    assert result.data["type"] == "duplicate"
    assert "base" not in result.data
    assert "options" not in result.data


def test_read_front_matter_tolerates_invalid_utf8(tmp_path: Path) -> None:
    path = tmp_path / "artifact.md"
    path.write_bytes(b"---\ntype: standard\nid: s\n---\nbad byte \xff\n")

    result, text = read_front_matter(path)

    assert result is not None
    assert result.data == {"type": "standard", "id": "s"}
    assert "�" in text


def test_trailing_comments_after_quotes_and_lists_are_dropped() -> None:
    text = (
        "---\n"
        "id: \"plan\" # main\n"
        "title: 'a # not a comment'\n"
        "tags: [a, \"b # c\"] # note\n"
        "owner: # unset\n"
        "---\n"
    )

    result = parse_front_matter(text)

    assert result is not None
    assert result.violations == []
    assert result.data == {
        "id": "plan",
        "title": "a # not a comment",
        "tags": ["a", "b # c"],
        "owner": None,
    }


def test_inline_lists_below_top_level_are_violations() -> None:
    text = (
        "---\n"
        "meta:\n"
        "  tags: [a, b]\n"
        "dependencies:\n"
        "  - file: .bot/prompts/agents/a.md\n"
        "    labels: [x]\n"
        "  - [nested]\n"
        "---\n"
    )

    result = parse_front_matter(text)

    assert result is not None
    assert sorted(violation.line for violation in result.violations) == [3, 6, 7]
    assert result.data == {"meta": {}, "dependencies": [{"file": ".bot/prompts/agents/a.md"}]}
