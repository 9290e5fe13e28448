"""Tests for reference extraction."""

from __future__ import annotations

from dotbot_awareness.references import (
    extract_declared_files,
    extract_inline_references,
    extract_references,
    normalise_reference,
)


def test_inline_references_are_collected_in_order_without_duplicates() -> None:
    body = "Load @.bot/prompts/agents/planner.md then @.bot/prompts/standards/style.md.\nAgain @.bot/prompts/agents/planner.md\n"

    assert extract_inline_references(body) == [
        ".bot/prompts/agents/planner.md",
        ".bot/prompts/standards/style.md",
    ]


def test_email_addresses_are_not_references() -> None:
    assert extract_inline_references("Contact ops@docs.md or team@example.com") == []


def test_equivalent_references_keep_first_spelling() -> None:
    body = r"See @.bot\prompts\agents\planner.md then @.bot/prompts/agents/planner.md"
    assert extract_inline_references(body) == [r".bot\prompts\agents\planner.md"]
    assert normalise_reference("./.bot/product/mission.md") == ".bot/product/mission.md"


def test_declared_files_accept_maps_and_strings() -> None:
    front_matter = {
        "dependencies": [
            {"file": ".bot/prompts/agents/a.md", "reason": "x"},
            ".bot/prompts/agents/b.md",
            {"reason": "no file"},
            ".bot/prompts/agents/a.md",
        ]
    }

    assert extract_declared_files(front_matter, "dependencies") == [
        ".bot/prompts/agents/a.md",
        ".bot/prompts/agents/b.md",
    ]
    assert extract_declared_files({"dependencies": ".bot/x.md"}, "dependencies") == [".bot/x.md"]
    assert extract_declared_files(None, "dependencies") == []


def test_used_by_is_kept_apart_from_outgoing_references() -> None:
    front_matter = {
        "dependencies": [".bot/prompts/agents/a.md"],
        "used_by": [".bot/prompts/workflows/w.md"],
    }

    references = extract_references("Body with @.bot/prompts/standards/s.md", front_matter)

    assert references.dependencies == [".bot/prompts/agents/a.md"]
    assert references.inline == [".bot/prompts/standards/s.md"]
    assert references.used_by == [".bot/prompts/workflows/w.md"]
    assert references.all == [".bot/prompts/agents/a.md", ".bot/prompts/standards/s.md"]
