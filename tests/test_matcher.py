"""Tests for tokenizing and block-tree construction."""

import pytest

from docskel.rendering.matcher import (
    EachBlock,
    IfBlock,
    TextRun,
    VarRef,
    find_block_end,
    parse,
)
from docskel.rendering.tokens import line_of, tokenize


class TestTokenize:
    """Tests for tokenize()."""

    def test_round_trips_text(self) -> None:
        """Test that joining token raw text gives back the input."""
        text = "A {{x}} {{#if y}}B{{/if}} {{#each zs as z}}{{z}}{{/each}} {{> parent}} {{ bad"
        assert "".join(t.raw for t in tokenize(text)) == text

    def test_marker_kinds(self) -> None:
        """Test that each marker form gets its own kind."""
        tokens = tokenize("{{ a.b }}{{#if c}}{{/if}}{{#each d as e}}{{/each}}{{>parent}}")
        assert [t.kind for t in tokens] == [
            "var",
            "if_open",
            "if_close",
            "each_open",
            "each_close",
            "splice",
        ]
        assert tokens[0].path == "a.b"
        assert tokens[1].path == "c"
        assert tokens[3].path == "d"
        assert tokens[3].item == "e"

    def test_unrecognized_braces_are_text(self) -> None:
        """Test that malformed markers stay in text runs."""
        tokens = tokenize("Hello {{ name } welcome!")
        assert [t.kind for t in tokens] == ["text"]

    def test_offsets_and_lines(self) -> None:
        """Test that offsets map to 1-based line numbers."""
        text = "one\ntwo {{x}}\nthree"
        var = next(t for t in tokenize(text) if t.kind == "var")
        assert text[var.offset :].startswith("{{x}}")
        assert line_of(text, var.offset) == 2


class TestFindBlockEnd:
    """Tests for depth-counted block matching."""

    def test_nested_same_kind(self) -> None:
        """Test that the outer opener matches the outer closer."""
        tokens = tokenize("{{#if a}}{{#if b}}x{{/if}}{{/if}}")
        assert find_block_end(tokens, 0) == len(tokens) - 1

    def test_unterminated_returns_none(self) -> None:
        """Test that a missing closer yields None."""
        tokens = tokenize("{{#each xs as x}}{{x}}")
        assert find_block_end(tokens, 0) is None

    def test_other_construct_is_ignored(self) -> None:
        """Test that loop markers do not affect conditional depth."""
        tokens = tokenize("{{#if a}}{{/each}}{{/if}}")
        assert find_block_end(tokens, 0) == 2

    def test_non_opener_raises(self) -> None:
        """Test that a non-opener index is rejected."""
        with pytest.raises(ValueError):
            find_block_end(tokenize("{{x}}"), 0)


class TestParse:
    """Tests for parse()."""

    def test_builds_nested_tree(self) -> None:
        """Test that blocks nest with their bodies."""
        nodes = parse("A{{#each xs as x}}{{#if x.on}}{{x.name}}{{/if}}{{/each}}")
        assert nodes[0] == TextRun("A")
        loop = nodes[1]
        assert isinstance(loop, EachBlock)
        assert (loop.source, loop.item) == ("xs", "x")
        cond = loop.body[0]
        assert isinstance(cond, IfBlock)
        assert cond.condition == "x.on"
        assert cond.body == (VarRef(path="x.name", raw="{{x.name}}"),)

    def test_unmatched_opener_is_literal(self) -> None:
        """Test that an unterminated opener is text and its body still parses."""
        nodes = parse("{{#if x}}Hi {{name}}")
        assert nodes == [TextRun("{{#if x}}Hi "), VarRef(path="name", raw="{{name}}")]

    def test_stray_closer_and_splice_are_literal(self) -> None:
        """Test that closers without openers and splices stay as text."""
        assert parse("a{{/if}}b{{> parent}}") == [TextRun("a{{/if}}b{{> parent}}")]

    def test_block_confined_to_enclosing_body(self) -> None:
        """Test that an opener cannot match a closer outside its parent block."""
        nodes = parse("{{#if a}}{{#each xs as x}}{{/if}}{{/each}}")
        cond = nodes[0]
        assert isinstance(cond, IfBlock)
        assert cond.body == (TextRun("{{#each xs as x}}"),)
        assert nodes[1] == TextRun("{{/each}}")
