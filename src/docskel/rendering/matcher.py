"""Depth-aware block matching and block-tree construction.

Conditionals and loops are matched independently: when looking for the end of
an ``{{#if}}`` only if-markers are counted, and likewise for ``{{#each}}``. An
opener without a matching closer is kept as literal text and its would-be body
is parsed as ordinary content, so malformed input degrades instead of failing.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Union

from docskel.rendering.tokens import Token, TokenKind, tokenize

# Opening token kind -> closing token kind
BLOCK_PAIRS: dict[TokenKind, TokenKind] = {
    "if_open": "if_close",
    "each_open": "each_close",
}


@dataclass(frozen=True)
class TextRun:
    """Literal text, including unmatched and unrecognized markers."""

    text: str


@dataclass(frozen=True)
class VarRef:
    """A ``{{path}}`` reference."""

    path: str
    raw: str


@dataclass(frozen=True)
class IfBlock:
    """A ``{{#if condition}}...{{/if}}`` block."""

    condition: str
    body: tuple[Node, ...]


@dataclass(frozen=True)
class EachBlock:
    """A ``{{#each source as item}}...{{/each}}`` block."""

    source: str
    item: str
    body: tuple[Node, ...]


Node = Union[TextRun, VarRef, IfBlock, EachBlock]


def find_block_end(
    tokens: Sequence[Token], open_index: int, stop: int | None = None
) -> int | None:
    """Return the index of the closer matching the opener at ``open_index``.

    Scans ``tokens[open_index + 1:stop]`` with a depth counter that starts at
    1. Same-construct openers increment it, same-construct closers decrement
    it, and the closer that brings it to 0 is the match. Returns None when the
    block is unterminated within the scanned range.
    """
    opener = tokens[open_index].kind
    if opener not in BLOCK_PAIRS:
        raise ValueError(f"Token at index {open_index} is not a block opener: {opener}")
    closer = BLOCK_PAIRS[opener]
    end = len(tokens) if stop is None else stop

    depth = 1
    for index in range(open_index + 1, end):
        kind = tokens[index].kind
        if kind == opener:
            depth += 1
        elif kind == closer:
            depth -= 1
            if depth == 0:
                return index
    return None


def build_tree(
    tokens: Sequence[Token], start: int = 0, stop: int | None = None
) -> list[Node]:
    """Build the block tree for ``tokens[start:stop]``."""
    end = len(tokens) if stop is None else stop
    nodes: list[Node] = []
    pending_text: list[str] = []

    def flush() -> None:
        if pending_text:
            nodes.append(TextRun("".join(pending_text)))
            pending_text.clear()

    index = start
    while index < end:
        token = tokens[index]

        if token.kind in BLOCK_PAIRS:
            close_index = find_block_end(tokens, index, end)
            if close_index is None:
                pending_text.append(token.raw)
                index += 1
                continue
            body = tuple(build_tree(tokens, index + 1, close_index))
            flush()
            if token.kind == "if_open":
                nodes.append(IfBlock(condition=token.path or "", body=body))
            else:
                nodes.append(
                    EachBlock(source=token.path or "", item=token.item or "", body=body)
                )
            index = close_index + 1
            continue

        if token.kind == "var":
            flush()
            nodes.append(VarRef(path=token.path or "", raw=token.raw))
        else:
            # text, stray closers and splice markers render literally
            pending_text.append(token.raw)
        index += 1

    flush()
    return nodes


def parse(text: str) -> list[Node]:
    """Tokenize and build the block tree for ``text``."""
    return build_tree(tokenize(text))
