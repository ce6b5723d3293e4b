"""Split template text into text runs and marker tokens."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

TokenKind = Literal[
    "text",
    "var",
    "if_open",
    "if_close",
    "each_open",
    "each_close",
    "splice",
]

# One alternative per marker. Anything between "{{" and "}}" that matches none
# of them stays in a text run.
_MARKER_RE = re.compile(
    r"""
    \{\{
    (?:
        \s*(?P<var>[\w.]+)\s*
      | \#if\s+(?P<condition>[\w.]+)\s*
      | (?P<if_close>/if)
      | \#each\s+(?P<source>[\w.]+)\s+as\s+(?P<item>\w+)\s*
      | (?P<each_close>/each)
      | >\s*(?P<splice>parent)\s*
    )
    \}\}
    """,
    re.VERBOSE,
)

SPLICE_RE = re.compile(r"\{\{>\s*parent\s*\}\}")
VARIABLE_MARKER_RE = re.compile(r"\{\{\s*[\w.]+\s*\}\}")


@dataclass(frozen=True)
class Token:
    """A slice of template text.

    ``path`` holds the variable path, the condition or the loop source;
    ``item`` the loop variable name. ``offset`` is the position in the text.
    """

    kind: TokenKind
    raw: str
    offset: int = 0
    path: str | None = None
    item: str | None = None


def _marker_token(match: re.Match[str]) -> Token:
    raw = match.group(0)
    offset = match.start()
    if match.group("var") is not None:
        return Token("var", raw, offset, path=match.group("var"))
    if match.group("condition") is not None:
        return Token("if_open", raw, offset, path=match.group("condition"))
    if match.group("if_close") is not None:
        return Token("if_close", raw, offset)
    if match.group("source") is not None:
        return Token(
            "each_open",
            raw,
            offset,
            path=match.group("source"),
            item=match.group("item"),
        )
    if match.group("each_close") is not None:
        return Token("each_close", raw, offset)
    return Token("splice", raw, offset)


def tokenize(text: str) -> list[Token]:
    """Tokenize template text. Joining every token's ``raw`` gives back ``text``."""
    tokens: list[Token] = []
    position = 0
    for match in _MARKER_RE.finditer(text):
        if match.start() > position:
            tokens.append(Token("text", text[position : match.start()], position))
        tokens.append(_marker_token(match))
        position = match.end()
    if position < len(text):
        tokens.append(Token("text", text[position:], position))
    return tokens


def line_of(text: str, offset: int) -> int:
    """1-based line number of ``offset`` within ``text``."""
    return text.count("\n", 0, offset) + 1
