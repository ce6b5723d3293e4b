"""Template rendering: loops, conditionals and variable substitution."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from docskel.errors import RenderNonConvergenceError, ValidationFailureError
from docskel.rendering.matcher import EachBlock, IfBlock, Node, TextRun, VarRef, parse
from docskel.rendering.resolver import resolve_path
from docskel.rendering.tokens import VARIABLE_MARKER_RE
from docskel.rendering.values import is_truthy, kind_of, to_text

if TYPE_CHECKING:
    from docskel.templates.base import VariableSpec

logger = logging.getLogger(__name__)

DEFAULT_MIN_PASSES = 16


def _count_markers(value: Any) -> int:
    match kind_of(value):
        case "string":
            return value.count("{{")
        case "mapping":
            return sum(_count_markers(v) for v in value.values())
        case "list":
            return sum(_count_markers(v) for v in value)
        case _:
            return 0


class Renderer:
    """Renders template text against an environment.

    Each pass parses the current text into a block tree and evaluates it once.
    Passes repeat until the output stops changing, which picks up markers that
    only appear after substitution (a variable whose value contains markers).
    The number of passes is capped at ``max(min_passes, markers + 2)``, where
    markers counts ``{{`` in the text and in the string values of the
    environment.
    """

    def __init__(self, min_passes: int = DEFAULT_MIN_PASSES) -> None:
        if min_passes < 2:
            raise ValueError(f"min_passes must be at least 2, got {min_passes}")
        self.min_passes = min_passes

    def pass_limit(self, text: str, env: Mapping[str, Any] | None = None) -> int:
        """Maximum number of passes allowed for ``text`` rendered with ``env``.

        Markers inside string values of ``env`` count too, so a chain of values
        that each expand to the next reference gets one pass per link.
        """
        markers = text.count("{{")
        if env is not None:
            markers += _count_markers(env)
        return max(self.min_passes, markers + 2)

    def render(
        self,
        text: str,
        env: Mapping[str, Any],
        *,
        variables: Sequence[VariableSpec] | None = None,
    ) -> str:
        """Render ``text`` with ``env``.

        When ``variables`` is given, ``env`` is checked against those specs
        first and ValidationFailureError is raised before any output is
        produced.

        Raises:
            ValidationFailureError: If ``variables`` is given and ``env`` violates it.
            RenderNonConvergenceError: If no fixpoint is reached within the pass limit.
        """
        if variables is not None:
            from docskel.validation import validate_variables

            result = validate_variables(variables, env)
            if not result.valid:
                raise ValidationFailureError(result.errors)

        logger.debug("Rendering template (%d chars, %d variables)", len(text), len(env))
        limit = self.pass_limit(text, env)
        rendered = self._converge(text, env, limit)
        # Tolerant degrade: anything still shaped like a reference is dropped
        return VARIABLE_MARKER_RE.sub("", rendered)

    def _converge(self, text: str, env: Mapping[str, Any], limit: int) -> str:
        current = text
        for passes in range(1, limit + 1):
            rendered = self._evaluate(parse(current), env, limit)
            if rendered == current:
                logger.debug("Render reached fixpoint after %d passes", passes)
                return rendered
            current = rendered
        logger.warning("Render did not converge within %d passes", limit)
        raise RenderNonConvergenceError(limit)

    def _evaluate(
        self, nodes: Sequence[Node], env: Mapping[str, Any], limit: int
    ) -> str:
        out: list[str] = []
        for node in nodes:
            if isinstance(node, TextRun):
                out.append(node.text)
            elif isinstance(node, VarRef):
                out.append(to_text(resolve_path(env, node.path)))
            elif isinstance(node, IfBlock):
                if is_truthy(resolve_path(env, node.condition)):
                    out.append(self._evaluate(node.body, env, limit))
            elif isinstance(node, EachBlock):
                out.append(self._expand_loop(node, env, limit))
        return "".join(out)

    def _expand_loop(
        self, block: EachBlock, env: Mapping[str, Any], limit: int
    ) -> str:
        items = resolve_path(env, block.source)
        if kind_of(items) != "list":
            return ""

        pieces: list[str] = []
        for item in items:
            # Derived environment; the parent is never written to
            child_env = {**env, block.item: item}
            piece = self._evaluate(block.body, child_env, limit)
            pieces.append(self._converge(piece, child_env, limit))
        return "".join(pieces)


_default_renderer = Renderer()


def render(text: str, env: Mapping[str, Any]) -> str:
    """Render ``text`` with ``env`` using the default pass limits."""
    return _default_renderer.render(text, env)
