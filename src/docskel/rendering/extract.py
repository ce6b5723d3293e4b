"""Static scan of template text for referenced variables."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from docskel.rendering.matcher import EachBlock, IfBlock, Node, VarRef, parse
from docskel.templates.base import VariableSpec

if TYPE_CHECKING:
    from docskel.templates.base import Template

logger = logging.getLogger(__name__)


def _collect(nodes: Sequence[Node], bound: frozenset[str], found: dict[str, None]) -> None:
    def add(path: str) -> None:
        if path.split(".", 1)[0] not in bound:
            found.setdefault(path, None)

    for node in nodes:
        if isinstance(node, VarRef):
            add(node.path)
        elif isinstance(node, IfBlock):
            add(node.condition)
            _collect(node.body, bound, found)
        elif isinstance(node, EachBlock):
            add(node.source)
            _collect(node.body, bound | {node.item}, found)


def referenced_paths(text: str) -> list[str]:
    """Distinct dotted paths referenced by ``text``, in order of first use.

    Covers plain references, conditions and loop sources. Paths rooted at a
    loop variable inside its own loop body are not environment variables and
    are left out.
    """
    found: dict[str, None] = {}
    _collect(parse(text), frozenset(), found)
    return list(found)


def extract_variables(text: str) -> list[VariableSpec]:
    """Build a heuristic variable manifest for ``text``.

    Every entry is typed ``string`` and marked required; declared specs on a
    template should be preferred, see variable_manifest().
    """
    variables = [
        VariableSpec(
            name=path,
            description=f"Variable {path} used in template",
            type="string",
            required=True,
        )
        for path in referenced_paths(text)
    ]
    logger.debug("Extracted %d variables from template", len(variables))
    return variables


def merge_manifest(
    declared: Iterable[VariableSpec], extracted: Iterable[VariableSpec]
) -> list[VariableSpec]:
    """Declared specs first, then extracted specs whose names are not declared."""
    manifest = list(declared)
    names = {spec.name for spec in manifest}
    for spec in extracted:
        if spec.name not in names:
            manifest.append(spec)
            names.add(spec.name)
    return manifest


def variable_manifest(template: Template) -> list[VariableSpec]:
    """Variables of ``template``: its declarations plus anything else it references."""
    return merge_manifest(template.variables, extract_variables(template.content))
