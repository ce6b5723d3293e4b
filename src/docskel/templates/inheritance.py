"""Template inheritance: ancestor chains, cycle detection and merging."""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Protocol

from docskel.errors import CircularInheritanceError, MissingTemplateError
from docskel.rendering.tokens import SPLICE_RE
from docskel.templates.base import Template, VariableSpec

logger = logging.getLogger(__name__)


class TemplateStore(Protocol):
    """Source of raw (unmerged) templates by id."""

    def get_template(self, template_id: str) -> Template | None: ...


def merge_variables(
    parent_vars: tuple[VariableSpec, ...], child_vars: tuple[VariableSpec, ...]
) -> tuple[VariableSpec, ...]:
    """Union by name: child entries replace same-named parent entries in place,
    child-only entries are appended."""
    merged = list(parent_vars)
    positions = {spec.name: index for index, spec in enumerate(merged)}
    for spec in child_vars:
        index = positions.get(spec.name)
        if index is None:
            positions[spec.name] = len(merged)
            merged.append(spec)
        else:
            merged[index] = spec
    return tuple(merged)


def merge_content(parent_content: str, child_content: str) -> str:
    """Replace every ``{{> parent}}`` marker in the child with the parent content."""
    return SPLICE_RE.sub(lambda _match: parent_content, child_content)


def merge_templates(parent: Template, child: Template) -> Template:
    """Fold ``child`` onto an already merged ``parent``.

    Scalar fields come from the child unless it leaves them empty. The result
    keeps the child's id, parent link and source.
    """
    return replace(
        child,
        name=child.name or parent.name,
        category=child.category or parent.category,
        version=child.version or parent.version,
        description=child.description or parent.description,
        phase=child.phase if child.phase else parent.phase,
        variables=merge_variables(parent.variables, child.variables),
        tags=tuple(dict.fromkeys(parent.tags + child.tags)),
        content=merge_content(parent.content, child.content),
    )


class InheritanceResolver:
    """Resolves templates against their ancestors and caches the results.

    The cache belongs to this instance. Entries are immutable once written;
    a lock guards reads, writes and invalidation.
    """

    def __init__(self, store: TemplateStore) -> None:
        self._store = store
        # id -> (chain leaf->root, merged template)
        self._cache: dict[str, tuple[tuple[str, ...], Template]] = {}
        self._lock = threading.Lock()
        # Bumped on invalidation so a resolve that raced with it is not cached
        self._generation = 0

    def _fetch(self, template_id: str, referenced_by: str | None = None) -> Template:
        template = self._store.get_template(template_id)
        if template is None:
            raise MissingTemplateError(template_id, referenced_by)
        return template

    def _collect_chain(
        self, template_id: str, leaf: Template | None = None
    ) -> list[Template]:
        """Templates from ``template_id`` up to the root, leaf first."""
        current = leaf if leaf is not None else self._fetch(template_id)
        chain = [current]
        visited = {current.id}
        while current.parent:
            if current.parent in visited:
                ids = [t.id for t in chain] + [current.parent]
                raise CircularInheritanceError(template_id, ids)
            current = self._fetch(current.parent, referenced_by=current.id)
            chain.append(current)
            visited.add(current.id)
        logger.debug(
            "Inheritance chain for %s: %s",
            template_id,
            " -> ".join(t.id for t in chain),
        )
        return chain

    def get_inheritance_chain(self, template_id: str) -> list[str]:
        """Ids from ``template_id`` to its root ancestor (leaf to root).

        Raises:
            MissingTemplateError: If the template or one of its ancestors is absent.
            CircularInheritanceError: If an id repeats along the parent links.
        """
        return [t.id for t in self._collect_chain(template_id)]

    def resolve_template(self, template_id: str) -> Template:
        """Return ``template_id`` merged with all of its ancestors.

        Templates without a parent come back unchanged from the store.

        Raises:
            MissingTemplateError: If the template or one of its ancestors is absent.
            CircularInheritanceError: If an id repeats along the parent links.
        """
        with self._lock:
            cached = self._cache.get(template_id)
            generation = self._generation
        if cached is not None:
            logger.debug("Using cached resolved template: %s", template_id)
            return cached[1]

        template = self._fetch(template_id)
        if not template.parent:
            return template

        chain = self._collect_chain(template_id, leaf=template)
        resolved = chain[-1]
        for child in reversed(chain[:-1]):
            resolved = merge_templates(resolved, child)

        with self._lock:
            if generation == self._generation:
                self._cache[template_id] = (tuple(t.id for t in chain), resolved)
        logger.debug("Resolved %s through %d ancestors", template_id, len(chain) - 1)
        return resolved

    def invalidate(self, template_id: str) -> None:
        """Drop every cached result whose chain includes ``template_id``."""
        with self._lock:
            stale = [key for key, (chain, _) in self._cache.items() if template_id in chain]
            self._generation += 1
            for key in stale:
                del self._cache[key]
        if stale:
            logger.debug("Invalidated %d resolved templates via %s", len(stale), template_id)

    def clear(self) -> None:
        """Drop all cached results."""
        with self._lock:
            self._cache.clear()
            self._generation += 1
        logger.debug("Template inheritance cache cleared")
