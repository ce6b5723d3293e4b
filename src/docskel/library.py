"""In-memory template library: the store behind resolution and rendering."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from docskel.config.schema import DocskelConfig
from docskel.errors import MissingTemplateError, ValidationFailureError
from docskel.rendering.engine import DEFAULT_MIN_PASSES, Renderer
from docskel.rendering.extract import variable_manifest
from docskel.rendering.resolver import resolve_path
from docskel.rendering.values import UNDEFINED
from docskel.templates.base import Template, VariableSpec
from docskel.templates.inheritance import InheritanceResolver
from docskel.templates.loader import get_template_search_paths, load_templates
from docskel.validation import ValidationResult, validate_template, validate_variables

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TemplateFilter:
    """Criteria for list_templates(). Unset fields match everything.

    ``tags`` matches templates carrying any of the given tags.
    """

    category: str | None = None
    phase: str | None = None
    tags: tuple[str, ...] = ()
    parent: str | None = None

    def matches(self, template: Template) -> bool:
        if self.category is not None and template.category != self.category:
            return False
        if self.phase is not None and template.phase != self.phase:
            return False
        if self.tags and not set(self.tags) & set(template.tags):
            return False
        if self.parent is not None and template.parent != self.parent:
            return False
        return True


def _set_path(env: dict[str, Any], path: str, value: Any) -> bool:
    """Set a dotted ``path`` in ``env``; return False if a segment is not a mapping.

    Intermediate mappings are copied so the caller's environment is untouched.
    Caller values along the path are never replaced.
    """
    *parents, leaf = path.split(".")
    current = env
    for part in parents:
        child = current.get(part, UNDEFINED)
        if child is UNDEFINED:
            child = {}
        elif isinstance(child, Mapping):
            child = dict(child)
        else:
            return False
        current[part] = child
        current = child
    current[leaf] = value
    return True


def apply_defaults(
    specs: Sequence[VariableSpec], env: Mapping[str, Any]
) -> dict[str, Any]:
    """Return a copy of ``env`` with declared defaults filled in for absent paths.

    A default is skipped when a provided value along its path is not a mapping.
    """
    result = dict(env)
    for spec in specs:
        if spec.default is None:
            continue
        if resolve_path(result, spec.name) is not UNDEFINED:
            continue
        if not _set_path(result, spec.name, spec.default):
            logger.debug(
                "Skipping default for %s: a provided value is in the way", spec.name
            )
    return result


class TemplateLibrary:
    """Holds raw templates by id and serves resolution, validation and rendering.

    The library is the template store of its own InheritanceResolver, so
    replacing a template here invalidates every cached result built on it.
    """

    def __init__(
        self,
        templates: Iterable[Template] = (),
        renderer: Renderer | None = None,
    ) -> None:
        self._templates: dict[str, Template] = {}
        self._lock = threading.Lock()
        self.resolver = InheritanceResolver(self)
        self.renderer = renderer if renderer is not None else Renderer()
        for template in templates:
            self.add(template)

    @classmethod
    def from_config(cls, config: DocskelConfig) -> TemplateLibrary:
        """Create a library loaded from the configured template search paths."""
        min_passes = config.min_render_passes or DEFAULT_MIN_PASSES
        library = cls(renderer=Renderer(min_passes))
        library.load(get_template_search_paths(config.template_dirs or ()))
        return library

    def __len__(self) -> int:
        with self._lock:
            return len(self._templates)

    def __contains__(self, template_id: object) -> bool:
        with self._lock:
            return template_id in self._templates

    def ids(self) -> list[str]:
        """Sorted ids of all templates in the library."""
        with self._lock:
            return sorted(self._templates)

    def get_template(self, template_id: str) -> Template | None:
        """Return the raw (unmerged) template, or None."""
        with self._lock:
            return self._templates.get(template_id)

    def add(self, template: Template) -> None:
        """Add or replace a template."""
        with self._lock:
            self._templates[template.id] = template
        self.resolver.invalidate(template.id)

    def load(self, directories: Iterable[str | Path]) -> int:
        """Load templates from ``directories`` in order; later ones win.

        Returns the number of templates loaded.
        """
        count = 0
        for directory in directories:
            for template in load_templates(Path(directory)):
                self.add(template)
                count += 1
        logger.info("Template library holds %d templates", len(self))
        return count

    def reload(self, directories: Iterable[str | Path]) -> None:
        """Replace the whole library with the templates in ``directories``."""
        fresh: dict[str, Template] = {}
        for directory in directories:
            for template in load_templates(Path(directory)):
                fresh[template.id] = template

        with self._lock:
            previous = self._templates
            self._templates = fresh

        for template_id in previous.keys() | fresh.keys():
            self.resolver.invalidate(template_id)
        logger.info(
            "Reloaded template library: %d templates (was %d)",
            len(fresh),
            len(previous),
        )

    def resolve(self, template_id: str) -> Template:
        """Return ``template_id`` merged with its ancestors."""
        return self.resolver.resolve_template(template_id)

    def list_templates(
        self, template_filter: TemplateFilter | None = None
    ) -> list[Template]:
        """Raw templates matching ``template_filter``, sorted by id."""
        with self._lock:
            templates = list(self._templates.values())
        if template_filter is not None:
            templates = [t for t in templates if template_filter.matches(t)]
        return sorted(templates, key=lambda t: t.id)

    def render_template(
        self,
        template_id: str,
        env: Mapping[str, Any],
        validate: bool = True,
    ) -> str:
        """Resolve ``template_id`` and render it with ``env``.

        Declared defaults fill in absent variables before validation.

        Raises:
            MissingTemplateError: If the template or an ancestor is absent.
            CircularInheritanceError: If the parent links form a cycle.
            ValidationFailureError: If ``validate`` is set and ``env`` violates
                the declared variables.
            RenderNonConvergenceError: If rendering does not converge.
        """
        template = self.resolve(template_id)
        full_env = apply_defaults(template.variables, env)

        if validate:
            result = validate_variables(template.variables, full_env)
            for warning in result.warnings:
                logger.debug("%s: %s", template_id, warning.message)
            if not result.valid:
                raise ValidationFailureError(result.errors, template_id=template_id)

        logger.debug("Rendering template %s", template_id)
        return self.renderer.render(template.content, full_env)

    def validate_template(self, template_id: str) -> ValidationResult:
        """Validate the resolved form of ``template_id``."""
        return validate_template(self.resolve(template_id))

    def variable_manifest(self, template_id: str) -> list[VariableSpec]:
        """Declared plus referenced variables of the resolved template."""
        return variable_manifest(self.resolve(template_id))

    def require(self, template_id: str) -> Template:
        """Return the raw template or raise MissingTemplateError."""
        template = self.get_template(template_id)
        if template is None:
            raise MissingTemplateError(template_id)
        return template
