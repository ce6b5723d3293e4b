"""Exceptions raised by docskel."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from docskel.validation import ValidationIssue


class DocskelError(Exception):
    """Base exception for template resolution and rendering."""


class MissingTemplateError(DocskelError):
    """Raised when a template id is absent from the template store."""

    def __init__(self, template_id: str, referenced_by: str | None = None) -> None:
        self.template_id = template_id
        self.referenced_by = referenced_by
        if referenced_by is None:
            message = f"Template not found: {template_id}"
        else:
            message = (
                f"Template not found: {template_id} "
                f"(parent of '{referenced_by}')"
            )
        super().__init__(message)


class CircularInheritanceError(DocskelError):
    """Raised when following parent links revisits a template id."""

    def __init__(self, template_id: str, chain: Sequence[str]) -> None:
        self.template_id = template_id
        self.chain = tuple(chain)
        path = " -> ".join(self.chain)
        super().__init__(f"Circular inheritance detected for '{template_id}': {path}")


class ValidationFailureError(DocskelError):
    """Raised when variable values violate a template's declared contract."""

    def __init__(
        self, issues: Sequence[ValidationIssue], template_id: str | None = None
    ) -> None:
        self.issues = tuple(issues)
        self.template_id = template_id
        details = "; ".join(issue.message for issue in self.issues)
        prefix = "Invalid template variables"
        if template_id is not None:
            prefix = f"Invalid variables for template '{template_id}'"
        super().__init__(f"{prefix}: {details}")


class RenderNonConvergenceError(DocskelError):
    """Raised when rendering does not reach a fixpoint within the pass limit."""

    def __init__(self, pass_limit: int) -> None:
        self.pass_limit = pass_limit
        super().__init__(
            f"Rendering did not converge after {pass_limit} passes; "
            "a variable value probably expands into more markers each pass"
        )
