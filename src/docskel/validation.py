"""Strict validation of templates and variable values.

Rendering is tolerant: unterminated blocks are left as literal text. The
checks here are the strict counterpart and report the same problems as errors.
All problems are collected; nothing short-circuits.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Literal

from docskel.rendering.matcher import BLOCK_PAIRS, find_block_end
from docskel.rendering.resolver import resolve_path
from docskel.rendering.tokens import Token, line_of, tokenize
from docskel.rendering.values import UNDEFINED, kind_of
from docskel.templates.base import (
    TEMPLATE_CATEGORIES,
    VARIABLE_TYPES,
    Template,
    VariableSpec,
)

logger = logging.getLogger(__name__)

IssueKind = Literal[
    # errors
    "missing",
    "invalid",
    "conflict",
    "syntax",
    # warnings
    "deprecated",
    "unused",
    "style",
    "best-practice",
]

_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
_VERSION_PATTERN = re.compile(r"^\d+\.\d+\.\d+$")
_VARIABLE_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_.]+$")
# Text that starts like a block marker but did not tokenize as one
_MALFORMED_BLOCK_RE = re.compile(r"\{\{\s*(#if|#each|/if|/each)\b")

_BLOCK_LABELS = {
    "if_open": "conditional",
    "each_open": "loop",
    "if_close": "conditional",
    "each_close": "loop",
}


@dataclass(frozen=True)
class ValidationIssue:
    """A single validation error or warning."""

    path: str
    message: str
    kind: IssueKind


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating a template or a set of variable values."""

    valid: bool
    errors: tuple[ValidationIssue, ...] = ()
    warnings: tuple[ValidationIssue, ...] = ()

    @classmethod
    def from_issues(
        cls,
        errors: Sequence[ValidationIssue],
        warnings: Sequence[ValidationIssue] = (),
    ) -> ValidationResult:
        return cls(valid=not errors, errors=tuple(errors), warnings=tuple(warnings))


# -- Template syntax ------------------------------------------------------


def _brace_issues(content: str) -> Iterator[ValidationIssue]:
    open_count = 0
    for number, line in enumerate(content.split("\n"), start=1):
        open_count += line.count("{{") - line.count("}}")
        if open_count < 0:
            yield ValidationIssue(
                f"line {number}", "Unmatched closing brackets }}", "syntax"
            )
            open_count = 0
    if open_count > 0:
        yield ValidationIssue("content", "Unmatched opening brackets {{", "syntax")


def _block_issues(
    content: str, tokens: Sequence[Token], start: int, stop: int
) -> Iterator[ValidationIssue]:
    # Same nesting as build_tree: an opener only matches inside the body that
    # encloses it, and closers reached at this level were never claimed.
    index = start
    while index < stop:
        token = tokens[index]
        if token.kind in BLOCK_PAIRS:
            end = find_block_end(tokens, index, stop)
            if end is None:
                label = _BLOCK_LABELS[token.kind]
                yield ValidationIssue(
                    f"line {line_of(content, token.offset)}",
                    f"Unterminated {label} block: {token.raw}",
                    "syntax",
                )
                index += 1
                continue
            yield from _block_issues(content, tokens, index + 1, end)
            index = end + 1
            continue
        if token.kind in ("if_close", "each_close"):
            label = _BLOCK_LABELS[token.kind]
            yield ValidationIssue(
                f"line {line_of(content, token.offset)}",
                f"Closing {label} marker without an opening block: {token.raw}",
                "syntax",
            )
        index += 1


def check_template_syntax(content: str) -> list[ValidationIssue]:
    """Report malformed markers and unbalanced blocks in ``content``.

    Blocks are matched the way the renderer matches them, so anything the
    renderer would leave as literal text is reported here.
    """
    issues = list(_brace_issues(content))
    tokens = tokenize(content)
    issues.extend(_block_issues(content, tokens, 0, len(tokens)))

    for token in tokens:
        if token.kind != "text":
            continue
        for match in _MALFORMED_BLOCK_RE.finditer(token.raw):
            offset = token.offset + match.start()
            issues.append(
                ValidationIssue(
                    f"line {line_of(content, offset)}",
                    f"Malformed block marker starting with '{{{{{match.group(1)}'",
                    "syntax",
                )
            )

    return issues


# -- Template structure ---------------------------------------------------


def _variable_issues(spec: VariableSpec, path: str) -> Iterator[ValidationIssue]:
    if not spec.name:
        yield ValidationIssue(f"{path}.name", "Variable name is required", "missing")
    elif not _VARIABLE_NAME_PATTERN.match(spec.name):
        yield ValidationIssue(
            f"{path}.name",
            f"Invalid variable name '{spec.name}': must match ^[a-zA-Z0-9_.]+$",
            "invalid",
        )

    if spec.type not in VARIABLE_TYPES:
        allowed = ", ".join(VARIABLE_TYPES)
        yield ValidationIssue(
            f"{path}.type",
            f"Invalid variable type '{spec.type}'. Must be one of: {allowed}",
            "invalid",
        )

    rule = spec.validation
    if rule is None:
        return
    if rule.pattern is not None:
        try:
            re.compile(rule.pattern)
        except re.error as exc:
            yield ValidationIssue(
                f"{path}.validation.pattern",
                f"Invalid pattern '{rule.pattern}': {exc}",
                "invalid",
            )
    if (
        rule.min_value is not None
        and rule.max_value is not None
        and rule.min_value > rule.max_value
    ):
        yield ValidationIssue(
            f"{path}.validation",
            f"min {rule.min_value} is greater than max {rule.max_value}",
            "conflict",
        )


def validate_template(template: Template) -> ValidationResult:
    """Validate a template's fields, variable declarations and marker syntax."""
    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []

    if not template.id:
        errors.append(ValidationIssue("id", "Template ID is required", "missing"))
    elif not _ID_PATTERN.match(template.id):
        errors.append(
            ValidationIssue(
                "id",
                f"Invalid template ID '{template.id}': must match ^[a-zA-Z0-9_-]+$",
                "invalid",
            )
        )

    if not template.name:
        errors.append(ValidationIssue("name", "Template name is required", "missing"))

    if template.category not in TEMPLATE_CATEGORIES:
        allowed = ", ".join(TEMPLATE_CATEGORIES)
        errors.append(
            ValidationIssue(
                "category",
                f"Invalid category '{template.category}'. Must be one of: {allowed}",
                "invalid",
            )
        )

    if not _VERSION_PATTERN.match(template.version):
        errors.append(
            ValidationIssue(
                "version",
                f"Invalid version '{template.version}': expected MAJOR.MINOR.PATCH",
                "invalid",
            )
        )

    if not template.content:
        errors.append(
            ValidationIssue("content", "Template content is required", "missing")
        )

    seen: set[str] = set()
    for index, spec in enumerate(template.variables):
        path = f"variables[{index}]"
        errors.extend(_variable_issues(spec, path))
        if spec.name and spec.name in seen:
            errors.append(
                ValidationIssue(
                    f"{path}.name",
                    f"Duplicate variable name '{spec.name}'",
                    "conflict",
                )
            )
        seen.add(spec.name)

    errors.extend(check_template_syntax(template.content))

    if not template.description:
        warnings.append(
            ValidationIssue(
                "description", "Template should have a description", "best-practice"
            )
        )
    if not template.tags:
        warnings.append(
            ValidationIssue(
                "tags",
                "Template should have tags for better discoverability",
                "best-practice",
            )
        )

    logger.debug(
        "Validated template %s: %d errors, %d warnings",
        template.id,
        len(errors),
        len(warnings),
    )
    return ValidationResult.from_issues(errors, warnings)


# -- Variable values ------------------------------------------------------


def _is_date(value: Any) -> bool:
    if isinstance(value, (date, datetime)):
        return True
    if not isinstance(value, str):
        return False
    try:
        datetime.fromisoformat(value)
    except ValueError:
        return False
    return True


def check_type(value: Any, expected: str) -> bool:
    """Check ``value`` against a declared variable type."""
    kind = kind_of(value)
    if expected == "string":
        return kind == "string"
    if expected == "number":
        return kind == "number" and not math.isnan(value)
    if expected == "boolean":
        return kind == "boolean"
    if expected == "date":
        return _is_date(value)
    if expected == "array":
        return kind == "list"
    if expected == "object":
        return kind == "mapping"
    return False


def _rule_issues(spec: VariableSpec, value: Any) -> Iterator[ValidationIssue]:
    rule = spec.validation
    if rule is None:
        return

    if rule.pattern is not None and isinstance(value, str):
        try:
            matched = re.search(rule.pattern, value) is not None
        except re.error:
            matched = False
        if not matched:
            yield ValidationIssue(
                spec.name,
                f"Value of '{spec.name}' does not match pattern: {rule.pattern}",
                "invalid",
            )

    if kind_of(value) == "number":
        if rule.min_value is not None and value < rule.min_value:
            yield ValidationIssue(
                spec.name,
                f"Value {value} of '{spec.name}' is less than minimum {rule.min_value:g}",
                "invalid",
            )
        if rule.max_value is not None and value > rule.max_value:
            yield ValidationIssue(
                spec.name,
                f"Value {value} of '{spec.name}' is greater than maximum {rule.max_value:g}",
                "invalid",
            )

    if rule.allowed and value not in rule.allowed:
        choices = ", ".join(str(v) for v in rule.allowed)
        yield ValidationIssue(
            spec.name,
            f"Value of '{spec.name}' must be one of: {choices}",
            "invalid",
        )


def _flatten_keys(env: Mapping[str, Any], prefix: str = "") -> Iterator[str]:
    for key, value in env.items():
        full_key = f"{prefix}.{key}" if prefix else str(key)
        yield full_key
        if isinstance(value, Mapping):
            yield from _flatten_keys(value, full_key)


def _is_declared(key: str, names: set[str]) -> bool:
    # "user" is in use when "user.name" is declared, and vice versa
    if key in names:
        return True
    return any(
        name.startswith(key + ".") or key.startswith(name + ".") for name in names
    )


def validate_variables(
    specs: Sequence[VariableSpec], env: Mapping[str, Any]
) -> ValidationResult:
    """Check environment values against declared variable specs.

    Required variables that do not resolve are ``missing`` errors; type and
    rule violations are ``invalid`` errors. Provided keys that no declared
    variable refers to are ``unused`` warnings.
    """
    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []

    for spec in specs:
        value = resolve_path(env, spec.name)
        if value is UNDEFINED:
            if spec.required:
                errors.append(
                    ValidationIssue(
                        spec.name,
                        f"Required variable '{spec.name}' is missing",
                        "missing",
                    )
                )
            continue

        if not check_type(value, spec.type):
            errors.append(
                ValidationIssue(
                    spec.name,
                    f"Variable '{spec.name}' has invalid type. Expected {spec.type}",
                    "invalid",
                )
            )
        errors.extend(_rule_issues(spec, value))

    names = {spec.name for spec in specs}
    for key in _flatten_keys(env):
        if not _is_declared(key, names):
            warnings.append(
                ValidationIssue(
                    key, f"Variable '{key}' is not defined in template", "unused"
                )
            )

    logger.debug(
        "Variable validation complete: %d errors, %d warnings",
        len(errors),
        len(warnings),
    )
    return ValidationResult.from_issues(errors, warnings)
