"""Template, variable and validation-rule definitions."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, cast

TemplateCategory = Literal["phase", "document", "deliverable", "checklist"]
VariableType = Literal["string", "number", "boolean", "date", "array", "object"]

TEMPLATE_CATEGORIES: tuple[str, ...] = ("phase", "document", "deliverable", "checklist")
VARIABLE_TYPES: tuple[str, ...] = (
    "string",
    "number",
    "boolean",
    "date",
    "array",
    "object",
)


def _optional_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class ValidationRule:
    """Constraints on a variable's value."""

    pattern: str | None = None  # regex, searched in string values
    min_value: float | None = None
    max_value: float | None = None
    allowed: tuple[Any, ...] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, omitting unset constraints."""
        result: dict[str, Any] = {}
        if self.pattern is not None:
            result["pattern"] = self.pattern
        if self.min_value is not None:
            result["min"] = self.min_value
        if self.max_value is not None:
            result["max"] = self.max_value
        if self.allowed is not None:
            result["enum"] = list(self.allowed)
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ValidationRule:
        """Create from a ``validation:`` mapping (keys pattern/min/max/enum)."""
        pattern = data.get("pattern")
        enum_raw = data.get("enum")
        allowed = tuple(enum_raw) if isinstance(enum_raw, list) else None
        return cls(
            pattern=str(pattern) if pattern is not None else None,
            min_value=_optional_float(data.get("min")),
            max_value=_optional_float(data.get("max")),
            allowed=allowed,
        )


@dataclass(frozen=True)
class VariableSpec:
    """Declared contract for one template variable (a dotted path)."""

    name: str
    type: VariableType = "string"
    required: bool = False
    description: str = ""
    default: Any = None
    validation: ValidationRule | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        result: dict[str, Any] = {
            "name": self.name,
            "type": self.type,
            "required": self.required,
        }
        if self.description:
            result["description"] = self.description
        if self.default is not None:
            result["default"] = self.default
        if self.validation is not None:
            result["validation"] = self.validation.to_dict()
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VariableSpec:
        """Create from one entry of a template's ``variables:`` list.

        Values are coerced, not checked; validate_template() reports bad ones.
        """
        validation_raw = data.get("validation")
        validation = (
            ValidationRule.from_dict(validation_raw)
            if isinstance(validation_raw, dict)
            else None
        )
        return cls(
            name=str(data.get("name", "")),
            type=cast(VariableType, str(data.get("type", "string"))),
            required=bool(data.get("required", False)),
            description=str(data.get("description", "")),
            default=data.get("default"),
            validation=validation,
        )


@dataclass(frozen=True)
class Template:
    """A document skeleton with declared variables and marker-laden content.

    Templates are immutable; reloading replaces the whole object.
    """

    id: str
    name: str
    category: TemplateCategory
    version: str
    content: str
    description: str = ""
    phase: str | None = None
    variables: tuple[VariableSpec, ...] = ()
    parent: str | None = None
    tags: tuple[str, ...] = ()  # ordered, no duplicates
    source: Path | None = None  # file the template was loaded from

    def __post_init__(self) -> None:
        if len(set(self.tags)) != len(self.tags):
            object.__setattr__(self, "tags", tuple(dict.fromkeys(self.tags)))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization. ``source`` is runtime-only."""
        result: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "version": self.version,
        }
        if self.phase is not None:
            result["phase"] = self.phase
        if self.description:
            result["description"] = self.description
        if self.parent is not None:
            result["parent"] = self.parent
        if self.tags:
            result["tags"] = list(self.tags)
        result["variables"] = [v.to_dict() for v in self.variables]
        result["content"] = self.content
        return result

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        source: Path | None = None,
        default_id: str = "",
    ) -> Template:
        """Create a Template from a parsed template file.

        ``default_id`` is used when the data carries no ``id``.
        """
        template_id = data.get("id") or default_id

        variables_raw = data.get("variables", [])
        if isinstance(variables_raw, list):
            variables = tuple(
                VariableSpec.from_dict(v) for v in variables_raw if isinstance(v, dict)
            )
        else:
            variables = ()

        tags_raw = data.get("tags", [])
        if isinstance(tags_raw, list):
            tags = tuple(str(t) for t in tags_raw)
        else:
            tags = ()

        phase = data.get("phase")
        parent = data.get("parent")
        content = data.get("content", "")

        return cls(
            id=str(template_id),
            name=str(data.get("name", "")),
            category=cast(TemplateCategory, str(data.get("category", ""))),
            version=str(data.get("version", "")),
            content=str(content) if content is not None else "",
            description=str(data.get("description") or ""),
            phase=str(phase) if phase is not None else None,
            variables=variables,
            parent=str(parent) if parent else None,
            tags=tags,
            source=source,
        )
