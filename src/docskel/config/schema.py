"""Configuration schema for docskel."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Literal, cast

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class DocskelConfig:
    """Docskel configuration schema.

    None values indicate "not set" and will use defaults or be inherited.
    """

    # Extra template search directories, between global and project templates
    template_dirs: tuple[str, ...] | None = None

    # Rendering settings
    validate: bool | None = None
    min_render_passes: int | None = None

    log_level: LogLevel | None = None

    def merge(self, other: DocskelConfig) -> DocskelConfig:
        """Merge another config into this one.

        Values from `other` take precedence when they are not None.
        Returns a new DocskelConfig instance.
        """
        return DocskelConfig(
            template_dirs=(
                other.template_dirs
                if other.template_dirs is not None
                else self.template_dirs
            ),
            validate=other.validate if other.validate is not None else self.validate,
            min_render_passes=(
                other.min_render_passes
                if other.min_render_passes is not None
                else self.min_render_passes
            ),
            log_level=(
                other.log_level if other.log_level is not None else self.log_level
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary, excluding None values."""
        result: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "template_dirs" and value is not None:
                result[f.name] = list(value)
            elif value is not None:
                result[f.name] = value
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DocskelConfig:
        """Create a DocskelConfig from a dictionary.

        Unknown keys are ignored. Values of the wrong shape are treated as unset.
        """
        dirs_raw = data.get("template_dirs")
        template_dirs: tuple[str, ...] | None = None
        if isinstance(dirs_raw, list):
            template_dirs = tuple(str(d) for d in dirs_raw)
        elif isinstance(dirs_raw, str):
            template_dirs = (dirs_raw,)

        validate_raw = data.get("validate")
        validate = bool(validate_raw) if validate_raw is not None else None

        passes_raw = data.get("min_render_passes")
        min_render_passes: int | None = None
        if passes_raw is not None:
            try:
                min_render_passes = max(2, int(passes_raw))
            except (TypeError, ValueError):
                min_render_passes = None

        level_raw = data.get("log_level")
        log_level: LogLevel | None = None
        if isinstance(level_raw, str) and level_raw.upper() in LOG_LEVELS:
            log_level = cast(LogLevel, level_raw.upper())

        return cls(
            template_dirs=template_dirs,
            validate=validate,
            min_render_passes=min_render_passes,
            log_level=log_level,
        )


# Default configuration values (used when not specified anywhere)
DEFAULT_CONFIG = DocskelConfig(
    template_dirs=(),
    validate=True,
    min_render_passes=16,
    log_level="WARNING",
)
