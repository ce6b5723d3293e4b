"""Dotted-path lookup against a nested environment."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from docskel.rendering.values import UNDEFINED


def resolve_path(env: Mapping[str, Any], path: str) -> Any:
    """Resolve a dotted path such as ``user.role`` against ``env``.

    Returns UNDEFINED when a segment is missing or an intermediate value is
    not a mapping. Never raises.
    """
    current: Any = env
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return UNDEFINED
        current = current[part]
    return current
