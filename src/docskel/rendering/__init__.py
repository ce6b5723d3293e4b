"""Template rendering engine and static variable extraction."""

from docskel.rendering.engine import Renderer, render
from docskel.rendering.extract import (
    extract_variables,
    referenced_paths,
    variable_manifest,
)
from docskel.rendering.resolver import resolve_path
from docskel.rendering.values import UNDEFINED, is_truthy, kind_of, to_text

__all__ = [
    "UNDEFINED",
    "Renderer",
    "extract_variables",
    "is_truthy",
    "kind_of",
    "referenced_paths",
    "render",
    "resolve_path",
    "to_text",
    "variable_manifest",
]
