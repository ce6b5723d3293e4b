"""docskel - render SDLC document skeletons from inheritable templates."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("docskel")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from docskel.errors import (
    CircularInheritanceError,
    DocskelError,
    MissingTemplateError,
    RenderNonConvergenceError,
    ValidationFailureError,
)
from docskel.rendering import Renderer, extract_variables, render
from docskel.templates import InheritanceResolver, Template, VariableSpec

__all__ = [
    "CircularInheritanceError",
    "DocskelError",
    "InheritanceResolver",
    "MissingTemplateError",
    "RenderNonConvergenceError",
    "Renderer",
    "Template",
    "ValidationFailureError",
    "VariableSpec",
    "__version__",
    "extract_variables",
    "render",
]
