"""Template definitions, discovery and inheritance."""

from docskel.templates.base import (
    TEMPLATE_CATEGORIES,
    VARIABLE_TYPES,
    Template,
    ValidationRule,
    VariableSpec,
)
from docskel.templates.inheritance import (
    InheritanceResolver,
    TemplateStore,
    merge_templates,
)
from docskel.templates.loader import (
    copy_default_templates_to_dir,
    get_all_templates,
    get_global_templates_path,
    get_local_templates_path,
    get_package_templates_path,
    get_template_search_paths,
    load_template_file,
    load_templates,
)

__all__ = [
    "TEMPLATE_CATEGORIES",
    "VARIABLE_TYPES",
    "InheritanceResolver",
    "Template",
    "TemplateStore",
    "ValidationRule",
    "VariableSpec",
    "copy_default_templates_to_dir",
    "get_all_templates",
    "get_global_templates_path",
    "get_local_templates_path",
    "get_package_templates_path",
    "get_template_search_paths",
    "load_template_file",
    "load_templates",
    "merge_templates",
]

# Default template ids bundled with the package
DEFAULT_TEMPLATES: tuple[str, ...] = (
    "base-document",
    "planning",
    "release-checklist",
    "requirements",
)
