"""Template loading and discovery."""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable
from pathlib import Path

import yaml

from docskel.templates.base import Template

logger = logging.getLogger(__name__)

# Constants
TEMPLATE_DIRNAME = "templates"
TEMPLATE_SUFFIXES: tuple[str, ...] = (".yaml", ".yml")


def get_package_templates_path() -> Path:
    """Get path to package-bundled default templates."""
    return Path(__file__).parent / "default"


def get_global_templates_path() -> Path:
    """Get path to global user templates: ~/.docskel/templates/."""
    return Path.home() / ".docskel" / TEMPLATE_DIRNAME


def get_local_templates_path() -> Path:
    """Get path to project-specific templates: ./.docskel/templates/."""
    return Path.cwd() / ".docskel" / TEMPLATE_DIRNAME


def get_template_search_paths(extra_dirs: Iterable[str | Path] = ()) -> list[Path]:
    """Return existing template directories, lowest priority first.

    Resolution order (later wins for the same template id):
    1. Global user templates (~/.docskel/templates/)
    2. Directories named in config (``template_dirs``), in order
    3. Local project templates (./.docskel/templates/)
    """
    candidates = [get_global_templates_path()]
    candidates.extend(Path(d).expanduser() for d in extra_dirs)
    candidates.append(get_local_templates_path())

    paths: list[Path] = []
    for path in candidates:
        if path.is_dir() and path not in paths:
            paths.append(path)
    return paths


def discover_template_files(base_path: Path) -> list[Path]:
    """Find template files under ``base_path``, recursing into subdirectories.

    Files are returned sorted so that load order is stable.
    """
    if not base_path.is_dir():
        return []
    return sorted(
        p for p in base_path.rglob("*") if p.is_file() and p.suffix in TEMPLATE_SUFFIXES
    )


def load_template_file(path: Path) -> Template | None:
    """Load a Template from a YAML file.

    The id defaults to the file stem. Returns None if the file cannot be read
    or does not contain a mapping.
    """
    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Skipping unreadable template file %s: %s", path, exc)
        return None

    if not isinstance(data, dict):
        logger.warning("Skipping template file %s: expected a mapping", path)
        return None

    template = Template.from_dict(data, source=path, default_id=path.stem)
    logger.debug("Template loaded: %s from %s", template.id, path)
    return template


def load_templates(directory: Path) -> list[Template]:
    """Load every template file found under ``directory``."""
    templates: list[Template] = []
    for path in discover_template_files(directory):
        template = load_template_file(path)
        if template is not None:
            templates.append(template)
    logger.info("Loaded %d templates from %s", len(templates), directory)
    return templates


def get_all_templates(extra_dirs: Iterable[str | Path] = ()) -> dict[str, Template]:
    """Discover and load all templates from the search paths.

    Returns dict mapping template id -> Template. For duplicate ids the
    template from the higher priority location wins.
    """
    templates: dict[str, Template] = {}
    for directory in get_template_search_paths(extra_dirs):
        for template in load_templates(directory):
            if template.id in templates:
                logger.debug(
                    "Template %s from %s overrides %s",
                    template.id,
                    template.source,
                    templates[template.id].source,
                )
            templates[template.id] = template
    return templates


def copy_default_templates_to_dir(target: Path, overwrite: bool = False) -> list[str]:
    """Copy package default templates into ``target``.

    Args:
        target: Directory to copy into; created if missing.
        overwrite: If True, overwrite existing files. If False, skip existing.

    Returns:
        List of template file names that were copied.
    """
    package_path = get_package_templates_path()
    target.mkdir(parents=True, exist_ok=True)

    copied: list[str] = []
    for source in discover_template_files(package_path):
        relative = source.relative_to(package_path)
        dest = target / relative

        if dest.exists() and not overwrite:
            continue

        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, dest)
        copied.append(str(relative))

    return copied
