"""Initialization logic for the docskel directory structure."""

from pathlib import Path

from docskel.templates.loader import (
    copy_default_templates_to_dir,
    get_global_templates_path,
    get_local_templates_path,
)


def copy_default_templates(local: bool = False) -> list[str]:
    """Copy default templates from package to templates directory.

    Args:
        local: If True, copy to ./.docskel/templates/ (project-local).
               If False, copy to ~/.docskel/templates/ (global, default).

    Returns:
        List of template files that were copied. Existing files are kept.
    """
    target = get_local_templates_path() if local else get_global_templates_path()
    return copy_default_templates_to_dir(target)


def ensure_docskel_dir() -> Path:
    """Create the .docskel directory in the current working directory.

    Creates:
        .docskel/
        .docskel/.gitignore (with output/ ignored)
    """
    docskel_dir = Path.cwd() / ".docskel"
    gitignore_path = docskel_dir / ".gitignore"

    docskel_dir.mkdir(parents=True, exist_ok=True)

    if not gitignore_path.exists():
        gitignore_path.write_text("output/\n")
    return docskel_dir


def ensure_home_docskel_dir() -> Path:
    """Create ~/.docskel directory if it doesn't exist.

    Returns the path to the home docskel directory.
    """
    home_dir = Path.home() / ".docskel"
    home_dir.mkdir(parents=True, exist_ok=True)
    return home_dir
