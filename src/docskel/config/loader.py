"""Loading of docskel settings from the user and project ``.docskel`` dirs.

The user file sets defaults for every project (extra template directories,
whether ``render`` validates variables, the render pass minimum, log level);
the project file overrides them for one working tree.
"""

import logging
from pathlib import Path

import yaml

from docskel.config.schema import DEFAULT_CONFIG, DocskelConfig

logger = logging.getLogger(__name__)

DOCSKEL_DIRNAME = ".docskel"
CONFIG_FILENAME = "config.yaml"


def get_home_config_path() -> Path:
    """User settings file, next to ~/.docskel/templates/."""
    return Path.home() / DOCSKEL_DIRNAME / CONFIG_FILENAME


def get_local_config_path() -> Path:
    """Project settings file, next to ./.docskel/templates/ in the cwd."""
    return Path.cwd() / DOCSKEL_DIRNAME / CONFIG_FILENAME


def home_config_exists() -> bool:
    """Whether ``docskel init`` has written user settings yet."""
    return get_home_config_path().exists()


def local_config_exists() -> bool:
    """Whether this project has its own settings (``docskel init --local``)."""
    return get_local_config_path().exists()


def load_yaml_config(path: Path) -> dict[str, object] | None:
    """Read one settings file as a raw mapping for DocskelConfig.from_dict().

    A missing file, an empty one, a non-mapping document or broken YAML all
    yield None so that layer is skipped and the lower layers stay in effect.
    """
    if not path.exists():
        return None
    try:
        with path.open() as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        logger.debug("Ignoring unparseable config %s: %s", path, exc)
        return None
    if not isinstance(data, dict):
        return None
    result: dict[str, object] = data
    return result


def load_config() -> DocskelConfig:
    """Effective docskel settings for the current directory.

    Layers, later ones override keys they set:
    1. DEFAULT_CONFIG (validation on, 16 render passes, WARNING logs)
    2. ~/.docskel/config.yaml
    3. ./.docskel/config.yaml
    """
    config = DEFAULT_CONFIG

    for path in (get_home_config_path(), get_local_config_path()):
        data = load_yaml_config(path)
        if data:
            logger.debug("Layering config from %s", path)
            config = config.merge(DocskelConfig.from_dict(data))

    return config


def save_config(config: DocskelConfig, path: Path) -> None:
    """Write ``config`` as YAML, creating the ``.docskel`` dir if needed.

    Unset fields are left out so the file only pins what it overrides.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.to_dict()
    with path.open("w") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
