"""Reads the bridge's YAML config and resolves environment placeholders.

The file has two sections, ``bridge_settings`` (a mapping) and ``providers``
(a list). Placeholders of the form ``${VAR}`` or ``$VAR`` are filled from the
config's companion env file first (``config_<name>.yaml`` pairs with
``.env_<name>``), then from the process environment.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from dotenv import dotenv_values

from .core.exceptions import ConfigurationError

logger = logging.getLogger("responses-bridge")

CONFIG_PATH_ENV = "RESPONSES_BRIDGE_CONFIG"
BUNDLED_CONFIG = "configs/config_default.yaml"
PROJECT_ROOT = Path(__file__).resolve().parent.parent

SECTION_TYPES: dict[str, type] = {
    "bridge_settings": dict,
    "providers": list,
}

_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


def locate_config(path: Optional[str] = None) -> Path:
    """Pick the config file: explicit path, then $RESPONSES_BRIDGE_CONFIG, then the bundled one.

    Relative paths are taken from the project root, not the working directory.
    """
    chosen = Path(path or os.getenv(CONFIG_PATH_ENV) or BUNDLED_CONFIG)
    return chosen if chosen.is_absolute() else PROJECT_ROOT / chosen


def companion_env_file(config_path: Path, override: Optional[str] = None) -> Path:
    if override:
        return locate_config(override)
    name = config_path.stem
    if name.startswith("config_"):
        return config_path.with_name(".env_" + name[len("config_"):])
    return config_path.with_name(".env")


def read_env_file(env_file: Path) -> dict[str, str]:
    if not env_file.exists():
        return {}
    logger.info(f"Loading environment variables from {env_file}")
    return {key: value for key, value in dotenv_values(env_file).items() if value is not None}


def check_sections(data: Any, source: Path) -> dict:
    """Ensure the parsed document has the shape the bridge reads.

    Raises:
        ConfigurationError: If the document or one of its sections has the wrong type
    """
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{source}: top level must be a mapping")
    for section, expected in SECTION_TYPES.items():
        value = data.get(section)
        if value is not None and not isinstance(value, expected):
            raise ConfigurationError(
                f"{source}: '{section}' must be a {'mapping' if expected is dict else 'list'}"
            )
    unknown = sorted(set(data) - set(SECTION_TYPES))
    if unknown:
        logger.warning(f"Ignoring unknown config sections in {source}: {', '.join(unknown)}")
    return data


class PlaceholderExpander:
    """Fills ``${VAR}`` / ``$VAR`` in every string of a config tree.

    Names that resolve nowhere keep their placeholder and are collected in
    ``unresolved`` so they can be reported once per load.
    """

    def __init__(self, env_values: Optional[Mapping[str, str]] = None) -> None:
        self.env_values = dict(env_values or {})
        self.unresolved: set[str] = set()

    def expand(self, value: Any) -> Any:
        if isinstance(value, dict):
            return {key: self.expand(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self.expand(item) for item in value]
        if isinstance(value, str):
            return _PLACEHOLDER.sub(self._lookup, value)
        return value

    def _lookup(self, match: re.Match) -> str:
        name = match.group(1) or match.group(2)
        found = self.env_values.get(name)
        if found is None:
            found = os.getenv(name)
        if found is None:
            self.unresolved.add(name)
            return match.group(0)
        return found


def load_config(
    path: Optional[str] = None,
    env_path: Optional[str] = None,
    substitute_env: bool = True,
) -> dict:
    """Load and validate the bridge config.

    Args:
        path: Config file; see ``locate_config`` for the fallbacks.
        env_path: Env file to use instead of the config's companion.
        substitute_env: Resolve placeholders when true.

    Raises:
        ConfigurationError: If the file is missing or malformed
    """
    config_path = locate_config(path)
    if not config_path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")

    logger.info(f"Loading configuration from {config_path}")
    try:
        with config_path.open("r", encoding="utf-8") as fh:
            data = check_sections(yaml.safe_load(fh), config_path)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"{config_path}: invalid YAML: {exc}") from exc

    if not substitute_env:
        return data

    expander = PlaceholderExpander(read_env_file(companion_env_file(config_path, env_path)))
    data = expander.expand(data)
    if expander.unresolved:
        logger.warning(
            "Unset environment variables left as placeholders: "
            + ", ".join(sorted(expander.unresolved))
        )
    return data
