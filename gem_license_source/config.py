"""Project configuration for gem-license-source.

Configuration is read from a `.licensed.yml` (or `.yaml`/`.json`) file
in the project root. Only the keys used by the sources are validated:

    rubygems:
      without:
        - development
        - test
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from .exceptions import ConfigurationError
from .logging_config import logger

CONFIG_FILENAMES = (".licensed.yml", ".licensed.yaml", ".licensed.json")
LOG_LEVEL_ENV = "GEM_LICENSE_SOURCE_LOG_LEVEL"


@dataclass
class Configuration:
    """Configuration settings for a single project."""

    root: Path
    data: dict[str, Any] = field(default_factory=dict)

    def dig(self, *keys: str) -> Any:
        """Return a nested value, or None if any key along the way is missing."""
        value: Any = self.data
        for key in keys:
            if not isinstance(value, dict):
                return None
            value = value.get(key)
            if value is None:
                return None
        return value

    def validate(self) -> None:
        """
        Validate configuration settings.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if not self.root.is_dir():
            raise ConfigurationError(f"Project root is not a directory: {self.root}")

        rubygems = self.data.get("rubygems")
        if rubygems is not None and not isinstance(rubygems, dict):
            raise ConfigurationError("'rubygems' must be a mapping")

        without = self.dig("rubygems", "without")
        if without is None or isinstance(without, str):
            return
        if not isinstance(without, list) or not all(isinstance(g, str) for g in without):
            raise ConfigurationError("'rubygems.without' must be a group name or a list of group names")


def find_config_file(root: Path) -> Optional[Path]:
    """Return the first configuration file found in `root`."""
    for filename in CONFIG_FILENAMES:
        candidate = root / filename
        if candidate.is_file():
            return candidate
    return None


def load_config(root: str | Path = ".", config_file: str | Path | None = None) -> Configuration:
    """
    Load and validate configuration for a project.

    Args:
        root: Project root directory
        config_file: Explicit configuration file, overrides discovery in `root`

    Returns:
        Validated configuration object

    Raises:
        ConfigurationError: If the file cannot be read or is invalid
    """
    root_path = Path(os.path.expanduser(str(root))).resolve()
    path = Path(config_file) if config_file else find_config_file(root_path)

    data: dict[str, Any] = {}
    if path is not None:
        logger.debug(f"Loading configuration from {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f)
        except OSError as e:
            raise ConfigurationError(f"Unable to read configuration file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid configuration file {path}: {e}") from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigurationError(f"Configuration file {path} must contain a mapping")
        data = loaded

    config = Configuration(root=root_path, data=data)
    config.validate()
    return config
