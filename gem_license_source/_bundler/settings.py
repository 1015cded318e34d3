"""Bundler settings and the scoped local configuration.

Bundler reads settings from three places, highest precedence first:
`BUNDLE_*` environment variables, the project's `.bundle/config` and the
user's `~/.bundle/config`. Only the settings that affect which gems are
audited and where installed specifications live are loaded here.
"""

import os
import re
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Generator, Mapping, Optional

import yaml

from ..logging_config import logger

GEMFILE_ENV = "BUNDLE_GEMFILE"
_LIST_SEPARATOR_RE = re.compile(r"[:\s,]+")


def normalize_group(group: Any) -> str:
    """Normalize a group name: `:development` and `development` are the same group."""
    return str(group).strip().lstrip(":")


def normalize_groups(groups: Any) -> list[str]:
    """Normalize a group list given as a list or a `:`/space separated string."""
    if groups is None:
        return []
    if isinstance(groups, str):
        groups = _LIST_SEPARATOR_RE.split(groups)
    result: list[str] = []
    for group in groups:
        name = normalize_group(group)
        if name and name not in result:
            result.append(name)
    return result


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return {}
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Ignoring unreadable bundler config {path}: {e}")
        return {}
    return data if isinstance(data, dict) else {}


@dataclass
class BundlerSettings:
    """Settings bundler would use for a project.

    Attributes:
        without: Groups bundler is configured to skip
        with_: Optional groups bundler is configured to install
        path: Bundle install path, if configured
        gem_home: GEM_HOME from the environment, if set
        gemfile: Gemfile bundler is pointed at, if set
    """

    without: list[str] = field(default_factory=list)
    with_: list[str] = field(default_factory=list)
    path: Optional[str] = None
    gem_home: Optional[str] = None
    gemfile: Optional[str] = None

    @classmethod
    def load(
        cls,
        root: Path,
        environ: Optional[Mapping[str, str]] = None,
        home: Optional[Path] = None,
    ) -> "BundlerSettings":
        """
        Load settings for the project in `root`.

        Args:
            root: Project directory containing the Gemfile
            environ: Environment to read, defaults to os.environ
            home: Home directory for the user config, defaults to Path.home()
        """
        env = os.environ if environ is None else environ
        home = home if home is not None else Path.home()

        app_config = Path(env["BUNDLE_APP_CONFIG"]) if env.get("BUNDLE_APP_CONFIG") else root / ".bundle"
        if not app_config.is_absolute():
            app_config = root / app_config

        merged: dict[str, Any] = {}
        merged.update(_read_config_file(home / ".bundle" / "config"))
        merged.update(_read_config_file(app_config / "config"))
        merged.update({k: v for k, v in env.items() if k.startswith("BUNDLE_")})

        path = merged.get("BUNDLE_PATH")
        if path and not Path(str(path)).is_absolute():
            path = str(root / str(path))

        settings = cls(
            without=normalize_groups(merged.get("BUNDLE_WITHOUT")),
            with_=normalize_groups(merged.get("BUNDLE_WITH")),
            path=str(path) if path else None,
            gem_home=env.get("GEM_HOME") or None,
            gemfile=merged.get(GEMFILE_ENV) or None,
        )
        logger.debug(f"Bundler settings for {root}: without={settings.without} with={settings.with_}")
        return settings


@contextmanager
def local_configuration(gemfile_path: Path) -> Generator[BundlerSettings, None, None]:
    """
    Point bundler at `gemfile_path` and load settings for its project.

    BUNDLE_GEMFILE is restored to its previous value (or removed) when the
    block exits, whether or not it raised.
    """
    original_gemfile = os.environ.get(GEMFILE_ENV)
    os.environ[GEMFILE_ENV] = str(gemfile_path)
    try:
        yield BundlerSettings.load(gemfile_path.parent)
    finally:
        if original_gemfile is None:
            os.environ.pop(GEMFILE_ENV, None)
        else:
            os.environ[GEMFILE_ENV] = original_gemfile
