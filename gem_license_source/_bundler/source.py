"""Bundler dependency source."""

from pathlib import Path
from typing import Optional

from ..config import Configuration
from ..exceptions import ConfigurationError
from ..logging_config import logger
from .closure import TransitiveClosureResolver
from .definition import LockfileDefinition, ResolvedDefinition
from .gemfile import find_gemfile, lockfile_for
from .groups import GroupFilterPolicy, exclude_groups
from .models import ConcreteSpecification, DependencyRecord
from .settings import BundlerSettings, local_configuration
from .specifications import SpecificationLookup


class BundlerSource:
    """Lists the gems a bundler project ships with.

    Development and test gems (per the project's configuration and
    bundler settings) are left out, as are gems that are part of the
    project itself: gemspec and `path:` sources are followed to find
    their dependencies but never reported.

    Example:
        source = BundlerSource(load_config("path/to/app"))
        if source.enabled():
            for record in source.dependencies():
                print(record.name, record.version)
    """

    type = "rubygem"
    name = "bundler"

    def __init__(self, config: Configuration, definition: Optional[ResolvedDefinition] = None) -> None:
        self.config = config
        self._definition = definition
        self._gemfile_path: Optional[Path] = None
        self._dependencies: Optional[list[DependencyRecord]] = None
        self._lookup: Optional[SpecificationLookup] = None
        self._exclude_groups: Optional[list[str]] = None

    @property
    def gemfile_path(self) -> Optional[Path]:
        """Path to the project's Gemfile or gems.rb."""
        if self._gemfile_path is None:
            self._gemfile_path = find_gemfile(self.config.root)
        return self._gemfile_path

    @property
    def lockfile_path(self) -> Optional[Path]:
        """Path to the lock file that belongs to the Gemfile."""
        if self.gemfile_path is None:
            return None
        return lockfile_for(self.gemfile_path)

    def enabled(self) -> bool:
        """Whether the project has a Gemfile with a lock file."""
        lockfile_path = self.lockfile_path
        return lockfile_path is not None and lockfile_path.exists()

    @property
    def definition(self) -> ResolvedDefinition:
        if self._definition is None:
            gemfile_path, lockfile_path = self.gemfile_path, self.lockfile_path
            if gemfile_path is None or lockfile_path is None or not lockfile_path.exists():
                raise ConfigurationError(f"No Gemfile with a lock file found in {self.config.root}")
            self._definition = LockfileDefinition.build(gemfile_path, lockfile_path)
        return self._definition

    @property
    def exclude_groups(self) -> list[str]:
        """Groups excluded by configuration, development and test by default."""
        if self._exclude_groups is None:
            self._exclude_groups = exclude_groups(self.config.dig("rubygems", "without"))
        return self._exclude_groups

    def dependencies(self) -> list[DependencyRecord]:
        """
        Return a record for every gem to audit.

        The result is computed once per source.

        Raises:
            SpecificationNotFoundError: If an included gem has no specification
        """
        if self._dependencies is not None:
            return self._dependencies

        gemfile_path = self.gemfile_path
        if gemfile_path is None:
            raise ConfigurationError(f"No Gemfile found in {self.config.root}")

        with local_configuration(gemfile_path) as settings:
            records = [DependencyRecord.from_spec(spec) for spec in self.specs(settings)]

        logger.info(f"Found {len(records)} gem dependencies in {gemfile_path.name}")
        self._dependencies = records
        return records

    def specs(self, settings: Optional[BundlerSettings] = None) -> list[ConcreteSpecification]:
        """Return the specifications of every gem to audit."""
        if settings is None:
            settings = BundlerSettings.load(self.config.root)

        policy = GroupFilterPolicy(self.definition.groups, settings, self.exclude_groups)
        lookup = self._specification_lookup(settings)

        root_declarations = [d for d in self.definition.dependencies if policy.include(d, None)]
        root_specs = [s for s in (lookup.require(d) for d in root_declarations) if s is not None]

        all_specs = TransitiveClosureResolver(policy, lookup).closure(root_specs)

        local_specs = [s for s in all_specs if s.source.is_local]
        if local_specs:
            logger.debug(f"Removing local gems: {', '.join(s.name for s in local_specs)}")
        return [s for s in all_specs if not s.source.is_local]

    def _specification_lookup(self, settings: BundlerSettings) -> SpecificationLookup:
        # The bundler gem is loaded at most once per source, whatever the settings
        if self._lookup is None:
            self._lookup = SpecificationLookup(self.definition, settings, self.config.root)
        elif self._lookup.settings != settings:
            self._lookup = self._lookup.with_settings(settings)
        return self._lookup
