"""Resolving dependency declarations to loaded gem specifications."""

import dataclasses
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from ..exceptions import SpecificationNotFoundError
from ..logging_config import logger
from ..shell import execute, original_env, tool_available
from .gemspec_yaml import parse_gemspec_yaml
from .models import (
    SELF_SOURCE,
    ConcreteSpecification,
    DependencyDeclaration,
    GemSource,
    LazySpecification,
    PackageSpecification,
)
from .settings import BundlerSettings

if TYPE_CHECKING:
    from .definition import ResolvedDefinition

SELF_GEM = "bundler"

# Prints a .gemspec file (which is Ruby code) as YAML
GEMSPEC_TO_YAML = "puts Gem::Specification.load(ARGV.first).to_yaml"


def load_gemspec_file(
    path: Path, source: GemSource, install_location: Optional[str] = None
) -> Optional[ConcreteSpecification]:
    """
    Load a `.gemspec` file by evaluating it with ruby.

    Returns None when ruby is not available.

    Raises:
        CommandExecutionError: If ruby fails to load the file
        GemspecLoadError: If the loaded specification cannot be read
    """
    if not tool_available("ruby"):
        logger.warning(f"ruby is not available, unable to load {path}")
        return None
    yaml_text = execute("ruby", "-e", GEMSPEC_TO_YAML, str(path), cwd=path.parent, env=original_env())
    return parse_gemspec_yaml(yaml_text, source, install_location)


class SpecificationLookup:
    """Finds the specification that satisfies a declaration.

    Lock file entries are lazy: they name a gem but carry no metadata.
    Entries from local path sources are loaded from the project itself,
    all others from the installed spec store. The bundler gem never
    appears in the spec store and is loaded with `gem specification`.
    """

    def __init__(self, definition: "ResolvedDefinition", settings: BundlerSettings, root: Path) -> None:
        self.definition = definition
        self.settings = settings
        self.root = root
        self._self_spec: Optional[ConcreteSpecification] = None
        self._self_spec_loaded = False
        self._specs_path: Optional[Path] = None
        self._specs_path_loaded = False
        self._gem_dir: Optional[Path] = None

    def with_settings(self, settings: BundlerSettings) -> "SpecificationLookup":
        """Return a lookup for other settings that keeps the loaded bundler gem."""
        lookup = SpecificationLookup(self.definition, settings, self.root)
        lookup._self_spec = self._self_spec
        lookup._self_spec_loaded = self._self_spec_loaded
        lookup._gem_dir = self._gem_dir
        return lookup

    def resolve(self, declaration: DependencyDeclaration) -> Optional[ConcreteSpecification]:
        """Return the loaded specification for `declaration`, or None if there is none."""
        if declaration.name == SELF_GEM:
            return self.self_specification()

        spec = next((s for s in self.definition.resolve() if s.satisfies(declaration)), None)
        if spec is None:
            return None
        return self.materialize(spec)

    def require(self, declaration: DependencyDeclaration) -> Optional[ConcreteSpecification]:
        """
        Like `resolve`, but a missing specification is an error.

        The bundler self-dependency is the exception: it resolves to None
        when the `gem` tool is not available.

        Raises:
            SpecificationNotFoundError: If no specification can be found
        """
        spec = self.resolve(declaration)
        if spec is None and declaration.name != SELF_GEM:
            raise SpecificationNotFoundError(declaration.name, declaration.requirement)
        return spec

    def materialize(self, spec: PackageSpecification) -> Optional[ConcreteSpecification]:
        """Turn a lock file entry into a concrete specification."""
        if not isinstance(spec, LazySpecification):
            return spec

        if spec.source.is_local:
            return self._materialize_local(spec)

        specs_path = self.specs_path()
        if specs_path is None:
            logger.debug(f"No spec store available to load {spec.full_name}")
            return None

        gemspec_path = specs_path / f"{spec.full_name}.gemspec"
        if not gemspec_path.is_file():
            logger.debug(f"{gemspec_path} does not exist")
            return None

        install_location = specs_path.parent / "gems" / spec.full_name
        loaded = self._load_gemspec(gemspec_path, spec, str(install_location))
        return loaded

    def self_specification(self) -> Optional[ConcreteSpecification]:
        """Return the bundler gem's specification, loaded at most once."""
        if self._self_spec_loaded:
            return self._self_spec

        if not tool_available("gem"):
            logger.warning("gem is not available, the bundler gem will not be included")
            self._self_spec_loaded = True
            return None

        yaml_text = execute("gem", "specification", SELF_GEM, cwd=self.root, env=original_env())
        spec = parse_gemspec_yaml(yaml_text, SELF_SOURCE)
        gem_dir = Path(self.settings.gem_home) if self.settings.gem_home else self.gem_dir()
        if gem_dir is not None:
            spec = dataclasses.replace(spec, install_location=str(gem_dir / "gems" / spec.full_name))
        logger.debug(f"Loaded {spec.full_name} from the system gem installation")
        self._self_spec = spec
        self._self_spec_loaded = True
        return spec

    def gem_dir(self) -> Optional[Path]:
        """Return the system gem directory reported by `gem env gemdir`."""
        if self._gem_dir is None and tool_available("gem"):
            output = execute("gem", "env", "gemdir", cwd=self.root, env=original_env())
            if output:
                self._gem_dir = Path(output)
        return self._gem_dir

    def specs_path(self) -> Optional[Path]:
        """Return the directory installed `.gemspec` files are stored in."""
        if not self._specs_path_loaded:
            self._specs_path = self._find_specs_path()
            self._specs_path_loaded = True
        return self._specs_path

    def _find_specs_path(self) -> Optional[Path]:
        if self.settings.path:
            bundle_path = Path(self.settings.path)
            candidates = [bundle_path / "specifications"]
            candidates.extend(sorted(bundle_path.glob("ruby/*/specifications"), reverse=True))
            for candidate in candidates:
                if candidate.is_dir():
                    return candidate

        if self.settings.gem_home:
            candidate = Path(self.settings.gem_home) / "specifications"
            if candidate.is_dir():
                return candidate

        gem_dir = self.gem_dir()
        if gem_dir is not None:
            return gem_dir / "specifications"

        return None

    def _materialize_local(self, spec: LazySpecification) -> Optional[ConcreteSpecification]:
        gemspec_path = spec.source.local_gemspec(spec.name, self.root)
        install_location = str(gemspec_path.parent) if gemspec_path else str((self.root / spec.source.location).resolve())

        if gemspec_path is not None and tool_available("ruby"):
            return self._load_gemspec(gemspec_path, spec, install_location)

        # Without ruby the lock file entry is all there is to know
        return ConcreteSpecification(
            name=spec.name,
            version=spec.version,
            source=spec.source,
            platform=spec.platform,
            dependencies=spec.dependencies,
            install_location=install_location,
        )

    def _load_gemspec(self, path: Path, spec: LazySpecification, install_location: str) -> Optional[ConcreteSpecification]:
        loaded = load_gemspec_file(path, spec.source, install_location)
        if loaded is None:
            return None
        # Keep the identity the lock file resolved
        return dataclasses.replace(loaded, name=spec.name, version=spec.version, platform=spec.platform)
