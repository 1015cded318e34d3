"""Resolved bundler definitions.

`ResolvedDefinition` is the interface the dependency source consumes.
`LockfileDefinition` implements it from a Gemfile and its lock file,
combining the lock file's resolution with the groups and platforms that
are only recorded in the Gemfile.
"""

import platform as host_platform
import sys
from pathlib import Path
from typing import Optional, Protocol

from ..logging_config import logger
from .gemfile import Gemfile, GemspecDirective, load_gemfile, platform_applicable
from .lockfile import Lockfile, load_lockfile
from .models import (
    DEFAULT_GROUP,
    RUBY_PLATFORM,
    DependencyType,
    LazySpecification,
    PackageSpecification,
    RootDeclaration,
    GemSource,
    SourceKind,
)
from .specifications import load_gemspec_file

_CPU_ALIASES = {
    "amd64": "x86_64",
    "aarch64": "arm64",
    "arm64": "aarch64",
}


class ResolvedDefinition(Protocol):
    """A dependency resolution produced by bundler.

    Attributes:
        dependencies: Declarations from the Gemfile
        groups: Every group named in the Gemfile
    """

    @property
    def dependencies(self) -> list[RootDeclaration]: ...

    @property
    def groups(self) -> list[str]: ...

    def resolve(self) -> list[PackageSpecification]:
        """Return every resolved specification, preferred platform variants first."""
        ...


def local_platforms(machine: Optional[str] = None, system: Optional[str] = None) -> list[str]:
    """Return the gem platform prefixes that match the running host."""
    machine = (machine or host_platform.machine() or "").lower()
    system = (system or sys.platform).lower()
    if system.startswith("linux"):
        os_name = "linux"
    elif system == "darwin":
        os_name = "darwin"
    elif system.startswith(("win32", "cygwin")):
        os_name = "mingw"
    else:
        os_name = system

    cpus = [machine]
    if machine in _CPU_ALIASES:
        cpus.append(_CPU_ALIASES[machine])
    if os_name == "darwin":
        cpus.append("universal")
    if os_name == "mingw" and machine in ("amd64", "x86_64"):
        cpus.append("x64")
    return [f"{cpu}-{os_name}" for cpu in cpus if cpu]


def _platform_rank(spec_platform: str, preferred: list[str]) -> int:
    if any(spec_platform.startswith(p) for p in preferred):
        return 0
    if spec_platform == RUBY_PLATFORM:
        return 1
    return 2


class LockfileDefinition:
    """Resolved definition backed by a Gemfile and Gemfile.lock."""

    def __init__(
        self,
        gemfile: Gemfile,
        lockfile: Lockfile,
        system: str = sys.platform,
        platforms: Optional[list[str]] = None,
        root: Optional[Path] = None,
    ) -> None:
        self.gemfile = gemfile
        self.lockfile = lockfile
        self.system = system
        self.platforms = platforms if platforms is not None else local_platforms(system=system)
        self.root = root
        self._dependencies: Optional[list[RootDeclaration]] = None
        self._resolved: Optional[list[PackageSpecification]] = None

    @classmethod
    def build(cls, gemfile_path: Path, lockfile_path: Path) -> "LockfileDefinition":
        """Load the definition for a Gemfile and its lock file."""
        logger.debug(f"Building bundler definition from {gemfile_path} and {lockfile_path}")
        return cls(load_gemfile(gemfile_path), load_lockfile(lockfile_path), root=gemfile_path.parent)

    @property
    def groups(self) -> list[str]:
        return self.gemfile.groups

    @property
    def dependencies(self) -> list[RootDeclaration]:
        if self._dependencies is None:
            self._dependencies = self._build_dependencies()
        return self._dependencies

    def resolve(self) -> list[PackageSpecification]:
        if self._resolved is None:
            specs: list[LazySpecification] = list(self.lockfile.specs)
            # sorted() is stable, lock file order is kept within a rank
            self._resolved = sorted(specs, key=lambda s: _platform_rank(s.platform, self.platforms))
        return list(self._resolved)

    def _gemspec_gem_names(self) -> set[str]:
        """Names of locked gems that come from a local path source."""
        return {s.name for s in self.lockfile.specs if s.source.kind == SourceKind.PATH}

    def _development_group(self) -> Optional[str]:
        gemspecs: list[GemspecDirective] = self.gemfile.gemspecs
        return gemspecs[0].development_group if gemspecs else None

    def _gemspec_development_names(self) -> Optional[set[str]]:
        """Development dependencies of the Gemfile's gemspecs, None when they cannot be loaded."""
        if self.root is None:
            return None
        names: set[str] = set()
        for directive in self.gemfile.gemspecs:
            directory = (self.root / directive.path).resolve()
            if directive.name:
                paths = [directory / f"{directive.name}.gemspec"]
            else:
                paths = sorted(directory.glob("*.gemspec"))
            paths = [p for p in paths if p.is_file()]
            if not paths:
                logger.warning(f"No gemspec found in {directory}")
                return None
            for path in paths:
                spec = load_gemspec_file(path, GemSource(SourceKind.PATH, directive.path))
                if spec is None:
                    return None
                names.update(d.name for d in spec.dependencies if d.type == DependencyType.DEVELOPMENT)
        return names

    def _build_dependencies(self) -> list[RootDeclaration]:
        sources = {s.name: s.source for s in self.lockfile.specs}
        path_gems = self._gemspec_gem_names()
        development_group = self._development_group()
        development_names = self._gemspec_development_names() if development_group is not None else set()
        declarations: list[RootDeclaration] = []

        for name, locked in self.lockfile.dependencies.items():
            declared = self.gemfile.dependencies.get(name)
            if declared is not None:
                declarations.append(
                    RootDeclaration(
                        name=name,
                        requirement=locked.requirement,
                        groups=frozenset(declared.groups),
                        platforms=tuple(declared.platforms),
                        platform_applicable=platform_applicable(declared.platforms, self.system),
                        source=sources.get(name) if locked.pinned else None,
                    )
                )
            elif development_group is not None and development_names and name in development_names:
                declarations.append(
                    RootDeclaration(
                        name=name,
                        requirement=locked.requirement,
                        type=DependencyType.DEVELOPMENT,
                        groups=frozenset({development_group}),
                    )
                )
            else:
                if name not in path_gems:
                    logger.warning(
                        f"{name} is locked but not declared by a readable gem statement, "
                        "treating it as a runtime dependency"
                    )
                declarations.append(
                    RootDeclaration(
                        name=name,
                        requirement=locked.requirement,
                        source=sources.get(name) if locked.pinned else None,
                    )
                )

        for name, declared in self.gemfile.dependencies.items():
            if name in self.lockfile.dependencies:
                continue
            logger.warning(f"{name} is declared in the Gemfile but missing from the lock file")
            declarations.append(
                RootDeclaration(
                    name=name,
                    requirement=declared.requirement,
                    groups=frozenset(declared.groups or [DEFAULT_GROUP]),
                    platforms=tuple(declared.platforms),
                    platform_applicable=platform_applicable(declared.platforms, self.system),
                )
            )

        return declarations
