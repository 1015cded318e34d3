"""Data models for the bundler dependency source."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from packageurl import PackageURL

from .requirements import GemRequirement, GemVersion

RUBY_PLATFORM = "ruby"
DEFAULT_GROUP = "default"
DEFAULT_REQUIREMENT = ">= 0"


class DependencyType(str, Enum):
    """Kinds of gem dependencies."""

    RUNTIME = "runtime"
    DEVELOPMENT = "development"


class SourceKind(str, Enum):
    """Where a resolved gem comes from."""

    REGISTRY = "registry"  # GEM section, rubygems.org or a mirror
    PATH = "path"  # PATH section and `gemspec`, part of the project itself
    GIT = "git"  # GIT section
    SELF = "self"  # the bundler gem, loaded from the system installation


@dataclass(frozen=True)
class GemSource:
    """A source that resolved gems are loaded from.

    Attributes:
        kind: Type of the source
        location: Remote URL, repository URL or local directory
        revision: Git revision, for git sources only
    """

    kind: SourceKind
    location: str = ""
    revision: Optional[str] = None

    @property
    def is_local(self) -> bool:
        """Whether this source points at a sub-package of the project."""
        return self.kind == SourceKind.PATH

    def local_gemspec(self, name: str, root: Path) -> Optional[Path]:
        """Return the gemspec file a path source would load `name` from."""
        if not self.is_local:
            return None
        directory = (root / self.location).resolve()
        candidate = directory / f"{name}.gemspec"
        if candidate.is_file():
            return candidate
        return next(iter(sorted(directory.glob("*.gemspec"))), None) if directory.is_dir() else None

    def __str__(self) -> str:
        if self.revision:
            return f"{self.kind.value}:{self.location}@{self.revision}"
        return f"{self.kind.value}:{self.location}"


SELF_SOURCE = GemSource(SourceKind.SELF, "system")


@dataclass(frozen=True)
class RootDeclaration:
    """A dependency declared in the Gemfile.

    `platform_applicable` is False when the Gemfile limits the gem to
    platforms other than the one being audited.
    """

    name: str
    requirement: str = DEFAULT_REQUIREMENT
    type: DependencyType = DependencyType.RUNTIME
    groups: frozenset[str] = frozenset({DEFAULT_GROUP})
    platforms: tuple[str, ...] = ()
    platform_applicable: bool = True
    source: Optional[GemSource] = None


@dataclass(frozen=True)
class TransitiveDeclaration:
    """A dependency of a resolved gem specification. Carries no groups."""

    name: str
    requirement: str = DEFAULT_REQUIREMENT
    type: DependencyType = DependencyType.RUNTIME

    @property
    def groups(self) -> None:
        return None


DependencyDeclaration = Union[RootDeclaration, TransitiveDeclaration]


@dataclass(frozen=True, eq=False)
class BaseSpecification:
    """Fields shared by lazy and concrete specifications.

    Specifications are identified by name, version and source. Two
    objects for the same gem compare equal whether or not they have
    been materialized.
    """

    name: str
    version: str
    source: GemSource
    platform: str = RUBY_PLATFORM
    dependencies: tuple[TransitiveDeclaration, ...] = ()

    lazy = False

    @property
    def identity(self) -> tuple[str, str, GemSource]:
        return (self.name, self.version, self.source)

    @property
    def full_name(self) -> str:
        if self.platform and self.platform != RUBY_PLATFORM:
            return f"{self.name}-{self.version}-{self.platform}"
        return f"{self.name}-{self.version}"

    def satisfies(self, declaration: DependencyDeclaration) -> bool:
        """Whether this specification matches a declaration's name and requirement."""
        if self.name != declaration.name:
            return False
        return GemRequirement.parse(declaration.requirement).satisfied_by(GemVersion(self.version))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BaseSpecification):
            return NotImplemented
        return self.identity == other.identity

    def __hash__(self) -> int:
        return hash(self.identity)


@dataclass(frozen=True, eq=False)
class LazySpecification(BaseSpecification):
    """A lock file entry that has not been loaded yet."""

    lazy = True


@dataclass(frozen=True, eq=False)
class ConcreteSpecification(BaseSpecification):
    """A fully loaded gem specification."""

    summary: Optional[str] = None
    homepage: Optional[str] = None
    install_location: Optional[str] = None
    licenses: tuple[str, ...] = ()


PackageSpecification = Union[LazySpecification, ConcreteSpecification]


@dataclass
class DependencyRecord:
    """A gem to scan for license compliance.

    Attributes:
        name: Gem name
        version: Resolved version
        summary: Short description from the gemspec
        homepage: Homepage from the gemspec
        location: Directory the gem is installed in
        type: Source type, always "rubygem"
    """

    name: str
    version: str
    summary: Optional[str] = None
    homepage: Optional[str] = None
    location: Optional[str] = None
    type: str = "rubygem"
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_spec(cls, spec: ConcreteSpecification) -> "DependencyRecord":
        metadata: dict[str, Any] = {}
        if spec.licenses:
            metadata["licenses"] = list(spec.licenses)
        return cls(
            name=spec.name,
            version=spec.version,
            summary=spec.summary,
            homepage=spec.homepage,
            location=spec.install_location,
            metadata=metadata,
        )

    @property
    def purl(self) -> str:
        return PackageURL(type="gem", name=self.name, version=self.version).to_string()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.type,
            "name": self.name,
            "version": self.version,
            "summary": self.summary,
            "homepage": self.homepage,
            "location": self.location,
            "purl": self.purl,
        }
        data.update(self.metadata)
        return data
