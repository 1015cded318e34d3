"""Parser for Gemfile.lock files.

A lock file is a sequence of sections. Source sections (GEM, GIT, PATH)
list the resolved gems under `specs:` with each gem's own dependencies
indented below it:

    GEM
      remote: https://rubygems.org/
      specs:
        nokogiri (1.15.4-x86_64-linux)
          racc (~> 1.4)

    DEPENDENCIES
      nokogiri (~> 1.15)
      my_engine!

    BUNDLED WITH
       2.4.19
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..exceptions import LockfileParseError
from ..logging_config import logger
from .models import (
    DEFAULT_REQUIREMENT,
    RUBY_PLATFORM,
    GemSource,
    LazySpecification,
    SourceKind,
    TransitiveDeclaration,
)
from .requirements import GemRequirement, GemVersion

_SOURCE_SECTIONS = {
    "GEM": SourceKind.REGISTRY,
    "GIT": SourceKind.GIT,
    "PATH": SourceKind.PATH,
}

# Matches "name", "name (1.0)", "name (1.0-x86_64-linux)" and "name!" at a given indent
_NAME_VERSION_RE = re.compile(r"^(?P<indent> *)(?P<name>[^\s(!]+)(?: \((?P<version>[^-)]*)(?:-(?P<platform>[^)]*))?\))?(?P<pinned>!)?$")
_OPTION_RE = re.compile(r"^  (?P<key>[a-z_]+): (?P<value>.*)$")


@dataclass
class LockedDependency:
    """An entry of the DEPENDENCIES section.

    Attributes:
        name: Gem name
        requirement: Requirement string, `>= 0` when none was recorded
        pinned: True for `name!` entries, whose source is given in the Gemfile
    """

    name: str
    requirement: str = DEFAULT_REQUIREMENT
    pinned: bool = False


@dataclass
class Lockfile:
    """Parsed contents of a Gemfile.lock."""

    specs: list[LazySpecification] = field(default_factory=list)
    dependencies: dict[str, LockedDependency] = field(default_factory=dict)
    platforms: list[str] = field(default_factory=list)
    sources: list[GemSource] = field(default_factory=list)
    bundler_version: Optional[str] = None
    ruby_version: Optional[str] = None


class _SourceBuilder:
    """Collects the options and specs of one source section."""

    def __init__(self, kind: SourceKind) -> None:
        self.kind = kind
        self.options: dict[str, str] = {}
        self.entries: list[tuple[str, str, str, list[TransitiveDeclaration]]] = []

    def source(self) -> GemSource:
        return GemSource(
            kind=self.kind,
            location=self.options.get("remote", ""),
            revision=self.options.get("revision") if self.kind == SourceKind.GIT else None,
        )

    def specs(self) -> list[LazySpecification]:
        source = self.source()
        return [
            LazySpecification(
                name=name,
                version=version,
                source=source,
                platform=platform,
                dependencies=tuple(dependencies),
            )
            for name, version, platform, dependencies in self.entries
        ]


def _requirement(version: Optional[str], platform: Optional[str], lineno: int) -> str:
    # The platform group also captures prerelease suffixes such as "= 1.0-beta"
    if not version:
        return DEFAULT_REQUIREMENT
    requirement = f"{version}-{platform}" if platform else version
    try:
        GemRequirement.parse(requirement)
    except ValueError as e:
        raise LockfileParseError(f"{e} on line {lineno}") from e
    return requirement


def parse_lockfile(content: str) -> Lockfile:
    """
    Parse the text of a Gemfile.lock.

    Raises:
        LockfileParseError: If a line cannot be understood
    """
    lockfile = Lockfile()
    section: Optional[str] = None
    builder: Optional[_SourceBuilder] = None
    in_specs = False

    def finish_source() -> None:
        if builder is not None:
            lockfile.sources.append(builder.source())
            lockfile.specs.extend(builder.specs())

    for lineno, line in enumerate(content.splitlines(), start=1):
        if not line.strip():
            continue

        if not line.startswith(" "):
            finish_source()
            builder = None
            in_specs = False
            section = line.strip()
            if section in _SOURCE_SECTIONS:
                builder = _SourceBuilder(_SOURCE_SECTIONS[section])
            continue

        if builder is not None:
            if line == "  specs:":
                in_specs = True
                continue
            option = _OPTION_RE.match(line)
            if option and not in_specs:
                # GEM sections may list several remotes; the first one is kept
                builder.options.setdefault(option.group("key"), option.group("value").strip())
                continue
            match = _NAME_VERSION_RE.match(line)
            if not in_specs or not match:
                raise LockfileParseError(f"Unexpected line {lineno} in {section} section: {line.strip()}")
            indent = len(match.group("indent"))
            if indent == 4:
                if not match.group("version"):
                    raise LockfileParseError(f"Missing version for {match.group('name')} on line {lineno}")
                try:
                    GemVersion(match.group("version"))
                except ValueError as e:
                    raise LockfileParseError(f"{e} on line {lineno}") from e
                builder.entries.append(
                    (match.group("name"), match.group("version"), match.group("platform") or RUBY_PLATFORM, [])
                )
            elif indent == 6 and builder.entries:
                builder.entries[-1][3].append(
                    TransitiveDeclaration(
                        name=match.group("name"),
                        requirement=_requirement(match.group("version"), match.group("platform"), lineno),
                    )
                )
            else:
                raise LockfileParseError(f"Unexpected indentation on line {lineno}: {line.strip()}")
            continue

        value = line.strip()
        if section == "DEPENDENCIES":
            match = _NAME_VERSION_RE.match(line)
            if not match:
                raise LockfileParseError(f"Unexpected dependency on line {lineno}: {value}")
            lockfile.dependencies[match.group("name")] = LockedDependency(
                name=match.group("name"),
                requirement=_requirement(match.group("version"), match.group("platform"), lineno),
                pinned=bool(match.group("pinned")),
            )
        elif section == "PLATFORMS":
            lockfile.platforms.append(value)
        elif section == "BUNDLED WITH":
            lockfile.bundler_version = value
        elif section == "RUBY VERSION":
            lockfile.ruby_version = value
        else:
            logger.debug(f"Skipping lock file section {section}: {value}")

    finish_source()
    return lockfile


def load_lockfile(path: Path) -> Lockfile:
    """Read and parse a Gemfile.lock from disk."""
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise LockfileParseError(f"Unable to read {path}: {e}") from e
    lockfile = parse_lockfile(content)
    logger.debug(f"Parsed {len(lockfile.specs)} locked specs from {path}")
    return lockfile
