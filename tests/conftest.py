"""Pytest configuration and shared fixtures for all tests."""

import os
import shutil
from pathlib import Path
from typing import Optional

import pytest

from gem_license_source._bundler.models import (
    ConcreteSpecification,
    DependencyType,
    GemSource,
    PackageSpecification,
    RootDeclaration,
    SourceKind,
    TransitiveDeclaration,
)
from gem_license_source._bundler.settings import BundlerSettings

RUBYGEMS = GemSource(SourceKind.REGISTRY, "https://rubygems.org/")
LOCAL = GemSource(SourceKind.PATH, "engines/billing")


class FakeDefinition:
    """In-memory ResolvedDefinition."""

    def __init__(
        self,
        dependencies: list[RootDeclaration],
        specs: list[PackageSpecification],
        groups: Optional[list[str]] = None,
    ) -> None:
        self.dependencies = dependencies
        self.groups = groups if groups is not None else ["default", "development", "test"]
        self.specs = specs
        self.resolve_calls = 0

    def resolve(self) -> list[PackageSpecification]:
        self.resolve_calls += 1
        return list(self.specs)


def make_spec(
    name: str,
    version: str = "1.0.0",
    deps: tuple = (),
    source: GemSource = RUBYGEMS,
    **kwargs,
) -> ConcreteSpecification:
    """Build a concrete specification; deps are names or declarations."""
    dependencies = tuple(d if isinstance(d, TransitiveDeclaration) else TransitiveDeclaration(d) for d in deps)
    return ConcreteSpecification(
        name=name,
        version=version,
        source=source,
        dependencies=dependencies,
        summary=kwargs.pop("summary", f"The {name} gem"),
        homepage=kwargs.pop("homepage", f"https://example.com/{name}"),
        install_location=kwargs.pop("install_location", f"/gems/{name}-{version}"),
        **kwargs,
    )


def root(name: str, *groups: str, **kwargs) -> RootDeclaration:
    """Build a Gemfile declaration in `groups` (default group when none given)."""
    return RootDeclaration(name=name, groups=frozenset(groups or ("default",)), **kwargs)


def dev(name: str) -> TransitiveDeclaration:
    """Build a development dependency declared by a gemspec."""
    return TransitiveDeclaration(name=name, type=DependencyType.DEVELOPMENT)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep tests away from the real bundler configuration and Ruby tools."""
    for key in list(os.environ):
        if key.startswith(("BUNDLE_", "BUNDLER_")) or key in ("GEM_HOME", "GEM_LICENSE_SOURCE_LOG_LEVEL"):
            monkeypatch.delenv(key, raising=False)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setattr("gem_license_source._bundler.specifications.tool_available", lambda command: False)


@pytest.fixture
def settings() -> BundlerSettings:
    return BundlerSettings()


BUNDLER_GEMSPEC_YAML = """--- !ruby/object:Gem::Specification
name: bundler
version: !ruby/object:Gem::Version
  version: 2.4.19
platform: ruby
authors:
- André Arko
autorequire:
bindir: exe
cert_chain: []
date: 2023-08-17 00:00:00.000000000 Z
dependencies: []
description: Bundler manages an application's dependencies through its entire life
email:
- team@bundler.io
executables:
- bundle
- bundler
extensions: []
extra_rdoc_files: []
files: []
homepage: https://bundler.io
licenses:
- MIT
metadata:
  source_code_uri: https://github.com/rubygems/rubygems/tree/master/bundler
post_install_message:
rdoc_options: []
require_paths:
- lib
required_ruby_version: !ruby/object:Gem::Requirement
  requirements:
  - - ">="
    - !ruby/object:Gem::Version
      version: 2.6.0
required_rubygems_version: !ruby/object:Gem::Requirement
  requirements:
  - - ">="
    - !ruby/object:Gem::Version
      version: 3.2.3
requirements: []
rubygems_version: 3.4.19
signing_key:
specification_version: 4
summary: The best way to manage your application's dependencies
test_files: []
"""


def gemspec_yaml(name: str, version: str, dependencies: tuple = (), summary: str = "", homepage: str = "") -> str:
    """Render a minimal `Gem::Specification#to_yaml` document.

    dependencies are (name, operator, version, type) tuples.
    """
    lines = [
        "--- !ruby/object:Gem::Specification",
        f"name: {name}",
        "version: !ruby/object:Gem::Version",
        f"  version: '{version}'",
        "platform: ruby",
        "dependencies:" if dependencies else "dependencies: []",
    ]
    for dep_name, operator, dep_version, dep_type in dependencies:
        lines.extend(
            [
                "- !ruby/object:Gem::Dependency",
                f"  name: {dep_name}",
                "  requirement: !ruby/object:Gem::Requirement",
                "    requirements:",
                f'    - - "{operator}"',
                "      - !ruby/object:Gem::Version",
                f"        version: '{dep_version}'",
                f"  type: :{dep_type}",
                "  prerelease: false",
            ]
        )
    lines.append(f"summary: {summary or name + ' summary'}")
    lines.append(f"homepage: {homepage or 'https://example.com/' + name}")
    lines.append("licenses:\n- MIT")
    return "\n".join(lines) + "\n"


TEST_DATA = Path(__file__).parent / "test-data"

# Installed gemspecs for the test-data projects, keyed by full name
INSTALLED = {
    "actionpack-7.0.8": gemspec_yaml("actionpack", "7.0.8", (("rack", "~>", "2.0", "runtime"),)),
    "coderay-1.1.3": gemspec_yaml("coderay", "1.1.3"),
    "concurrent-ruby-1.2.2": gemspec_yaml("concurrent-ruby", "1.2.2"),
    "i18n-1.14.1": gemspec_yaml("i18n", "1.14.1", (("concurrent-ruby", "~>", "1.0", "runtime"),)),
    "method_source-1.0.0": gemspec_yaml("method_source", "1.0.0"),
    "money-6.16.0": gemspec_yaml("money", "6.16.0", (("i18n", ">=", "0.6.4", "runtime"),)),
    "pg-1.5.4": gemspec_yaml("pg", "1.5.4", summary="Pg is the Ruby interface to the PostgreSQL RDBMS"),
    "pry-0.14.2": gemspec_yaml(
        "pry",
        "0.14.2",
        (("coderay", "~>", "1.1", "runtime"), ("method_source", "~>", "1.0", "runtime")),
    ),
    "rack-2.2.8": gemspec_yaml("rack", "2.2.8", (("minitest", "~>", "5.0", "development"),)),
    "rails-7.0.8": gemspec_yaml(
        "rails",
        "7.0.8",
        (("actionpack", "=", "7.0.8", "runtime"), ("bundler", ">=", "1.15.0", "runtime")),
        homepage="https://rubyonrails.org",
    ),
    "rspec-rails-6.0.3": gemspec_yaml("rspec-rails", "6.0.3", (("actionpack", ">=", "6.1", "runtime"),)),
}

# Gemspecs of the test-data projects themselves, keyed by gem name
PROJECT_GEMSPECS = {
    "shop": gemspec_yaml(
        "shop",
        "0.1.0",
        (("billing", ">=", "0", "runtime"), ("rake", "~>", "13.0", "development")),
    ),
}

GEM_DIR = "/opt/ruby/gems/3.2.0"


def fake_execute(*cmd, **kwargs):
    """Stand-in for shell.execute answering `gem` queries and gemspec loads."""
    if cmd[:2] == ("gem", "specification"):
        return BUNDLER_GEMSPEC_YAML
    if cmd == ("gem", "env", "gemdir"):
        return GEM_DIR
    if cmd[0] == "ruby":
        stem = Path(cmd[-1]).stem
        return PROJECT_GEMSPECS.get(stem) or INSTALLED[stem]
    raise AssertionError(f"unexpected command {cmd}")


def install_gems(gem_home: Path) -> None:
    """Create a spec store holding a .gemspec file for every INSTALLED gem."""
    specifications = gem_home / "specifications"
    specifications.mkdir(parents=True)
    for full_name in INSTALLED:
        (specifications / f"{full_name}.gemspec").write_text(f"# {full_name}")


def copy_project(name: str, destination: Path) -> Path:
    """Copy a test-data project so tests can add files to it."""
    target = destination / name
    shutil.copytree(TEST_DATA / name, target)
    return target
