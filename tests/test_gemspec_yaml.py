"""Tests for loading Gem::Specification YAML."""

import pytest
from conftest import BUNDLER_GEMSPEC_YAML, RUBYGEMS, gemspec_yaml

from gem_license_source._bundler.gemspec_yaml import parse_gemspec_yaml
from gem_license_source._bundler.models import SELF_SOURCE, DependencyType
from gem_license_source.exceptions import GemspecLoadError


class TestParseGemspecYaml:
    def test_gem_specification_output(self):
        spec = parse_gemspec_yaml(BUNDLER_GEMSPEC_YAML, SELF_SOURCE)
        assert spec.name == "bundler"
        assert spec.version == "2.4.19"
        assert spec.platform == "ruby"
        assert spec.summary == "The best way to manage your application's dependencies"
        assert spec.homepage == "https://bundler.io"
        assert spec.licenses == ("MIT",)
        assert spec.dependencies == ()
        assert spec.source == SELF_SOURCE
        assert spec.install_location is None

    def test_dependencies(self):
        text = gemspec_yaml(
            "actionpack",
            "7.0.8",
            dependencies=(("rack", "~>", "2.0", "runtime"), ("minitest", ">=", "0", "development")),
        )
        spec = parse_gemspec_yaml(text, RUBYGEMS, install_location="/gems/actionpack-7.0.8")

        rack, minitest = spec.dependencies
        assert rack.name == "rack"
        assert rack.requirement == "~> 2.0"
        assert rack.type == DependencyType.RUNTIME
        assert minitest.type == DependencyType.DEVELOPMENT
        assert minitest.groups is None
        assert spec.install_location == "/gems/actionpack-7.0.8"

    def test_compound_requirement(self):
        text = """--- !ruby/object:Gem::Specification
name: actionpack
version: !ruby/object:Gem::Version
  version: 7.0.8
dependencies:
- !ruby/object:Gem::Dependency
  name: rack
  requirement: !ruby/object:Gem::Requirement
    requirements:
    - - "~>"
      - !ruby/object:Gem::Version
        version: '2.0'
    - - ">="
      - !ruby/object:Gem::Version
        version: 2.2.4
  type: :runtime
"""
        spec = parse_gemspec_yaml(text, RUBYGEMS)
        assert spec.dependencies[0].requirement == "~> 2.0, >= 2.2.4"

    def test_platform_object_and_single_license(self):
        text = """--- !ruby/object:Gem::Specification
name: nokogiri
version: !ruby/object:Gem::Version
  version: 1.15.4
platform: !ruby/object:Gem::Platform
  cpu: x86_64
  os: linux
  version:
license: MIT
"""
        spec = parse_gemspec_yaml(text, RUBYGEMS)
        assert spec.platform == "x86_64-linux"
        assert spec.full_name == "nokogiri-1.15.4-x86_64-linux"
        assert spec.licenses == ("MIT",)
        assert spec.summary is None

    def test_invalid_yaml(self):
        with pytest.raises(GemspecLoadError):
            parse_gemspec_yaml("name: [unclosed", RUBYGEMS)

    def test_not_a_specification(self):
        with pytest.raises(GemspecLoadError, match="no name"):
            parse_gemspec_yaml("- just\n- a list\n", RUBYGEMS)

    def test_malformed_requirement(self):
        text = gemspec_yaml("shop", "0.1.0", (("rack", "~>", "latest", "runtime"),))
        with pytest.raises(GemspecLoadError, match="Invalid requirement for rack"):
            parse_gemspec_yaml(text, RUBYGEMS)

    def test_malformed_version(self):
        with pytest.raises(GemspecLoadError, match="Invalid version for shop"):
            parse_gemspec_yaml(gemspec_yaml("shop", "one"), RUBYGEMS)
