"""Tests for the dependency source registry."""

from gem_license_source._bundler import BundlerSource
from gem_license_source.config import Configuration
from gem_license_source.registry import SourceRegistry, create_default_registry


class StaticSource:
    type = "static"
    name = "static"

    def __init__(self, config):
        self.config = config

    def enabled(self):
        return (self.config.root / "static.txt").exists()

    def dependencies(self):
        return []


class TestSourceRegistry:
    def test_default_registry(self):
        assert create_default_registry().registered_sources == ["bundler"]

    def test_enabled_sources(self, tmp_path):
        registry = SourceRegistry()
        registry.register(StaticSource)
        registry.register(BundlerSource)
        config = Configuration(root=tmp_path)

        assert registry.enabled_sources(config) == []

        (tmp_path / "Gemfile").write_text("")
        (tmp_path / "Gemfile.lock").write_text("")
        sources = registry.enabled_sources(config)
        assert [type(s) for s in sources] == [BundlerSource]
        assert sources[0].config is config

    def test_registration_order(self, tmp_path):
        registry = SourceRegistry()
        registry.register(BundlerSource)
        registry.register(StaticSource)
        (tmp_path / "static.txt").write_text("")
        (tmp_path / "Gemfile").write_text("")
        (tmp_path / "Gemfile.lock").write_text("")

        sources = registry.enabled_sources(Configuration(root=tmp_path))
        assert [s.name for s in sources] == ["bundler", "static"]
