"""Tests for the gem-license-source command."""

import json
import logging
from unittest.mock import patch

import pytest
from click.testing import CliRunner
from conftest import copy_project, fake_execute, install_gems

from gem_license_source import __version__
from gem_license_source.cli.main import cli

EXECUTE = "gem_license_source._bundler.specifications.execute"
TOOL_AVAILABLE = "gem_license_source._bundler.specifications.tool_available"


@pytest.fixture(autouse=True)
def restore_log_level():
    log = logging.getLogger("gem_license_source")
    level = log.level
    handler_levels = [h.level for h in log.handlers]
    yield
    log.setLevel(level)
    for handler, handler_level in zip(log.handlers, handler_levels):
        handler.setLevel(handler_level)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def app(tmp_path, monkeypatch):
    """The test-data Rails app with its gems installed and ruby on PATH."""
    project = copy_project("app", tmp_path)
    install_gems(tmp_path / "gems")
    monkeypatch.setenv("GEM_HOME", str(tmp_path / "gems"))
    monkeypatch.setattr(TOOL_AVAILABLE, lambda command: command == "ruby")
    with patch(EXECUTE, side_effect=fake_execute):
        yield project


class TestOptions:
    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "PROJECT_DIR" in result.output
        assert "--without" in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_invalid_format(self, runner, tmp_path):
        result = runner.invoke(cli, [str(tmp_path), "--format", "xml"])
        assert result.exit_code == 2
        assert "Invalid value" in result.output


class TestListing:
    def test_json_output(self, runner, app):
        result = runner.invoke(cli, [str(app), "--format", "json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert [d["name"] for d in data] == ["actionpack", "pg", "rack", "rails"]
        rails = data[-1]
        assert rails["version"] == "7.0.8"
        assert rails["type"] == "rubygem"
        assert rails["homepage"] == "https://rubyonrails.org"
        assert rails["purl"] == "pkg:gem/rails@7.0.8"
        assert rails["licenses"] == ["MIT"]

    def test_without_option(self, runner, app):
        result = runner.invoke(cli, [str(app), "--format", "json", "--without", "test", "--without", "production"])

        assert result.exit_code == 0, result.output
        assert [d["name"] for d in json.loads(result.output)] == [
            "actionpack",
            "coderay",
            "method_source",
            "pry",
            "rack",
            "rails",
            "rspec-rails",
        ]

    def test_config_file(self, runner, app):
        (app / ".licensed.yml").write_text("rubygems:\n  without: [development, test, production]\n")
        result = runner.invoke(cli, [str(app), "--format", "json"])

        assert result.exit_code == 0, result.output
        assert [d["name"] for d in json.loads(result.output)] == ["actionpack", "rack", "rails"]

    def test_table_output(self, runner, app):
        result = runner.invoke(cli, [str(app)])

        assert result.exit_code == 0, result.output
        assert "rails" in result.output
        assert "actionpack" in result.output
        assert "4 dependencies" in result.output


class TestExitCodes:
    def test_not_a_bundler_project(self, runner, tmp_path):
        result = runner.invoke(cli, [str(tmp_path)])
        assert result.exit_code == 2
        assert "No Gemfile with a lock file" in result.output
        assert "(sources checked: bundler)" in " ".join(result.output.split())

    def test_missing_specification(self, runner, tmp_path):
        (tmp_path / "Gemfile").write_text('gem "rack"\n')
        (tmp_path / "Gemfile.lock").write_text("GEM\n  remote: https://rubygems.org/\n  specs:\n\nDEPENDENCIES\n  rack\n")

        result = runner.invoke(cli, [str(tmp_path)])

        assert result.exit_code == 1
        assert "Unable to find a specification for rack" in result.output

    def test_invalid_lockfile(self, runner, tmp_path):
        (tmp_path / "Gemfile").write_text('gem "rack"\n')
        (tmp_path / "Gemfile.lock").write_text("GEM\n  specs:\n    rack\n")

        result = runner.invoke(cli, [str(tmp_path)])

        assert result.exit_code == 1
        assert "Missing version for rack" in result.output

    def test_invalid_config(self, runner, tmp_path):
        (tmp_path / ".licensed.yml").write_text("rubygems: [development]\n")
        result = runner.invoke(cli, [str(tmp_path)])
        assert result.exit_code == 1
        assert "'rubygems' must be a mapping" in result.output

    def test_malformed_requirement(self, runner, tmp_path):
        (tmp_path / "Gemfile").write_text('gem "rack"\n')
        (tmp_path / "Gemfile.lock").write_text(
            "GEM\n  remote: https://rubygems.org/\n  specs:\n    rack (2.2.8)\n\nDEPENDENCIES\n  rack (~> latest)\n"
        )

        result = runner.invoke(cli, [str(tmp_path)])

        assert result.exit_code == 1
        assert "Malformed version number string latest" in result.output
