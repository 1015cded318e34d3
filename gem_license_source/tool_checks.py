"""Tool availability checks for the Ruby tooling used to load gem specifications.

Neither tool is required to read a Gemfile.lock. Without them, the
bundler self-dependency is omitted and gems whose lock entries need
materializing from the spec store cannot be loaded.
"""

import shutil
from dataclasses import dataclass, field
from typing import Optional

from .logging_config import logger


@dataclass
class ToolInfo:
    """Information about an external tool."""

    name: str
    command: str
    description: str
    install_instructions: str
    homepage: str
    required_for: list[str] = field(default_factory=list)


EXTERNAL_TOOLS: dict[str, ToolInfo] = {
    "gem": ToolInfo(
        name="RubyGems",
        command="gem",
        description="Ruby package manager CLI",
        install_instructions=(
            "Install Ruby, which ships with RubyGems:\n"
            "  - macOS: brew install ruby\n"
            "  - Debian/Ubuntu: apt-get install ruby-full\n"
            "  - Any platform: https://www.ruby-lang.org/en/documentation/installation/"
        ),
        homepage="https://rubygems.org",
        required_for=["bundler self-dependency", "locating the installed spec store"],
    ),
    "ruby": ToolInfo(
        name="Ruby",
        command="ruby",
        description="Ruby interpreter",
        install_instructions=(
            "Install Ruby:\n"
            "  - macOS: brew install ruby\n"
            "  - Debian/Ubuntu: apt-get install ruby-full\n"
            "  - Any platform: https://www.ruby-lang.org/en/documentation/installation/"
        ),
        homepage="https://www.ruby-lang.org",
        required_for=["loading installed .gemspec files"],
    ),
}


@dataclass
class ToolStatus:
    """Status of an external tool."""

    name: str
    available: bool
    path: Optional[str] = None
    info: Optional[ToolInfo] = None


def check_tool_available(command: str) -> tuple[bool, Optional[str]]:
    """
    Check if a command-line tool is available on the system.

    Args:
        command: The command to check (e.g., "gem", "ruby")

    Returns:
        Tuple of (is_available, path_if_found)
    """
    path = shutil.which(command)
    return (path is not None, path)


def check_all_tools() -> dict[str, ToolStatus]:
    """
    Check availability of all external tools.

    Returns:
        Dictionary mapping tool commands to their status
    """
    results = {}
    for tool_id, info in EXTERNAL_TOOLS.items():
        available, path = check_tool_available(info.command)
        results[tool_id] = ToolStatus(name=info.name, available=available, path=path, info=info)
    return results


def log_tool_status(verbose: bool = False) -> None:
    """
    Log the status of all external tools.

    Args:
        verbose: If True, show installation instructions for missing tools
    """
    statuses = check_all_tools()
    available = [s for s in statuses.values() if s.available]
    missing = [s for s in statuses.values() if not s.available]

    if available:
        logger.info(f"Available Ruby tools: {', '.join(s.name for s in available)}")

    if missing:
        logger.warning(f"Missing Ruby tools: {', '.join(s.name for s in missing)}")
        if verbose:
            for status in missing:
                if status.info:
                    logger.info(f"{status.info.name} is needed for: {', '.join(status.info.required_for)}")
                    logger.info(f"  {status.info.install_instructions}")
