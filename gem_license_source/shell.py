"""Helpers for running the external Ruby tooling."""

import os
import subprocess
from pathlib import Path
from typing import Mapping, Optional

from .exceptions import CommandExecutionError
from .logging_config import logger
from .tool_checks import check_tool_available

DEFAULT_TIMEOUT = 60

# Fragments bundler injects into RUBYOPT when a process runs under `bundle exec`
_BUNDLER_RUBYOPTS = ("-rbundler/setup", "-rbundler/setup.rb")


def tool_available(command: str) -> bool:
    """Return whether `command` can be found on PATH."""
    available, _ = check_tool_available(command)
    return available


def execute(
    *cmd: str,
    cwd: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    timeout: int = DEFAULT_TIMEOUT,
) -> str:
    """
    Run a command and return its stripped stdout.

    Args:
        cmd: Command and arguments
        cwd: Working directory for the command
        env: Full environment for the command, defaults to the current one
        timeout: Seconds to wait before giving up

    Returns:
        Command stdout with surrounding whitespace removed

    Raises:
        CommandExecutionError: If the command cannot be run, times out or exits non-zero
    """
    logger.debug(f"Running: {' '.join(cmd)}")
    try:
        result = subprocess.run(
            list(cmd),
            cwd=str(cwd) if cwd else None,
            env=dict(env) if env is not None else None,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise CommandExecutionError(f"{cmd[0]} timed out after {timeout} seconds") from e
    except OSError as e:
        raise CommandExecutionError(f"Failed to run {cmd[0]}: {e}") from e

    if result.returncode != 0:
        stderr = result.stderr.strip() if result.stderr else ""
        raise CommandExecutionError(f"{' '.join(cmd)} exited with code {result.returncode}: {stderr}")

    return result.stdout.strip()


def original_env(environ: Optional[Mapping[str, str]] = None) -> dict[str, str]:
    """
    Return a copy of the environment without any bundler configuration.

    Equivalent to running a command outside of `bundle exec`, so tools
    like `gem` report on the system installation.
    """
    source = os.environ if environ is None else environ
    env = {k: v for k, v in source.items() if not k.startswith(("BUNDLE_", "BUNDLER_"))}

    rubyopt = env.get("RUBYOPT")
    if rubyopt:
        parts = [p for p in rubyopt.split() if p not in _BUNDLER_RUBYOPTS]
        if parts:
            env["RUBYOPT"] = " ".join(parts)
        else:
            del env["RUBYOPT"]

    return env
