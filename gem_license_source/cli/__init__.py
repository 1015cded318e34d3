"""CLI module for gem-license-source.

This module provides the command-line interface for listing the gems
of a Ruby project.
"""

from .main import cli, main

__all__ = [
    "cli",
    "main",
]
