"""
CLI module for Skald.

Provides the command-line interface using Click.
"""

from skald.cli.main import cli, main

__all__ = ["main", "cli"]
