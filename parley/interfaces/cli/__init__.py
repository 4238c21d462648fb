"""Command-line interface for Parley."""

from parley.interfaces.cli.app import cli, main

__all__ = ["cli", "main"]
