"""Command-line interface."""

from knot.cli.main import app

__all__ = ["app"]
