"""Carbonytics command line interface."""

from carbonytics.cli.main import app

__all__ = ["app"]
