"""Command-line interface for the passwordless auth service."""

from passwordless.cli.main import app

__all__ = ["app"]
