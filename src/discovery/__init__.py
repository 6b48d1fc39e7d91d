"""Discover every repository of a set of GitHub organizations and queue mentions."""

from .runner import main, run

__all__ = ["main", "run"]
