"""Command-line interface for kvharness."""

from .cli import main

__all__ = ["main"]
