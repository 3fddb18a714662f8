"""Command-line interface for Pitch Coach."""

from .main import main

__all__ = ["main"]
