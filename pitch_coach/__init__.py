"""Pitch Coach: pitch estimation, ear training and vocal range classification."""

__version__ = "0.1.0"
