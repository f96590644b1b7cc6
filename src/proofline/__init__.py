"""Incremental proofreading engine for AI-assisted writing."""

__version__ = "0.1.0"

__all__ = ["__version__"]
