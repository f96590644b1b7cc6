"""Core domain types shared by the editor and analysis packages."""

from .ranges import TextSpan

__all__ = ["TextSpan"]
