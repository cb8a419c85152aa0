"""
Custom exception hierarchy for tikzsvg.

All tikzsvg exceptions inherit from TikzSvgError so callers can catch
the entire family with a single except clause.
"""

from __future__ import annotations


class TikzSvgError(Exception):
    """Base exception for all tikzsvg errors."""


class ConfigError(TikzSvgError):
    """Raised when the settings file cannot be parsed."""


class CacheError(TikzSvgError):
    """Raised when the SVG cache directory cannot be created."""


class CompilationError(TikzSvgError):
    """Raised when the LaTeX stage fails to produce a DVI."""

    def __init__(self, message: str, log_content: str = "") -> None:
        super().__init__(message)
        self.log_content = log_content


class ConverterError(TikzSvgError):
    """Raised when DVI-to-SVG conversion fails."""

    def __init__(self, message: str, log_content: str = "") -> None:
        super().__init__(message)
        self.log_content = log_content
