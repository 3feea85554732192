"""Bundled renderer implementations."""

from .terminal import TerminalRenderer

__all__ = ["TerminalRenderer"]
