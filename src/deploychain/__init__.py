"""Provision interdependent components in dependency order."""

__version__ = "0.1.0"
