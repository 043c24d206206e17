"""Stable proxy links for Notion-hosted files."""

__version__ = "1.0.0"
