"""Specter: class-action enrichment and complaint drafting service."""

__version__ = "0.1.0"
