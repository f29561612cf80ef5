"""Command line interface for the Lumo spreadsheet importer."""

from .__main__ import main

__all__ = ["main"]
