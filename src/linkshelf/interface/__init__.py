"""
Interface module - External interfaces to the LinkShelf store.

This module contains:
- cli.py: Command-line interface
"""

from linkshelf.interface.cli import app as cli_app

__all__ = [
    "cli_app",
]
