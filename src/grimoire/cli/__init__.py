"""
Grimoire CLI

Command-line interface for running and talking to the Grimoire service.
"""

from .main import cli, main

__all__ = ["cli", "main"]
