"""
HTTP interface for Grimoire.
"""

from .app import create_app

__all__ = ["create_app"]
