"""File-backed persistence helpers."""

from .json_manager import JSONRepository

__all__ = ["JSONRepository"]
