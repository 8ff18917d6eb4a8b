"""
Books and cover identification.
"""

from .identification import (
    BookIdentifier,
    BySeparatorStrategy,
    DashSeparatorStrategy,
    IdentificationStrategy,
    JsonObjectStrategy,
    default_strategies,
    parse_identification,
)
from .types import Book, IdentificationResult

__all__ = [
    "Book",
    "IdentificationResult",
    "BookIdentifier",
    "IdentificationStrategy",
    "JsonObjectStrategy",
    "BySeparatorStrategy",
    "DashSeparatorStrategy",
    "default_strategies",
    "parse_identification",
]
