"""
Grimoire: converse with the protagonist or author of a book, by text or voice.
"""

__version__ = "0.1.0"
