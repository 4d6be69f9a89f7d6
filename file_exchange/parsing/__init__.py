"""
Multi-format vendor file parsing.
"""

from .file_parser import FileParser

__all__ = ["FileParser"]
