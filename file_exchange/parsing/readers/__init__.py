"""
Format readers (delimited text, JSON, XML, line-based text).
"""

from .base_reader import BaseReader
from .csv_reader import CSVReader
from .json_reader import JSONReader
from .text_reader import TextReader
from .xml_reader import XMLReader

__all__ = ["BaseReader", "CSVReader", "JSONReader", "TextReader", "XMLReader"]
