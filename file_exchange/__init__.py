"""
Message-driven validation pipeline for vendor-supplied data files.
"""

__version__ = "1.0.0"
