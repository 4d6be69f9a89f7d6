"""
Archival of processed files and their audit metadata.
"""

from .audit_index import AuditIndex
from .connection import DatabaseConnectionPool
from .file_archiver import FileArchiver

__all__ = ["AuditIndex", "DatabaseConnectionPool", "FileArchiver"]
