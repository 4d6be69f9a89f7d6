"""
Service boundaries.
"""

from .validation_service import ValidateRecordsRequest, ValidateRecordsResponse, ValidationService

__all__ = ["ValidateRecordsRequest", "ValidateRecordsResponse", "ValidationService"]
