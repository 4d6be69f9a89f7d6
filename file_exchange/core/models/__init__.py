"""
Core data models for the vendor file validation pipeline.

All models use Pydantic for runtime validation and type safety.
"""

from .audit_record import AuditRecord
from .discrepancy import Discrepancy
from .discrepancy_notification import DiscrepancyNotification
from .file_arrival_event import FileArrivalEvent, new_correlation_id
from .issue_report import IssueReport
from .message import MessageModel
from .record import Record
from .validation_result import ValidationResult
from .validation_rule import (
    DateRule,
    ExactValueRule,
    LengthRule,
    RangeRule,
    RegexRule,
    RequiredRule,
    RuleKind,
    ValidationRule,
)
from .vendor_profile import QueueRouting, VendorProfile

__all__ = [
    "AuditRecord",
    "DateRule",
    "Discrepancy",
    "DiscrepancyNotification",
    "ExactValueRule",
    "FileArrivalEvent",
    "IssueReport",
    "LengthRule",
    "MessageModel",
    "QueueRouting",
    "RangeRule",
    "Record",
    "RegexRule",
    "RequiredRule",
    "RuleKind",
    "ValidationResult",
    "ValidationRule",
    "VendorProfile",
    "new_correlation_id",
]
