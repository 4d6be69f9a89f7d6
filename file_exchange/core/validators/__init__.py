"""
Validation rule implementations.

Provides validators for required fields, regex patterns, numeric ranges,
string lengths, exact values and dates.
"""

from .base_validator import BaseValidator, ValidationError
from .date_validator import DateValidator
from .exact_value_validator import ExactValueValidator
from .length_validator import LengthValidator
from .range_validator import RangeValidator
from .regex_validator import RegexValidator
from .required_field_validator import RequiredFieldValidator

__all__ = [
    "BaseValidator",
    "ValidationError",
    "RequiredFieldValidator",
    "RegexValidator",
    "RangeValidator",
    "LengthValidator",
    "ExactValueValidator",
    "DateValidator",
]
