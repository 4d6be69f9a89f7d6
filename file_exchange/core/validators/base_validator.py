"""
Base validator interface for all validation rules.

All validators inherit from BaseValidator and implement validate().
A validator is built from one typed rule and evaluates one field value.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from file_exchange.core.models import Record, RuleKind

RuleT = TypeVar("RuleT")


class ValidationError(Exception):
    """Raised when a validation rule fails."""

    def __init__(
        self,
        rule_kind: RuleKind,
        field_name: str,
        message: str,
        expected: str = "",
        actual: str | None = None,
    ):
        self.rule_kind = rule_kind
        self.field_name = field_name
        self.message = message
        self.expected = expected
        self.actual = actual
        super().__init__(f"[{rule_kind.value}] {field_name}: {message}")


class BaseValidator(ABC, Generic[RuleT]):
    """
    Abstract base class for all validators.

    Each validator implements one rule kind
    (required, regex, range, length, exact_value, date).
    """

    def __init__(self, rule: RuleT):
        """
        Initialize validator.

        Args:
            rule: Typed rule carrying the field name and parameters
        """
        self.rule = rule
        self.field_name: str = rule.field_name  # type: ignore[attr-defined]

    @abstractmethod
    def validate(self, value: str | None, record: Record) -> None:
        """
        Validate a value against this rule.

        Args:
            value: The field value (None when the field is absent)
            record: The entire record (for context-dependent validation)

        Raises:
            ValidationError: If validation fails
        """

    @property
    @abstractmethod
    def rule_kind(self) -> RuleKind:
        """Return the rule kind identifier."""

    @abstractmethod
    def describe_expected(self) -> str:
        """Short description of what the rule expects, used in discrepancies."""

    def fail(self, message: str, actual: str | None) -> ValidationError:
        """Build the ValidationError for this rule, honouring a configured error message."""
        custom = getattr(self.rule, "error_message", None)
        return ValidationError(
            rule_kind=self.rule_kind,
            field_name=self.field_name,
            message=custom or message,
            expected=self.describe_expected(),
            actual=actual,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(field={self.field_name}, rule={self.rule!r})"
