"""
ExactValueValidator - field must equal a literal.
"""

from file_exchange.core.models import ExactValueRule, Record, RuleKind

from .base_validator import BaseValidator


class ExactValueValidator(BaseValidator[ExactValueRule]):
    """Validates that a field equals the configured literal value."""

    def validate(self, value: str | None, record: Record) -> None:
        if value is None:
            return

        if value != self.rule.expected:
            raise self.fail(
                f"Field {self.field_name} value '{value}' does not equal '{self.rule.expected}'",
                actual=value,
            )

    @property
    def rule_kind(self) -> RuleKind:
        return RuleKind.EXACT_VALUE

    def describe_expected(self) -> str:
        return self.rule.expected
