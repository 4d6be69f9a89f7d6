"""
DateValidator - field must parse as a date under one of the expected formats.
"""

from datetime import datetime

from file_exchange.core.models import DateRule, Record, RuleKind

from .base_validator import BaseValidator


class DateValidator(BaseValidator[DateRule]):
    """
    Validates that a field parses with ``datetime.strptime`` using any of
    the rule's formats (default ``%Y-%m-%d``).
    """

    def validate(self, value: str | None, record: Record) -> None:
        if value is None:
            return

        candidate = value.strip()
        for fmt in self.rule.formats:
            try:
                datetime.strptime(candidate, fmt)
                return
            except ValueError:
                continue

        raise self.fail(f"Field {self.field_name} value '{value}' is not a valid date", actual=value)

    @property
    def rule_kind(self) -> RuleKind:
        return RuleKind.DATE

    def describe_expected(self) -> str:
        return "Date in format " + " or ".join(self.rule.formats)
