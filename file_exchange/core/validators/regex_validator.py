"""
RegexValidator - validates field values against a regular expression pattern.
"""

import re
from re import Pattern

from file_exchange.core.models import Record, RegexRule, RuleKind

from .base_validator import BaseValidator


class RegexValidator(BaseValidator[RegexRule]):
    """
    Validates that a field value matches a regular expression pattern.

    The pattern is compiled once and may match anywhere in the value;
    anchor it with ``^...$`` to require a full match.
    """

    def __init__(self, rule: RegexRule):
        super().__init__(rule)
        flags = re.IGNORECASE if rule.ignore_case else 0
        self.pattern: Pattern = re.compile(rule.pattern, flags)

    def validate(self, value: str | None, record: Record) -> None:
        # Absence is the required rule's concern
        if value is None:
            return

        if not self.pattern.search(value):
            raise self.fail(
                f"Field {self.field_name} value '{value}' does not match pattern '{self.pattern.pattern}'",
                actual=value,
            )

    @property
    def rule_kind(self) -> RuleKind:
        return RuleKind.REGEX

    def describe_expected(self) -> str:
        return f"Pattern: {self.pattern.pattern}"
