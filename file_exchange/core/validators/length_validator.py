"""
LengthValidator - validates string length bounds.
"""

from file_exchange.core.models import LengthRule, Record, RuleKind

from .base_validator import BaseValidator


class LengthValidator(BaseValidator[LengthRule]):
    """Validates that ``len(value)`` lies within [min_length, max_length]."""

    def validate(self, value: str | None, record: Record) -> None:
        if value is None:
            return

        length = len(value)
        if self.rule.min_length is not None and length < self.rule.min_length:
            raise self.fail(
                f"Field {self.field_name} is too short ({length} < {self.rule.min_length})",
                actual=value,
            )
        if self.rule.max_length is not None and length > self.rule.max_length:
            raise self.fail(
                f"Field {self.field_name} is too long ({length} > {self.rule.max_length})",
                actual=value,
            )

    @property
    def rule_kind(self) -> RuleKind:
        return RuleKind.LENGTH

    def describe_expected(self) -> str:
        parts = []
        if self.rule.min_length is not None:
            parts.append(f"minimum length {self.rule.min_length}")
        if self.rule.max_length is not None:
            parts.append(f"maximum length {self.rule.max_length}")
        return ", ".join(parts).capitalize()
