"""
RangeValidator - validates that values parse as decimals within a range.
"""

from decimal import Decimal, InvalidOperation

from file_exchange.core.models import RangeRule, Record, RuleKind

from .base_validator import BaseValidator


class RangeValidator(BaseValidator[RangeRule]):
    """
    Validates that a field parses as a decimal and lies within [min, max].

    Either bound may be omitted. Bounds are inclusive.
    """

    def __init__(self, rule: RangeRule):
        super().__init__(rule)
        self.min_value = rule.min_value
        self.max_value = rule.max_value

    def validate(self, value: str | None, record: Record) -> None:
        if value is None:
            return

        number = self._parse(value)
        if number is None:
            raise self.fail(f"Field {self.field_name} value '{value}' is not a valid number", actual=value)

        if self.min_value is not None and number < self.min_value:
            raise self.fail(
                f"Field {self.field_name} value {value} is less than minimum {self.min_value}",
                actual=value,
            )

        if self.max_value is not None and number > self.max_value:
            raise self.fail(
                f"Field {self.field_name} value {value} exceeds maximum {self.max_value}",
                actual=value,
            )

    @staticmethod
    def _parse(value: str) -> Decimal | None:
        try:
            number = Decimal(value.strip())
        except InvalidOperation:
            return None
        # NaN and Infinity parse but are not numbers for our purposes
        if not number.is_finite():
            return None
        return number

    @property
    def rule_kind(self) -> RuleKind:
        return RuleKind.RANGE

    def describe_expected(self) -> str:
        if self.min_value is not None and self.max_value is not None:
            return f"Between {self.min_value} and {self.max_value}"
        if self.min_value is not None:
            return f"At least {self.min_value}"
        return f"At most {self.max_value}"
