"""
RequiredFieldValidator - ensures a field is present and not empty.
"""

from file_exchange.core.models import Record, RequiredRule, RuleKind

from .base_validator import BaseValidator


class RequiredFieldValidator(BaseValidator[RequiredRule]):
    """
    Validates that a required field is present and not empty.

    Fails (only when ``required`` is true) if:
    - Field is missing from the record
    - Field value is an empty string
    """

    def validate(self, value: str | None, record: Record) -> None:
        if not self.rule.required:
            return

        if not record.has_field(self.field_name) or value is None:
            raise self.fail(f"Required field {self.field_name} is missing", actual=None)

        if value == "":
            raise self.fail(f"Required field {self.field_name} is empty", actual=value)

    @property
    def rule_kind(self) -> RuleKind:
        return RuleKind.REQUIRED

    def describe_expected(self) -> str:
        return "Required field"
