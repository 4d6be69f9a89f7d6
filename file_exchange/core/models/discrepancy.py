"""
Discrepancy model: a single rule violation tied to one record and one field.
"""

from .message import MessageModel
from .validation_rule import RuleKind


class Discrepancy(MessageModel):
    """
    Produced only when a rule fails; never for satisfied rules.

    Attributes:
        record_id: Record that failed (``record_N``)
        field_name: Field the rule applies to
        rule_kind: Which rule variant failed
        expected: Description of what the rule expects
        actual: Offending value (None when the field is missing)
        description: Human readable explanation
    """

    record_id: str
    field_name: str
    rule_kind: RuleKind
    expected: str
    actual: str | None = None
    description: str

    model_config = {
        "json_schema_extra": {
            "example": {
                "recordId": "record_1",
                "fieldName": "Amount",
                "ruleKind": "range",
                "expected": "between 0 and 50",
                "actual": "200",
                "description": "Field Amount value 200 exceeds maximum 50",
            }
        }
    }
