"""
Rule configuration management.

Turns declarative rule definitions (YAML, dictionaries or a fluent builder)
into typed, validated rules. Invalid definitions fail here, at load time.
"""

from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from file_exchange.core.errors import RuleConfigError
from file_exchange.core.models import (
    DateRule,
    ExactValueRule,
    LengthRule,
    RangeRule,
    RegexRule,
    RequiredRule,
    ValidationRule,
)

_RULE_ADAPTER: TypeAdapter = TypeAdapter(ValidationRule)

# Rule type spellings found in existing vendor configurations
RULE_TYPE_ALIASES = {
    "required": "required",
    "required_field": "required",
    "regex": "regex",
    "pattern": "regex",
    "range": "range",
    "length": "length",
    "exact_value": "exact_value",
    "exactvalue": "exact_value",
    "exact": "exact_value",
    "date": "date",
}


def parse_rule(field_name: str, rule_def: dict[str, Any]) -> ValidationRule:
    """
    Parse a single rule definition into a typed rule.

    Args:
        field_name: The field this rule applies to
        rule_def: Mapping with ``type`` and optional ``params``/``parameters``,
            ``enabled`` and ``error_message``

    Returns:
        Typed rule variant

    Raises:
        RuleConfigError: If the definition is invalid
    """
    if not isinstance(rule_def, dict):
        raise RuleConfigError(f"Rule for field '{field_name}' must be a mapping, got {type(rule_def).__name__}")

    if "type" not in rule_def:
        raise RuleConfigError(f"Rule for field '{field_name}' is missing 'type'")

    raw_type = str(rule_def["type"]).strip().lower()
    kind = RULE_TYPE_ALIASES.get(raw_type)
    if kind is None:
        raise RuleConfigError(f"Unknown rule type '{rule_def['type']}' for field '{field_name}'")

    params = rule_def.get("params", rule_def.get("parameters")) or {}
    if not isinstance(params, dict):
        raise RuleConfigError(f"Parameters of {kind} rule for field '{field_name}' must be a mapping")

    data: dict[str, Any] = {**params, "kind": kind, "field_name": field_name}
    for key in ("enabled", "error_message"):
        if key in rule_def:
            data[key] = rule_def[key]

    try:
        return _RULE_ADAPTER.validate_python(data)
    except PydanticValidationError as e:
        raise RuleConfigError(f"Invalid {kind} rule for field '{field_name}': {e}") from e


def parse_rules(field_rules: dict[str, Any] | None) -> tuple[ValidationRule, ...]:
    """
    Parse the field-grouped rule layout, preserving declaration order.

    Expected layout::

        Id:
          - type: required
        Amount:
          - type: range
            params:
              min: 0
              max: 1000

    Raises:
        RuleConfigError: If any rule is invalid
    """
    if not field_rules:
        return ()

    if not isinstance(field_rules, dict):
        raise RuleConfigError("'rules' must map field names to lists of rules")

    rules: list[ValidationRule] = []
    for field_name, field_rule_list in field_rules.items():
        if not isinstance(field_rule_list, list):
            raise RuleConfigError(f"Rules for field '{field_name}' must be a list")

        for rule_def in field_rule_list:
            rules.append(parse_rule(str(field_name), rule_def))

    return tuple(rules)


class RuleConfigLoader:
    """
    Loads validation rules from a standalone YAML file.

    Expected YAML format:
    ```yaml
    rules:
      Id:
        - type: required
        - type: regex
          params:
            pattern: "^[0-9]+$"
      Amount:
        - type: range
          params:
            min: 0
            max: 1000
    ```
    """

    def __init__(self, config_path: str | Path):
        """
        Initialize the rule config loader.

        Args:
            config_path: Path to the YAML configuration file
        """
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise FileNotFoundError(f"Rule configuration file not found: {config_path}")

    def load_rules(self) -> tuple[ValidationRule, ...]:
        """
        Load and parse validation rules from the YAML file.

        Raises:
            RuleConfigError: If YAML is invalid or a rule is malformed
        """
        try:
            with open(self.config_path, encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise RuleConfigError(f"Invalid YAML in {self.config_path}: {e}") from e

        if not config or "rules" not in config:
            raise RuleConfigError("Configuration file must contain 'rules' section")

        return parse_rules(config["rules"])


class RuleConfigBuilder:
    """
    Programmatically build rule configurations (for testing or dynamic rules).
    """

    def __init__(self):
        """Initialize empty rule configuration."""
        self.rules: list[ValidationRule] = []

    def add_required(self, field_name: str, required: bool = True) -> "RuleConfigBuilder":
        """Add a required field rule."""
        self.rules.append(RequiredRule(field_name=field_name, required=required))
        return self

    def add_regex(self, field_name: str, pattern: str, ignore_case: bool = False) -> "RuleConfigBuilder":
        """Add a regex validation rule."""
        self.rules.append(RegexRule(field_name=field_name, pattern=pattern, ignore_case=ignore_case))
        return self

    def add_range(
        self,
        field_name: str,
        min_value: float | Decimal | str | None = None,
        max_value: float | Decimal | str | None = None,
    ) -> "RuleConfigBuilder":
        """Add a range validation rule."""
        self.rules.append(RangeRule(field_name=field_name, min_value=min_value, max_value=max_value))
        return self

    def add_length(
        self,
        field_name: str,
        min_length: int | None = None,
        max_length: int | None = None,
    ) -> "RuleConfigBuilder":
        """Add a string length rule."""
        self.rules.append(LengthRule(field_name=field_name, min_length=min_length, max_length=max_length))
        return self

    def add_exact_value(self, field_name: str, expected: str) -> "RuleConfigBuilder":
        """Add an exact value rule."""
        self.rules.append(ExactValueRule(field_name=field_name, expected=expected))
        return self

    def add_date(self, field_name: str, *formats: str) -> "RuleConfigBuilder":
        """Add a date rule; defaults to ISO dates when no format is given."""
        if formats:
            self.rules.append(DateRule(field_name=field_name, formats=formats))
        else:
            self.rules.append(DateRule(field_name=field_name))
        return self

    def build(self) -> tuple[ValidationRule, ...]:
        """Build and return the rule configuration."""
        return tuple(self.rules)
