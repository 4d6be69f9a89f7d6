"""
Rule engine for evaluating vendor rule sets against parsed records.

The rule engine builds one validator per typed rule, applies the validators
to records, and produces a ValidationResult. Rule violations are data, not
errors: every failing (record, rule) pair becomes exactly one Discrepancy.
"""

from collections.abc import Sequence
from typing import Any, Protocol

from file_exchange.core.errors import RuleConfigError
from file_exchange.core.models import (
    Discrepancy,
    Record,
    RuleKind,
    ValidationResult,
    ValidationRule,
    VendorProfile,
)
from file_exchange.core.validators import (
    BaseValidator,
    DateValidator,
    ExactValueValidator,
    LengthValidator,
    RangeValidator,
    RegexValidator,
    RequiredFieldValidator,
    ValidationError,
)


class ProfileLookup(Protocol):
    """Anything that resolves a vendor id to its profile or raises VendorNotFound."""

    def get(self, vendor_id: str) -> VendorProfile: ...


class RuleEngine:
    """
    Evaluates typed validation rules against records.

    Discrepancies are ordered by rule declaration, then by record order.
    A missing field that is not required is skipped by every rule kind
    except Required.
    """

    VALIDATOR_REGISTRY: dict[RuleKind, type[BaseValidator]] = {
        RuleKind.REQUIRED: RequiredFieldValidator,
        RuleKind.REGEX: RegexValidator,
        RuleKind.RANGE: RangeValidator,
        RuleKind.LENGTH: LengthValidator,
        RuleKind.EXACT_VALUE: ExactValueValidator,
        RuleKind.DATE: DateValidator,
    }

    def __init__(self, profiles: ProfileLookup | None = None):
        """
        Initialize the rule engine.

        Args:
            profiles: Vendor profile lookup used by validate(); evaluate()
                works without one
        """
        self.profiles = profiles
        self._validator_cache: dict[str, list[BaseValidator]] = {}

    def build_validators(self, rules: Sequence[ValidationRule]) -> list[BaseValidator]:
        """
        Build validator instances for the enabled rules, in declaration order.

        Raises:
            RuleConfigError: If a rule kind has no registered validator
        """
        validators: list[BaseValidator] = []
        for rule in rules:
            # Skip disabled rules
            if not rule.enabled:
                continue

            validator_class = self.VALIDATOR_REGISTRY.get(rule.rule_kind)
            if validator_class is None:
                raise RuleConfigError(f"No validator registered for rule kind: {rule.rule_kind.value}")

            validators.append(validator_class(rule))
        return validators

    def evaluate(
        self,
        records: Sequence[Record],
        rules: Sequence[ValidationRule] | Sequence[BaseValidator],
        correlation_id: str | None = None,
    ) -> ValidationResult:
        """
        Validate records against a rule set.

        Args:
            records: Parsed records, in file order
            rules: Typed rules, or validators already built from them
            correlation_id: Correlation id copied onto the result

        Returns:
            ValidationResult with one Discrepancy per failing (record, rule) pair
        """
        if rules and isinstance(rules[0], BaseValidator):
            validators = list(rules)
        else:
            validators = self.build_validators(rules)  # type: ignore[arg-type]

        discrepancies: list[Discrepancy] = []

        for validator in validators:
            for record in records:
                value = record.get(validator.field_name)

                if value is None and validator.rule_kind is not RuleKind.REQUIRED:
                    continue

                try:
                    validator.validate(value, record)
                except ValidationError as e:
                    discrepancies.append(
                        Discrepancy(
                            record_id=record.record_id,
                            field_name=e.field_name,
                            rule_kind=e.rule_kind,
                            expected=e.expected,
                            actual=e.actual,
                            description=e.message,
                        )
                    )

        return ValidationResult(
            discrepancies=tuple(discrepancies),
            correlation_id=correlation_id,
            record_count=len(records),
        )

    def validate(
        self,
        vendor_id: str,
        records: Sequence[Record],
        correlation_id: str | None = None,
    ) -> ValidationResult:
        """
        Validate records against the rule set of a vendor.

        Raises:
            VendorNotFound: If the vendor id has no profile; nothing is evaluated
            RuntimeError: If the engine was built without a profile lookup
        """
        if self.profiles is None:
            raise RuntimeError("RuleEngine.validate requires a vendor profile lookup")

        profile = self.profiles.get(vendor_id)
        return self.evaluate(records, self._validators_for(profile), correlation_id)

    def _validators_for(self, profile: VendorProfile) -> list[BaseValidator]:
        # Profiles are immutable for a run, so validators are built once per vendor
        validators = self._validator_cache.get(profile.vendor_id)
        if validators is None:
            validators = self.build_validators(profile.rules)
            self._validator_cache[profile.vendor_id] = validators
        return validators

    def clear_cache(self) -> None:
        """Drop cached validators, e.g. after vendor profiles are reloaded."""
        self._validator_cache.clear()

    def get_rule_summary(self, rules: Sequence[ValidationRule]) -> dict[str, Any]:
        """
        Get summary of a rule set.

        Returns:
            Dictionary with rule counts and kinds
        """
        return {
            "total_rules": len(rules),
            "enabled_rules": sum(1 for rule in rules if rule.enabled),
            "rules_by_kind": self._count_by_kind(rules),
            "fields": sorted({rule.field_name for rule in rules}),
        }

    def _count_by_kind(self, rules: Sequence[ValidationRule]) -> dict[str, int]:
        """Count rules by kind."""
        counts: dict[str, int] = {}
        for rule in rules:
            kind = rule.rule_kind.value
            counts[kind] = counts.get(kind, 0) + 1
        return counts
