"""
Unit tests for the rule engine.

Covers rule application order, the discrepancy shape, vendor lookup and
the non-required missing-field behaviour.
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from file_exchange.config import VendorProfileStore
from file_exchange.core.errors import VendorNotFound
from file_exchange.core.models import RangeRule, Record, RequiredRule, RuleKind
from file_exchange.core.rules import RuleConfigBuilder, RuleEngine


def records_from(rows: list[dict]) -> list[Record]:
    return [Record(record_id=Record.make_id(i), fields=row) for i, row in enumerate(rows)]


class TestRuleEngineEvaluate:
    """Tests for RuleEngine.evaluate"""

    def test_all_records_valid(self):
        """Id present and Amount within 0..1000 produces no discrepancies"""
        engine = RuleEngine()
        rules = RuleConfigBuilder().add_required("Id").add_range("Amount", 0, 1000).build()
        records = records_from([{"Id": "1", "Amount": "100"}, {"Id": "2", "Amount": "200"}])

        result = engine.evaluate(records, rules, correlation_id="corr-1")

        assert result.is_valid
        assert result.discrepancies == ()
        assert result.record_count == 2
        assert result.correlation_id == "corr-1"

    def test_out_of_range_values_produce_one_discrepancy_each(self):
        engine = RuleEngine()
        rules = RuleConfigBuilder().add_required("Id").add_range("Amount", 0, 50).build()
        records = records_from([{"Id": "1", "Amount": "100"}, {"Id": "2", "Amount": "200"}])

        result = engine.evaluate(records, rules)

        assert not result.is_valid
        assert [d.record_id for d in result.discrepancies] == ["record_0", "record_1"]
        assert all(d.rule_kind is RuleKind.RANGE for d in result.discrepancies)
        assert [d.actual for d in result.discrepancies] == ["100", "200"]
        assert result.counts_by_kind() == {"range": 2}

    def test_missing_required_field(self):
        engine = RuleEngine()
        rules = RuleConfigBuilder().add_required("Id").build()
        records = records_from([{"Amount": "5"}])

        result = engine.evaluate(records, rules)

        assert len(result.discrepancies) == 1
        discrepancy = result.discrepancies[0]
        assert discrepancy.field_name == "Id"
        assert discrepancy.rule_kind is RuleKind.REQUIRED
        assert discrepancy.actual is None

    def test_missing_optional_field_is_skipped_by_other_rules(self):
        engine = RuleEngine()
        rules = (
            RuleConfigBuilder()
            .add_regex("Code", r"^\d+$")
            .add_range("Amount", 0, 10)
            .add_length("Name", min_length=1)
            .add_exact_value("Currency", "USD")
            .add_date("Date")
            .build()
        )

        result = engine.evaluate(records_from([{}]), rules)

        assert result.is_valid

    def test_empty_record_list_is_valid(self):
        rules = RuleConfigBuilder().add_required("Id").build()
        result = RuleEngine().evaluate([], rules)

        assert result.is_valid
        assert result.record_count == 0

    def test_ordering_is_rule_then_record(self):
        engine = RuleEngine()
        rules = RuleConfigBuilder().add_required("Id").add_range("Amount", 0, 10).build()
        records = records_from([{"Amount": "99"}, {"Amount": "77"}])

        result = engine.evaluate(records, rules)

        assert [(d.rule_kind, d.record_id) for d in result.discrepancies] == [
            (RuleKind.REQUIRED, "record_0"),
            (RuleKind.REQUIRED, "record_1"),
            (RuleKind.RANGE, "record_0"),
            (RuleKind.RANGE, "record_1"),
        ]

    def test_disabled_rules_are_ignored(self):
        rules = (RequiredRule(field_name="Id", enabled=False),)
        result = RuleEngine().evaluate(records_from([{}]), rules)

        assert result.is_valid

    def test_accepts_prebuilt_validators(self):
        engine = RuleEngine()
        validators = engine.build_validators(RuleConfigBuilder().add_range("Amount", max_value=1).build())

        result = engine.evaluate(records_from([{"Amount": "2"}]), validators)

        assert len(result.discrepancies) == 1

    @given(st.lists(st.integers(min_value=-500, max_value=500), max_size=30))
    def test_discrepancy_count_matches_out_of_range_values(self, amounts):
        """Property: exactly one discrepancy per out-of-range record"""
        rules = (RangeRule(field_name="Amount", min_value=0, max_value=100),)
        records = records_from([{"Amount": str(a)} for a in amounts])

        result = RuleEngine().evaluate(records, rules)

        assert len(result.discrepancies) == sum(1 for a in amounts if not 0 <= a <= 100)
        assert result.is_valid == (len(result.discrepancies) == 0)


class TestRuleEngineValidate:
    """Tests for RuleEngine.validate with a vendor profile lookup"""

    def test_uses_vendor_rules(self, profile_store):
        engine = RuleEngine(profile_store)
        records = records_from([{"Id": "1", "Amount": "100"}, {"Id": "2", "Amount": "200"}])

        assert engine.validate("acme", records).is_valid
        assert len(engine.validate("strict", records).discrepancies) == 2

    def test_unknown_vendor_raises(self, profile_store):
        engine = RuleEngine(profile_store)

        with pytest.raises(VendorNotFound) as exc_info:
            engine.validate("unknown", records_from([{"Id": "1"}]))

        assert exc_info.value.vendor_id == "unknown"

    def test_requires_profile_lookup(self):
        with pytest.raises(RuntimeError):
            RuleEngine().validate("acme", [])

    def test_validators_are_cached_per_vendor(self, profile_store):
        engine = RuleEngine(profile_store)
        engine.validate("acme", [])
        first = engine._validator_cache["acme"]

        engine.validate("acme", [])
        assert engine._validator_cache["acme"] is first

        engine.clear_cache()
        assert engine._validator_cache == {}

    def test_vendor_without_rules_is_always_valid(self):
        store = VendorProfileStore.from_dict({"vendors": {"open": {"file_format": "csv"}}})
        result = RuleEngine(store).validate("open", records_from([{"anything": ""}]))

        assert result.is_valid


class TestRuleSummary:
    """Tests for get_rule_summary"""

    def test_summary_counts(self):
        rules = (
            RequiredRule(field_name="Id"),
            RequiredRule(field_name="Name", enabled=False),
            RangeRule(field_name="Amount", max_value=10),
        )

        summary = RuleEngine().get_rule_summary(rules)

        assert summary == {
            "total_rules": 3,
            "enabled_rules": 2,
            "rules_by_kind": {"required": 2, "range": 1},
            "fields": ["Amount", "Id", "Name"],
        }
