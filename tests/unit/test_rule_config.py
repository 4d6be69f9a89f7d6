"""
Unit tests for rule configuration loading and vendor profiles.
"""

from pathlib import Path

import pytest

from file_exchange.config import VendorProfileStore, build_profile
from file_exchange.core.errors import RuleConfigError, VendorNotFound
from file_exchange.core.models import ExactValueRule, RangeRule, RequiredRule, RuleKind
from file_exchange.core.rules import RuleConfigBuilder, RuleConfigLoader, parse_rule, parse_rules

EXAMPLE_CONFIG = Path(__file__).resolve().parents[2] / "config" / "vendors.example.yaml"


class TestParseRule:
    """Tests for parse_rule"""

    def test_parses_typed_rule(self):
        rule = parse_rule("Amount", {"type": "range", "params": {"min": 0, "max": 1000}})

        assert isinstance(rule, RangeRule)
        assert rule.field_name == "Amount"
        assert rule.rule_kind is RuleKind.RANGE

    @pytest.mark.parametrize("alias", ["exact", "ExactValue", "exact_value"])
    def test_type_aliases(self, alias):
        rule = parse_rule("Currency", {"type": alias, "parameters": {"expected": "USD"}})
        assert isinstance(rule, ExactValueRule)

    def test_carries_enabled_and_error_message(self):
        rule = parse_rule("Id", {"type": "required", "enabled": False, "error_message": "Id needed"})

        assert isinstance(rule, RequiredRule)
        assert rule.enabled is False
        assert rule.error_message == "Id needed"

    @pytest.mark.parametrize(
        "rule_def, message",
        [
            ({"params": {}}, "missing 'type'"),
            ({"type": "checksum"}, "Unknown rule type"),
            ({"type": "range", "params": {}}, "Invalid range rule"),
            ({"type": "range", "params": {"min": 5, "max": 1}}, "Invalid range rule"),
            ({"type": "regex", "params": {"pattern": "("}}, "Invalid regex rule"),
            ({"type": "range", "params": [0, 1]}, "must be a mapping"),
        ],
    )
    def test_invalid_definitions_fail_at_load_time(self, rule_def, message):
        with pytest.raises(RuleConfigError, match=message):
            parse_rule("Field", rule_def)

    def test_rule_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_rule("Field", "required")


class TestParseRules:
    """Tests for field-grouped rule parsing"""

    def test_preserves_declaration_order(self):
        rules = parse_rules(
            {
                "Id": [{"type": "required"}, {"type": "regex", "params": {"pattern": "^[0-9]+$"}}],
                "Amount": [{"type": "range", "params": {"max": 10}}],
            }
        )
        assert [(r.field_name, r.rule_kind.value) for r in rules] == [
            ("Id", "required"),
            ("Id", "regex"),
            ("Amount", "range"),
        ]

    def test_empty_is_no_rules(self):
        assert parse_rules(None) == ()
        assert parse_rules({}) == ()

    def test_field_rules_must_be_list(self):
        with pytest.raises(RuleConfigError, match="must be a list"):
            parse_rules({"Id": {"type": "required"}})


class TestRuleConfigLoader:
    """Tests for RuleConfigLoader"""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            RuleConfigLoader(tmp_path / "nope.yaml")

    def test_loads_rules_section(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("rules:\n  Id:\n    - type: required\n")

        rules = RuleConfigLoader(path).load_rules()

        assert rules == (RequiredRule(field_name="Id"),)

    def test_requires_rules_section(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("other: 1\n")

        with pytest.raises(RuleConfigError, match="'rules' section"):
            RuleConfigLoader(path).load_rules()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("rules: [unclosed\n")

        with pytest.raises(RuleConfigError, match="Invalid YAML"):
            RuleConfigLoader(path).load_rules()


class TestRuleConfigBuilder:
    """Tests for RuleConfigBuilder"""

    def test_fluent_build(self):
        rules = (
            RuleConfigBuilder()
            .add_required("Id")
            .add_regex("Id", r"^\d+$")
            .add_range("Amount", 0, 100)
            .add_length("Name", 1, 10)
            .add_exact_value("Currency", "USD")
            .add_date("Date", "%d/%m/%Y")
            .build()
        )

        assert [r.rule_kind.value for r in rules] == [
            "required",
            "regex",
            "range",
            "length",
            "exact_value",
            "date",
        ]
        assert rules[-1].formats == ("%d/%m/%Y",)


class TestVendorProfileStore:
    """Tests for VendorProfileStore"""

    def test_lookup(self, profile_store):
        profile = profile_store.get("acme")

        assert profile.name == "ACME Corp"
        assert profile.notification_recipients == ("ops@acme.example",)
        assert len(profile.rules) == 2
        assert "acme" in profile_store
        assert len(profile_store) == 3

    def test_unknown_vendor(self, profile_store):
        with pytest.raises(VendorNotFound, match="Vendor configuration not found for 'nobody'"):
            profile_store.get("nobody")

    def test_vendor_id_is_the_only_key(self, profile_store):
        with pytest.raises(VendorNotFound):
            profile_store.get("ACME Corp")

    def test_invalid_rule_rejects_whole_config(self, vendor_config):
        vendor_config["vendors"]["acme"]["rules"]["Amount"] = [{"type": "range"}]

        with pytest.raises(RuleConfigError):
            VendorProfileStore.from_dict(vendor_config)

    def test_unknown_profile_key_is_rejected(self):
        with pytest.raises(RuleConfigError, match="Invalid configuration for vendor"):
            build_profile("acme", {"file_format": "csv", "colour": "blue"})

    def test_multi_character_delimiter_fails_at_load_time(self):
        with pytest.raises(RuleConfigError, match="delimiter"):
            build_profile("acme", {"file_format": "csv", "delimiter": "||"})

    def test_requires_vendors_section(self):
        with pytest.raises(RuleConfigError):
            VendorProfileStore.from_dict({"profiles": {}})

    def test_duplicate_vendor_ids(self):
        profile = build_profile("acme", {})
        with pytest.raises(RuleConfigError, match="Duplicate vendor id"):
            VendorProfileStore([profile, profile])

    def test_min_poll_interval(self, vendor_config):
        vendor_config["vendors"]["acme"]["poll_interval_seconds"] = 45
        store = VendorProfileStore.from_dict(vendor_config)

        assert store.min_poll_interval() == 45
        assert VendorProfileStore().min_poll_interval() == 300

    def test_loads_example_configuration(self):
        store = VendorProfileStore.from_yaml(EXAMPLE_CONFIG)

        assert set(store.vendor_ids()) >= {"acme", "globex", "initech"}
        assert store.get("globex").encrypted
        assert store.get("initech").file_format == "text"

    def test_from_yaml_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            VendorProfileStore.from_yaml(tmp_path / "vendors.yaml")
