"""
Validation rule engine and configuration management.
"""

from .rule_config import RuleConfigBuilder, RuleConfigLoader, parse_rule, parse_rules
from .rule_engine import RuleEngine

__all__ = [
    "RuleEngine",
    "RuleConfigLoader",
    "RuleConfigBuilder",
    "parse_rule",
    "parse_rules",
]
