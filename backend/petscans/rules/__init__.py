from .rule_schema import Rule, Severity
from .rule_registry import RuleRegistry

__all__ = [
    "Rule",
    "Severity",
    "RuleRegistry",
]
