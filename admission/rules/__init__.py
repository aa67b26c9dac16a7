"""Validating admission rules.

This package provides the rule-plugin contract used by the decision engine:
- rules are independent predicates over an extracted object
- the registry holds every known rule; configuration picks the ordered active subset

Adding a rule means adding a class and listing it in `DEFAULT_RULE_CLASSES`.
"""

from .base import Rule
from .engine import decide
from .registry import RuleRegistry, get_default_registry

__all__ = ["Rule", "RuleRegistry", "decide", "get_default_registry"]
