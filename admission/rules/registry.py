from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from admission.core.errors import ConfigError
from admission.rules.base import Rule


@dataclass
class RuleRegistry:
    rules: List[Rule] = field(default_factory=list)

    def register(self, rule: Rule) -> None:
        if self.get(rule.rule_id) is not None:
            raise ConfigError(f"duplicate admission rule id {rule.rule_id!r}")
        self.rules.append(rule)

    def get(self, rule_id: str) -> Optional[Rule]:
        for r in self.rules:
            if r.rule_id == rule_id:
                return r
        return None

    def ids(self) -> List[str]:
        return [r.rule_id for r in self.rules]

    def select(self, rule_ids: Iterable[str]) -> List[Rule]:
        """Resolve configured ids to rules, preserving configured order."""
        out: List[Rule] = []
        for rid in rule_ids:
            r = self.get(rid)
            if r is None:
                raise ConfigError(f"unknown admission rule {rid!r} (known: {', '.join(self.ids())})")
            out.append(r)
        return out


_DEFAULT_REGISTRY: RuleRegistry | None = None


def get_default_registry() -> RuleRegistry:
    global _DEFAULT_REGISTRY
    if _DEFAULT_REGISTRY is not None:
        return _DEFAULT_REGISTRY
    reg = RuleRegistry()
    # Explicit composition (single source of truth lives in `admission.rules.env_vars`).
    from admission.rules.env_vars import DEFAULT_RULE_CLASSES  # noqa: WPS433

    for cls in DEFAULT_RULE_CLASSES:
        reg.register(cls())

    _DEFAULT_REGISTRY = reg
    return reg
