"""Rules about container environment configuration."""

from __future__ import annotations

from typing import List

from admission.core.models import ExtractedTarget, Verdict


class EnvVarDenyRule:
    """Reject workloads whose containers self-configure through `env`.

    The marker is field presence: `env: []` is denied too.
    """

    rule_id = "deny_env_vars"
    description = "Deny containers that declare an `env` field"

    def evaluate(self, target: ExtractedTarget) -> List[Verdict]:
        out: List[Verdict] = []
        for unit in target.sub_units:
            if unit.has_env:
                msg = f"{unit.name} is using env vars"
                out.append(Verdict.fail(self.rule_id, msg, reason=msg, sub_unit=unit.name))
            else:
                out.append(Verdict.ok(self.rule_id, unit.name))
        return out


class EnvFromDenyRule:
    rule_id = "deny_env_from"
    description = "Deny containers that import environment from ConfigMaps/Secrets via `envFrom`"

    def evaluate(self, target: ExtractedTarget) -> List[Verdict]:
        out: List[Verdict] = []
        for unit in target.sub_units:
            if unit.has_env_from:
                msg = f"{unit.name} is using envFrom sources"
                out.append(Verdict.fail(self.rule_id, msg, reason=msg, sub_unit=unit.name))
            else:
                out.append(Verdict.ok(self.rule_id, unit.name))
        return out


DEFAULT_RULE_CLASSES = [
    EnvVarDenyRule,
    EnvFromDenyRule,
]
