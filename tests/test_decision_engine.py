from __future__ import annotations

import itertools
from typing import List

from admission.core.events import RecordingObserver
from admission.core.models import ExtractedTarget, GroupVersionKind, SubUnit, Verdict
from admission.rules.engine import RULE_ERROR_REASON, TOO_MANY_SUB_UNITS_REASON, decide
from admission.rules.env_vars import EnvFromDenyRule, EnvVarDenyRule

POD = GroupVersionKind(kind="Pod")


def _target(*units: SubUnit, truncated: bool = False, total: int | None = None) -> ExtractedTarget:
    return ExtractedTarget(
        name="web",
        kind=POD,
        sub_units=units,
        truncated=truncated,
        total_sub_units=len(units) if total is None else total,
    )


class _ExplodingRule:
    rule_id = "explodes"
    description = "always raises"

    def evaluate(self, target: ExtractedTarget) -> List[Verdict]:
        raise KeyError("boom")


class _BadReturnRule:
    rule_id = "bad_return"
    description = "returns junk"

    def evaluate(self, target: ExtractedTarget) -> List[Verdict]:
        return ["not a verdict"]  # type: ignore[list-item]


def test_allowed_when_no_sub_unit_has_env() -> None:
    d = decide(_target(SubUnit(name="a", index=0), SubUnit(name="b", index=1)), [EnvVarDenyRule()])
    assert d.allowed is True
    assert d.code is None
    assert d.message is None
    assert len(d.verdicts) == 2


def test_first_failing_verdict_supplies_message() -> None:
    t = _target(
        SubUnit(name="ok", index=0),
        SubUnit(name="first-bad", index=1, has_env=True),
        SubUnit(name="second-bad", index=2, has_env=True),
    )
    d = decide(t, [EnvVarDenyRule()])
    assert d.allowed is False
    assert d.code == 402
    assert d.message == "first-bad is using env vars"
    assert d.reason == "first-bad is using env vars"
    # No short-circuit: every sub-unit was still checked.
    assert [v.sub_unit for v in d.failures] == ["first-bad", "second-bad"]


def test_rule_order_drives_message_not_outcome() -> None:
    t = _target(SubUnit(name="a", index=0, has_env_from=True), SubUnit(name="b", index=1, has_env=True))
    env_first = decide(t, [EnvVarDenyRule(), EnvFromDenyRule()])
    from_first = decide(t, [EnvFromDenyRule(), EnvVarDenyRule()])
    assert env_first.allowed is from_first.allowed is False
    assert env_first.message == "b is using env vars"
    assert from_first.message == "a is using envFrom sources"


def test_allowed_flag_is_order_independent() -> None:
    targets = [
        _target(SubUnit(name="a", index=0)),
        _target(SubUnit(name="a", index=0, has_env=True)),
        _target(SubUnit(name="a", index=0, has_env_from=True)),
    ]
    rules = [EnvVarDenyRule(), EnvFromDenyRule()]
    for t in targets:
        outcomes = {decide(t, list(p)).allowed for p in itertools.permutations(rules)}
        assert len(outcomes) == 1


def test_combined_message_policy_lists_every_offender() -> None:
    t = _target(SubUnit(name="x", index=0, has_env=True), SubUnit(name="y", index=1, has_env=True))
    d = decide(t, [EnvVarDenyRule()], message_policy="combined")
    assert d.message == "x is using env vars; y is using env vars"
    assert d.reason == "x is using env vars"


def test_decide_is_idempotent() -> None:
    t = _target(SubUnit(name="a", index=0, has_env=True), SubUnit(name="b", index=1))
    rules = [EnvVarDenyRule(), EnvFromDenyRule()]
    assert decide(t, rules) == decide(t, rules)


def test_rule_exception_becomes_failing_verdict() -> None:
    t = _target(SubUnit(name="a", index=0))
    d = decide(t, [_ExplodingRule(), EnvVarDenyRule()])
    assert d.allowed is False
    assert d.reason == RULE_ERROR_REASON
    assert "rule explodes failed" in (d.message or "")
    # Later rules still ran.
    assert any(v.rule_id == "deny_env_vars" for v in d.verdicts)


def test_rule_returning_non_verdicts_is_contained() -> None:
    d = decide(_target(SubUnit(name="a", index=0)), [_BadReturnRule()])
    assert d.allowed is False
    assert d.reason == RULE_ERROR_REASON


def test_truncated_target_is_denied() -> None:
    t = _target(SubUnit(name="a", index=0), truncated=True, total=300)
    d = decide(t, [EnvVarDenyRule()])
    assert d.allowed is False
    assert d.reason == TOO_MANY_SUB_UNITS_REASON
    assert "300 containers" in (d.message or "")


def test_observer_sees_every_verdict_and_decision() -> None:
    obs = RecordingObserver()
    t = _target(SubUnit(name="a", index=0, has_env=True), SubUnit(name="b", index=1, has_env=True))
    decide(t, [EnvVarDenyRule()], observer=obs, request_uid="uid-7")
    kinds = [e.event for e in obs.events]
    assert kinds == ["verdict", "verdict", "decision"]
    assert [e.sub_unit for e in obs.events[:2]] == ["a", "b"]
    assert all(e.request_uid == "uid-7" for e in obs.events)
    assert obs.events[-1].passed is False


def test_failing_observer_does_not_change_decision() -> None:
    class _Broken:
        def on_event(self, event) -> None:  # type: ignore[no-untyped-def]
            raise RuntimeError("sink down")

    d = decide(_target(SubUnit(name="a", index=0)), [EnvVarDenyRule()], observer=_Broken())
    assert d.allowed is True
