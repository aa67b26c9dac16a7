from __future__ import annotations

from typing import List, Optional, Sequence

from admission.core.events import DecisionObserver, decision_event, notify, verdict_event
from admission.core.models import POLICY_REJECTION_CODE, Decision, ExtractedTarget, Verdict
from admission.rules.base import Rule

ENGINE_RULE_ID = "engine"
RULE_ERROR_REASON = "RuleError"
TOO_MANY_SUB_UNITS_REASON = "TooManySubUnits"


def _run_rule(rule: Rule, target: ExtractedTarget) -> List[Verdict]:
    rid = str(getattr(rule, "rule_id", "unknown"))
    try:
        out = list(rule.evaluate(target) or [])
    except Exception as e:
        return [Verdict.fail(rid, f"rule {rid} failed: {e}", reason=RULE_ERROR_REASON)]
    if not all(isinstance(v, Verdict) for v in out):
        return [Verdict.fail(rid, f"rule {rid} failed: returned a non-verdict result", reason=RULE_ERROR_REASON)]
    return out


def _guard_verdicts(target: ExtractedTarget) -> List[Verdict]:
    if not target.truncated:
        return []
    examined = len(target.sub_units)
    return [
        Verdict.fail(
            ENGINE_RULE_ID,
            f"{target.name} has {target.total_sub_units} containers; only {examined} can be validated",
            reason=TOO_MANY_SUB_UNITS_REASON,
        )
    ]


def _pick_message(failures: Sequence[Verdict], message_policy: str) -> tuple[str, str]:
    first = failures[0]
    reason = first.reason or first.message or ""
    if message_policy == "combined":
        return "; ".join(v.message or "" for v in failures if v.message), reason
    return first.message or reason, reason


def decide(
    target: ExtractedTarget,
    rules: Sequence[Rule],
    *,
    message_policy: str = "first",
    observer: Optional[DecisionObserver] = None,
    request_uid: Optional[str] = None,
    dry_run: bool = False,
) -> Decision:
    """
    Run every rule against the target and aggregate verdicts.

    Guarantees:
    - allowed iff every verdict passed (any deny wins)
    - no short-circuit: every rule sees every sub-unit, every verdict reaches the observer
    - representative message: first failing verdict in rule-then-sub-unit order
      ("combined" joins all failing messages in that same order)
    - never raises for rule faults
    """
    verdicts: List[Verdict] = []
    for rule in rules:
        verdicts.extend(_run_rule(rule, target))
    verdicts.extend(_guard_verdicts(target))

    for v in verdicts:
        notify(observer, verdict_event(v, request_uid=request_uid, target=target.name, dry_run=dry_run))

    failures = [v for v in verdicts if not v.passed]
    if not failures:
        decision = Decision(allowed=True, verdicts=tuple(verdicts))
    else:
        message, reason = _pick_message(failures, message_policy)
        decision = Decision(
            allowed=False,
            code=POLICY_REJECTION_CODE,
            message=message,
            reason=reason,
            verdicts=tuple(verdicts),
        )

    notify(observer, decision_event(decision, request_uid=request_uid, target=target.name, dry_run=dry_run))
    return decision
