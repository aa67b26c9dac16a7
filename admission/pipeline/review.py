"""
End-to-end review: decode -> extract -> decide -> respond -> encode.

One linear pass per request, no retries, no state shared between requests.
`MalformedEnvelope` propagates to the caller (the transport maps it to a non-200);
`UnsupportedKind` is resolved here according to configuration.
"""

from __future__ import annotations

from typing import Optional

from admission.core.config import AdmissionConfig, load_admission_config
from admission.core.errors import UnsupportedKind
from admission.core.events import DecisionObserver, LoggingObserver, ReviewEvent, decision_event, notify
from admission.core.models import POLICY_REJECTION_CODE, Decision, ReviewRequest, ReviewResponse
from admission.pipeline.envelope import RawDocument, decode_request, encode_response
from admission.pipeline.extract import extract
from admission.pipeline.respond import respond
from admission.rules.engine import decide
from admission.rules.registry import RuleRegistry, get_default_registry

UNSUPPORTED_KIND_REASON = "UnsupportedKind"


def _unsupported_kind_decision(err: UnsupportedKind, config: AdmissionConfig) -> Decision:
    if config.unsupported_kind_policy == "deny":
        return Decision(allowed=False, code=POLICY_REJECTION_CODE, message=err.detail, reason=UNSUPPORTED_KIND_REASON)
    return Decision(allowed=True)


def evaluate_request(
    request: ReviewRequest,
    *,
    config: AdmissionConfig,
    registry: RuleRegistry,
    observer: Optional[DecisionObserver] = None,
) -> Decision:
    """Decide an already-decoded review request."""
    if request.operation not in config.operations:
        notify(
            observer,
            ReviewEvent(
                event="skipped",
                request_uid=request.uid,
                target=request.name,
                passed=True,
                message=f"operation {request.operation.value} is not validated",
                dry_run=request.dry_run,
            ),
        )
        return Decision(allowed=True)

    rules = registry.select(config.rules)

    try:
        target = extract(request, max_sub_units=config.max_sub_units)
    except UnsupportedKind as e:
        decision = _unsupported_kind_decision(e, config)
        notify(
            observer,
            ReviewEvent(
                event="unsupported_kind",
                request_uid=request.uid,
                target=request.name,
                passed=decision.allowed,
                message=f"{e.detail} (policy={config.unsupported_kind_policy})",
                dry_run=request.dry_run,
            ),
        )
        notify(
            observer,
            decision_event(decision, request_uid=request.uid, target=request.name, dry_run=request.dry_run),
        )
        return decision

    return decide(
        target,
        rules,
        message_policy=config.message_policy,
        observer=observer,
        request_uid=request.uid,
        dry_run=request.dry_run,
    )


def review(
    raw: RawDocument,
    *,
    config: Optional[AdmissionConfig] = None,
    registry: Optional[RuleRegistry] = None,
    observer: Optional[DecisionObserver] = None,
) -> ReviewResponse:
    """
    Review one inbound document.

    Raises MalformedEnvelope (before any rule runs) and ConfigError (misconfigured rule ids).
    """
    cfg = config or load_admission_config()
    reg = registry or get_default_registry()
    obs = observer if observer is not None else LoggingObserver()

    request = decode_request(raw)
    decision = evaluate_request(request, config=cfg, registry=reg, observer=obs)
    return respond(request.uid, decision, api_version=request.api_version, kind=request.envelope_kind)


def review_bytes(
    raw: RawDocument,
    *,
    config: Optional[AdmissionConfig] = None,
    registry: Optional[RuleRegistry] = None,
    observer: Optional[DecisionObserver] = None,
) -> bytes:
    return encode_response(review(raw, config=config, registry=registry, observer=observer))
