"""Decision -> wire verdict mapping."""

from __future__ import annotations

from typing import Optional

from admission.core.models import FAILURE_STATUS, POLICY_REJECTION_CODE, Decision, ReviewResponse, StatusBlock


def respond(
    request_id: Optional[str],
    decision: Decision,
    *,
    api_version: Optional[str] = None,
    kind: Optional[str] = None,
) -> ReviewResponse:
    """Allowed decisions carry no status block; denials carry a `Failure` status."""
    if decision.allowed:
        return ReviewResponse(uid=request_id, allowed=True, api_version=api_version, kind=kind)

    message = decision.message or decision.reason or "denied by admission policy"
    return ReviewResponse(
        uid=request_id,
        allowed=False,
        status=StatusBlock(
            status=FAILURE_STATUS,
            message=message,
            reason=decision.reason or message,
            code=decision.code or POLICY_REJECTION_CODE,
        ),
        api_version=api_version,
        kind=kind,
    )
