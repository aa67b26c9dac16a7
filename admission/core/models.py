"""Canonical admission models (single source of truth).

Everything here is request-scoped:
- the decoded review request (envelope + raw object payload)
- the rule-facing view of the object (`ExtractedTarget`)
- per-rule verdicts and the aggregate decision
- the outbound review response

Design note:
- The object payload stays a plain dict. Its shape depends on the declared kind/version,
  so it is navigated defensively by the extractor instead of being modelled here.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict

FAILURE_STATUS = "Failure"
# Client-side policy rejection.
POLICY_REJECTION_CODE = 402


class BaseModelStrict(BaseModel):
    model_config = ConfigDict(extra="forbid")


class BaseModelFrozen(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class Operation(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    CONNECT = "CONNECT"


class GroupVersionKind(BaseModelFrozen):
    group: str = ""  # core API group is the empty string
    version: str = "v1"
    kind: str

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    def __str__(self) -> str:
        return f"{self.api_version}/{self.kind}"


class ReviewRequest(BaseModelStrict):
    uid: str
    operation: Operation
    kind: Optional[GroupVersionKind] = None
    object: Optional[Dict[str, Any]] = None

    # Optional request attributes (informational, used for logs/messages).
    namespace: Optional[str] = None
    name: Optional[str] = None
    dry_run: bool = False

    # The review document's own apiVersion/kind, echoed back on the response.
    api_version: Optional[str] = None
    envelope_kind: Optional[str] = None


class SubUnit(BaseModelFrozen):
    name: str
    index: int
    role: Literal["container", "initContainer", "ephemeralContainer"] = "container"
    # Configuration-source marker: the `env` field is present (even if empty).
    has_env: bool = False
    env_names: Tuple[str, ...] = ()
    has_env_from: bool = False


class ExtractedTarget(BaseModelFrozen):
    name: str
    namespace: Optional[str] = None
    kind: GroupVersionKind
    sub_units: Tuple[SubUnit, ...] = ()
    truncated: bool = False
    total_sub_units: int = 0


class Verdict(BaseModelFrozen):
    rule_id: str
    passed: bool
    sub_unit: Optional[str] = None
    message: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def ok(cls, rule_id: str, sub_unit: Optional[str] = None) -> "Verdict":
        return cls(rule_id=rule_id, passed=True, sub_unit=sub_unit)

    @classmethod
    def fail(
        cls, rule_id: str, message: str, *, reason: Optional[str] = None, sub_unit: Optional[str] = None
    ) -> "Verdict":
        return cls(rule_id=rule_id, passed=False, sub_unit=sub_unit, message=message, reason=reason or message)


class Decision(BaseModelFrozen):
    allowed: bool
    code: Optional[int] = None
    message: Optional[str] = None
    reason: Optional[str] = None
    verdicts: Tuple[Verdict, ...] = ()

    @property
    def failures(self) -> List[Verdict]:
        return [v for v in self.verdicts if not v.passed]


class StatusBlock(BaseModelFrozen):
    status: str = FAILURE_STATUS
    message: str
    reason: str
    code: int = POLICY_REJECTION_CODE


class ReviewResponse(BaseModelFrozen):
    uid: Optional[str] = None
    allowed: bool
    status: Optional[StatusBlock] = None

    # Echoed envelope apiVersion/kind (omitted for legacy bare envelopes).
    api_version: Optional[str] = None
    kind: Optional[str] = None
