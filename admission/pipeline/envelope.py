"""
Review envelope codec.

Inbound shape (the `apiVersion`/`kind` envelope fields and `request.kind` are optional;
the legacy bare `{"request": ...}` document is still accepted):

    {"apiVersion": "admission.k8s.io/v1", "kind": "AdmissionReview",
     "request": {"uid": ..., "operation": "CREATE", "kind": {...}, "object": {...}}}

Outbound shape:

    {"apiVersion": ..., "kind": ..., "response": {"uid": ..., "allowed": bool, "status"?: {...}}}

Pure: no I/O, no logging.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from admission.core.errors import MalformedEnvelope
from admission.core.models import GroupVersionKind, Operation, ReviewRequest, ReviewResponse, StatusBlock

RawDocument = Union[bytes, bytearray, str, Dict[str, Any]]

# Operations for which the platform sends `object: null`.
_NULL_OBJECT_OPERATIONS = {Operation.DELETE, Operation.CONNECT}


def _load(raw: RawDocument) -> Dict[str, Any]:
    if isinstance(raw, dict):
        doc: Any = raw
    else:
        try:
            if isinstance(raw, (bytes, bytearray)):
                raw = bytes(raw).decode("utf-8")
            doc = json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError, TypeError) as e:
            raise MalformedEnvelope(f"review body is not valid JSON: {e}") from e
    if not isinstance(doc, dict):
        raise MalformedEnvelope("review body must be a JSON object")
    return doc


def _opt_str(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def _parse_gvk(raw: Any) -> Optional[GroupVersionKind]:
    if not isinstance(raw, dict) or not _opt_str(raw.get("kind")):
        return None
    return GroupVersionKind(
        group=str(raw.get("group") or ""),
        version=str(raw.get("version") or "v1"),
        kind=str(raw.get("kind")).strip(),
    )


def decode_request(raw: RawDocument) -> ReviewRequest:
    """Parse an inbound review document. Raises MalformedEnvelope."""
    doc = _load(raw)

    req = doc.get("request")
    if not isinstance(req, dict):
        raise MalformedEnvelope("review is missing the `request` object")

    # Opaque token, echoed back unchanged.
    uid = req.get("uid")
    if not isinstance(uid, str) or uid == "":
        raise MalformedEnvelope("request.uid is required and must be a non-empty string")

    op_raw = _opt_str(req.get("operation"))
    if op_raw is None:
        raise MalformedEnvelope("request.operation is required")
    try:
        operation = Operation(op_raw.upper())
    except ValueError:
        raise MalformedEnvelope(f"request.operation {op_raw!r} is not one of CREATE, UPDATE, DELETE, CONNECT") from None

    if "object" not in req:
        raise MalformedEnvelope("request.object is required")
    obj = req.get("object")
    if obj is None and operation not in _NULL_OBJECT_OPERATIONS:
        raise MalformedEnvelope(f"request.object must not be null for {operation.value}")
    if obj is not None and not isinstance(obj, dict):
        raise MalformedEnvelope("request.object must be a JSON object")

    options = req.get("options") if isinstance(req.get("options"), dict) else {}
    try:
        return ReviewRequest(
            uid=uid,
            operation=operation,
            kind=_parse_gvk(req.get("kind")),
            object=obj,
            namespace=_opt_str(req.get("namespace")),
            name=_opt_str(req.get("name")),
            dry_run=bool(req.get("dryRun") or options.get("dryRun")),
            api_version=_opt_str(doc.get("apiVersion")),
            envelope_kind=_opt_str(doc.get("kind")),
        )
    except ValidationError as e:
        raise MalformedEnvelope(f"invalid review request: {e}") from e


def response_to_dict(resp: ReviewResponse) -> Dict[str, Any]:
    body: Dict[str, Any] = {"allowed": bool(resp.allowed)}
    if resp.uid is not None:
        body["uid"] = resp.uid
    if not resp.allowed and resp.status is not None:
        body["status"] = {
            "status": resp.status.status,
            "message": resp.status.message,
            "reason": resp.status.reason,
            "code": resp.status.code,
        }

    doc: Dict[str, Any] = {}
    if resp.api_version:
        doc["apiVersion"] = resp.api_version
    if resp.kind:
        doc["kind"] = resp.kind
    doc["response"] = body
    return doc


def encode_response(resp: ReviewResponse) -> bytes:
    """Serialize a review response. Total for responder output."""
    return json.dumps(response_to_dict(resp), separators=(",", ":")).encode("utf-8")


def decode_response(raw: RawDocument) -> ReviewResponse:
    """Parse a review response document (inverse of `encode_response`)."""
    doc = _load(raw)
    body = doc.get("response")
    if not isinstance(body, dict) or not isinstance(body.get("allowed"), bool):
        raise MalformedEnvelope("review response is missing `response.allowed`")

    status = None
    st = body.get("status")
    if isinstance(st, dict):
        try:
            status = StatusBlock(
                status=str(st.get("status") or "Failure"),
                message=str(st.get("message") or ""),
                reason=str(st.get("reason") or ""),
                code=int(st.get("code") or 0),
            )
        except (TypeError, ValueError) as e:
            raise MalformedEnvelope(f"invalid response status: {e}") from e

    uid = body.get("uid")
    if uid is not None and not isinstance(uid, str):
        raise MalformedEnvelope("response.uid must be a string")

    return ReviewResponse(
        uid=uid,
        allowed=body["allowed"],
        status=status,
        api_version=_opt_str(doc.get("apiVersion")),
        kind=_opt_str(doc.get("kind")),
    )
