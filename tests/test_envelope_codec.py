from __future__ import annotations

import json

import pytest

from admission.core.errors import MalformedEnvelope
from admission.core.models import GroupVersionKind, Operation, ReviewResponse, StatusBlock
from admission.pipeline.envelope import decode_request, decode_response, encode_response


def test_decode_request_parses_v1_envelope(review_doc) -> None:
    doc = review_doc(
        [{"name": "nginx"}],
        kind={"group": "", "version": "v1", "kind": "Pod"},
    )
    doc["request"]["namespace"] = "prod"
    req = decode_request(json.dumps(doc).encode("utf-8"))

    assert req.uid == "req-1"
    assert req.operation is Operation.CREATE
    assert req.kind == GroupVersionKind(group="", version="v1", kind="Pod")
    assert req.object["spec"]["containers"] == [{"name": "nginx"}]
    assert req.namespace == "prod"
    assert req.api_version == "admission.k8s.io/v1"
    assert req.envelope_kind == "AdmissionReview"


def test_decode_request_accepts_legacy_bare_envelope(review_doc) -> None:
    req = decode_request(review_doc([{"name": "nginx"}], envelope=False))
    assert req.api_version is None
    assert req.envelope_kind is None
    assert req.kind is None


@pytest.mark.parametrize(
    "raw",
    [
        b"not json",
        b"\xff\xfe",
        b"[1, 2]",
        b"{}",
        b'{"request": "x"}',
        b'{"request": {"operation": "CREATE", "object": {}}}',
        b'{"request": {"uid": "u", "object": {}}}',
        b'{"request": {"uid": "u", "operation": "PATCH", "object": {}}}',
        b'{"request": {"uid": "u", "operation": "CREATE"}}',
        b'{"request": {"uid": "u", "operation": "CREATE", "object": null}}',
        b'{"request": {"uid": "u", "operation": "CREATE", "object": [1]}}',
    ],
)
def test_decode_request_rejects_malformed(raw: bytes) -> None:
    with pytest.raises(MalformedEnvelope):
        decode_request(raw)


def test_decode_request_allows_null_object_for_delete() -> None:
    req = decode_request({"request": {"uid": "u", "operation": "DELETE", "object": None}})
    assert req.operation is Operation.DELETE
    assert req.object is None


def test_encode_allowed_response_has_no_status() -> None:
    out = json.loads(encode_response(ReviewResponse(uid="u1", allowed=True)))
    assert out == {"response": {"allowed": True, "uid": "u1"}}


def test_encode_denied_response_echoes_envelope_version() -> None:
    resp = ReviewResponse(
        uid="u1",
        allowed=False,
        status=StatusBlock(message="a is using env vars", reason="a is using env vars"),
        api_version="admission.k8s.io/v1",
        kind="AdmissionReview",
    )
    out = json.loads(encode_response(resp))
    assert out["apiVersion"] == "admission.k8s.io/v1"
    assert out["kind"] == "AdmissionReview"
    assert out["response"]["allowed"] is False
    assert out["response"]["status"] == {
        "status": "Failure",
        "message": "a is using env vars",
        "reason": "a is using env vars",
        "code": 402,
    }


def test_response_round_trip() -> None:
    allowed = ReviewResponse(uid="u1", allowed=True, api_version="admission.k8s.io/v1beta1", kind="AdmissionReview")
    denied = ReviewResponse(
        uid="u2",
        allowed=False,
        status=StatusBlock(message="m", reason="r"),
    )
    assert decode_response(encode_response(allowed)) == allowed
    assert decode_response(encode_response(denied)) == denied


def test_decode_response_requires_allowed_flag() -> None:
    with pytest.raises(MalformedEnvelope):
        decode_response(b'{"response": {"uid": "u"}}')


@pytest.mark.parametrize("uid", ["", None, 42, {"id": "u"}, ["u"], True])
def test_decode_request_requires_non_empty_string_uid(review_doc, uid) -> None:
    doc = review_doc([{"name": "nginx"}])
    doc["request"]["uid"] = uid
    with pytest.raises(MalformedEnvelope) as ei:
        decode_request(doc)
    assert "request.uid" in ei.value.detail


@pytest.mark.parametrize("uid", [" abc-123 ", "\tuid\n", "uïd-ß-∆", "a" * 512])
def test_decode_request_keeps_uid_verbatim(review_doc, uid: str) -> None:
    req = decode_request(json.dumps(review_doc([{"name": "nginx"}], uid=uid)).encode("utf-8"))
    assert req.uid == uid


def test_decode_response_keeps_uid_verbatim() -> None:
    resp = ReviewResponse(uid="  spaced uid  ", allowed=True)
    assert decode_response(encode_response(resp)).uid == "  spaced uid  "


def test_decode_response_rejects_non_string_uid() -> None:
    with pytest.raises(MalformedEnvelope):
        decode_response(b'{"response": {"uid": 7, "allowed": true}}')
