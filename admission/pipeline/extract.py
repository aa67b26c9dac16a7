"""Object extraction: raw review object -> rule-facing `ExtractedTarget`.

The object payload is arbitrary-schema; every lookup here tolerates missing or mistyped
fields. Only kinds with a known pod-spec location are understood; anything else raises
`UnsupportedKind` and the pipeline applies the configured policy.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from admission.core.errors import UnsupportedKind
from admission.core.models import ExtractedTarget, GroupVersionKind, ReviewRequest, SubUnit

# Legacy callers send bare Pod objects without declaring a kind.
LEGACY_DEFAULT_KIND = GroupVersionKind(group="", version="v1", kind="Pod")

_POD_SPEC = ("spec",)
_TEMPLATE_POD_SPEC = ("spec", "template", "spec")
_CRONJOB_POD_SPEC = ("spec", "jobTemplate", "spec", "template", "spec")

# (group, kind) -> (accepted versions, path to the pod spec)
POD_SPEC_PATHS: Dict[Tuple[str, str], Tuple[Tuple[str, ...], Tuple[str, ...]]] = {
    ("", "Pod"): (("v1",), _POD_SPEC),
    ("", "ReplicationController"): (("v1",), _TEMPLATE_POD_SPEC),
    ("apps", "Deployment"): (("v1",), _TEMPLATE_POD_SPEC),
    ("apps", "ReplicaSet"): (("v1",), _TEMPLATE_POD_SPEC),
    ("apps", "StatefulSet"): (("v1",), _TEMPLATE_POD_SPEC),
    ("apps", "DaemonSet"): (("v1",), _TEMPLATE_POD_SPEC),
    ("batch", "Job"): (("v1",), _TEMPLATE_POD_SPEC),
    ("batch", "CronJob"): (("v1", "v1beta1"), _CRONJOB_POD_SPEC),
}

# Sub-unit lists in reporting order.
_SUB_UNIT_FIELDS = (
    ("containers", "container"),
    ("initContainers", "initContainer"),
    ("ephemeralContainers", "ephemeralContainer"),
)


def _dig(obj: Any, path: Tuple[str, ...]) -> Any:
    cur = obj
    for k in path:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(k)
    return cur


def _gvk_from_object(obj: Dict[str, Any]) -> Optional[GroupVersionKind]:
    kind = obj.get("kind")
    api_version = obj.get("apiVersion")
    if not isinstance(kind, str) or not kind.strip() or not isinstance(api_version, str) or not api_version.strip():
        return None
    group, _, version = api_version.strip().rpartition("/")
    return GroupVersionKind(group=group, version=version, kind=kind.strip())


def resolve_kind(request: ReviewRequest) -> GroupVersionKind:
    """Declared request kind, else the object's own apiVersion/kind, else a v1 Pod."""
    if request.kind is not None:
        return request.kind
    if isinstance(request.object, dict):
        gvk = _gvk_from_object(request.object)
        if gvk is not None:
            return gvk
    return LEGACY_DEFAULT_KIND


def supported_kinds() -> List[GroupVersionKind]:
    out: List[GroupVersionKind] = []
    for (group, kind), (versions, _path) in POD_SPEC_PATHS.items():
        for version in versions:
            out.append(GroupVersionKind(group=group, version=version, kind=kind))
    return out


def _env_names(env: Any) -> Tuple[str, ...]:
    if not isinstance(env, list):
        return ()
    return tuple(str(e.get("name")) for e in env if isinstance(e, dict) and e.get("name"))


def _sub_units(pod_spec: Any, cap: int) -> Tuple[List[SubUnit], int]:
    units: List[SubUnit] = []
    total = 0
    for field_name, role in _SUB_UNIT_FIELDS:
        raw = pod_spec.get(field_name) if isinstance(pod_spec, dict) else None
        if not isinstance(raw, list):
            continue
        for c in raw:
            if not isinstance(c, dict):
                continue
            total += 1
            if len(units) >= cap:
                continue
            name = c.get("name")
            name_s = str(name).strip() if name is not None else ""
            units.append(
                SubUnit(
                    name=name_s or f"<unnamed-{total - 1}>",
                    index=total - 1,
                    role=role,
                    # Presence, not value: `env: []` still counts.
                    has_env="env" in c,
                    env_names=_env_names(c.get("env")),
                    has_env_from="envFrom" in c,
                )
            )
    return units, total


def extract(request: ReviewRequest, *, max_sub_units: int = 256) -> ExtractedTarget:
    """
    Build the rule-facing view of the review object.

    Raises UnsupportedKind when the resolved kind/version has no known pod-spec location.
    """
    gvk = resolve_kind(request)
    entry = POD_SPEC_PATHS.get((gvk.group, gvk.kind))
    if entry is None or gvk.version not in entry[0]:
        raise UnsupportedKind(gvk)
    _versions, path = entry

    obj = request.object if isinstance(request.object, dict) else {}
    metadata = obj.get("metadata") if isinstance(obj.get("metadata"), dict) else {}
    name = metadata.get("name") or metadata.get("generateName") or request.name or "<unnamed>"
    namespace = metadata.get("namespace") or request.namespace

    units, total = _sub_units(_dig(obj, path), max(1, int(max_sub_units)))
    return ExtractedTarget(
        name=str(name),
        namespace=str(namespace) if namespace else None,
        kind=gvk,
        sub_units=tuple(units),
        truncated=total > len(units),
        total_sub_units=total,
    )
