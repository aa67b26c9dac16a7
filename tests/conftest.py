"""
Pytest config.

Local imports like `import admission` rely on the repo root being on sys.path. When pytest
is invoked through a global entrypoint that doesn't happen reliably during collection, so
we pin it here.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest


def _ensure_repo_root_on_syspath() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


_ensure_repo_root_on_syspath()


@pytest.fixture(autouse=True)
def _clean_admission_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """
    Admission config is env-driven; a developer shell (or CI) exporting ADMISSION_* must
    not change unit test outcomes. Tests opt in with monkeypatch.setenv.
    """
    for key in list(os.environ):
        if key.startswith("ADMISSION_"):
            monkeypatch.delenv(key, raising=False)

    from admission.api import webhook as ws

    ws._get_config.cache_clear()


def make_review(
    containers: Optional[List[Dict[str, Any]]] = None,
    *,
    uid: str = "req-1",
    operation: str = "CREATE",
    name: str = "web",
    kind: Optional[Dict[str, str]] = None,
    obj: Optional[Dict[str, Any]] = None,
    envelope: bool = True,
) -> Dict[str, Any]:
    """Build an AdmissionReview document for a Pod (or a custom object)."""
    if obj is None:
        obj = {"metadata": {"name": name}, "spec": {"containers": list(containers or [])}}
    req: Dict[str, Any] = {"uid": uid, "operation": operation, "object": obj}
    if kind is not None:
        req["kind"] = kind
    doc: Dict[str, Any] = {"request": req}
    if envelope:
        doc = {"apiVersion": "admission.k8s.io/v1", "kind": "AdmissionReview", **doc}
    return doc


@pytest.fixture
def review_doc():  # type: ignore[no-untyped-def]
    return make_review
