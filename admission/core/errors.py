from __future__ import annotations

from typing import Optional

from admission.core.models import GroupVersionKind


class AdmissionError(Exception):
    """Base class for errors raised before any rule runs."""


class MalformedEnvelope(AdmissionError):
    """The review document does not parse or lacks mandatory fields."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class UnsupportedKind(AdmissionError):
    def __init__(self, kind: Optional[GroupVersionKind], detail: Optional[str] = None) -> None:
        self.kind = kind
        self.detail = detail or f"kind {kind} is not supported by this admission policy"
        super().__init__(self.detail)


class ConfigError(AdmissionError, ValueError):
    """Invalid configuration (unknown rule ids, unknown policy names)."""
