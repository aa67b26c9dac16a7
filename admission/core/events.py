"""Structured review events and observer sinks.

Decision logic never logs on its own; it reports events to an optional observer.
`LoggingObserver` is the default sink used by the review pipeline.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Literal, Optional, Protocol

from admission.core.models import Decision, Verdict

logger = logging.getLogger(__name__)

EventType = Literal["verdict", "decision", "skipped", "unsupported_kind"]


@dataclass(frozen=True)
class ReviewEvent:
    event: EventType
    request_uid: Optional[str] = None
    target: Optional[str] = None
    rule_id: Optional[str] = None
    sub_unit: Optional[str] = None
    passed: Optional[bool] = None
    message: Optional[str] = None
    # The API server will not persist the object.
    dry_run: bool = False


class DecisionObserver(Protocol):
    def on_event(self, event: ReviewEvent) -> None:
        """Receive one structured event. Must not raise."""


def verdict_event(
    verdict: Verdict, *, request_uid: Optional[str], target: Optional[str], dry_run: bool = False
) -> ReviewEvent:
    return ReviewEvent(
        event="verdict",
        request_uid=request_uid,
        target=target,
        rule_id=verdict.rule_id,
        sub_unit=verdict.sub_unit,
        passed=verdict.passed,
        message=verdict.message,
        dry_run=dry_run,
    )


def decision_event(
    decision: Decision, *, request_uid: Optional[str], target: Optional[str], dry_run: bool = False
) -> ReviewEvent:
    return ReviewEvent(
        event="decision",
        request_uid=request_uid,
        target=target,
        passed=decision.allowed,
        message=decision.message,
        dry_run=dry_run,
    )


def notify(observer: Optional[DecisionObserver], event: ReviewEvent) -> None:
    """Deliver an event; a failing observer never affects the decision."""
    if observer is None:
        return
    try:
        observer.on_event(event)
    except Exception as e:
        logger.warning("Admission observer failed on %s event: %s", event.event, str(e))


class LoggingObserver:
    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self._log = log or logger

    def on_event(self, event: ReviewEvent) -> None:
        if event.event == "verdict":
            if event.passed:
                self._log.debug("%s rule=%s sub_unit=%s passed", event.request_uid, event.rule_id, event.sub_unit)
            else:
                self._log.info(
                    "%s rule=%s sub_unit=%s denied: %s",
                    event.request_uid,
                    event.rule_id,
                    event.sub_unit,
                    event.message,
                )
        elif event.event == "decision":
            self._log.info(
                "%s validating %s: %s%s%s",
                event.request_uid,
                event.target or "<unknown>",
                "allowed" if event.passed else "denied",
                f" ({event.message})" if event.message else "",
                " [dry run]" if event.dry_run else "",
            )
        else:
            self._log.info("%s %s: %s", event.request_uid, event.event, event.message or "")


@dataclass
class RecordingObserver:
    """Collects events in memory (tests, CLI dry runs)."""

    events: List[ReviewEvent] = field(default_factory=list)

    def on_event(self, event: ReviewEvent) -> None:
        self.events.append(event)
