from __future__ import annotations

from typing import List, Protocol

from admission.core.models import ExtractedTarget, Verdict


class Rule(Protocol):
    """
    Validating admission rule contract.

    Rules are:
    - pure (no I/O, never mutate the target)
    - total over any extractor output (anomalies become failing verdicts, never exceptions)
    - per sub-unit: one verdict for every sub-unit inspected
    """

    rule_id: str
    description: str

    def evaluate(self, target: ExtractedTarget) -> List[Verdict]:
        """Return one verdict per inspected sub-unit."""
