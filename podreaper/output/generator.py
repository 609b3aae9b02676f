"""Structured report for one PodReaper run."""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from podreaper.safety.models import Rule
from podreaper.selection.candidate import SelectionResult


class ReportGenerator:
    """Generates a JSON-serialisable report of a selection cycle."""

    SCHEMA_VERSION = "1.0.0"

    def __init__(
        self,
        namespace: str,
        selector: str,
        result: SelectionResult,
        mode: Optional[str] = None,
        removal: Optional[Dict[str, Any]] = None,
    ):
        """Initialize the report generator.

        Args:
            namespace: Namespace the cycle ran against.
            selector: Targeting selector string.
            result: Outcome of candidate selection.
            mode: Removal mode, or None when nothing is removed.
            removal: {"status": ..., "error": ...} from the removal step.
        """
        self.namespace = namespace
        self.selector = selector
        self.result = result
        self.mode = mode
        self.removal = removal

    def generate(self) -> Dict[str, Any]:
        """Generate the complete report structure."""
        now = datetime.now(timezone.utc)
        run_id = f"run-{now.strftime('%Y-%m-%d-%H%M%S')}-{uuid.uuid4().hex[:6]}"

        chosen = self.result.chosen
        return {
            "schemaVersion": self.SCHEMA_VERSION,
            "runId": run_id,
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "namespace": self.namespace,
            "selector": self.selector,
            "chosen": chosen.to_dict() if chosen else None,
            "mode": self.mode,
            "removal": self.removal,
            "verdicts": {
                name: verdict.to_dict() for name, verdict in self.result.verdicts.items()
            },
            "warnings": list(self.result.warnings),
            "summary": self._generate_summary(),
        }

    def _generate_summary(self) -> Dict[str, Any]:
        verdicts = self.result.verdicts.values()
        return {
            "candidates": len(self.result.verdicts),
            "eligible": len(self.result.eligible),
            "deniedByProtection": sum(
                1 for v in verdicts if not v.admit and v.rule == Rule.PROTECTION
            ),
            "deniedByBudget": sum(
                1 for v in verdicts if not v.admit and v.rule == Rule.BUDGET
            ),
            "skippedBudgets": len(self.result.warnings),
            "outcome": self._outcome(),
        }

    def _outcome(self) -> str:
        if self.result.chosen is None:
            return "no-eligible-candidate"
        if self.removal is None:
            return "selected"
        return "removed" if self.removal.get("status") == "success" else "removal-failed"
