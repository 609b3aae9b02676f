"""Snapshot data model for disruption safety decisions.

Every object here is built fresh from a point-in-time cluster snapshot at the
start of a selection cycle and discarded at its end.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from podreaper.errors import BudgetError


class PodPhase(str, Enum):
    """Pod lifecycle phase."""

    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"
    TERMINATING = "Terminating"

    @classmethod
    def parse(cls, value: Optional[str]) -> "PodPhase":
        """Map an API phase string, treating anything unrecognised as Unknown."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


@dataclass
class PodCondition:
    """A typed pod status condition."""

    type: str
    status: str


@dataclass
class OwnerReference:
    """Controller or owner of a pod."""

    kind: str
    name: str


@dataclass
class Pod:
    """A running unit of work, as seen in one snapshot."""

    name: str
    namespace: str
    phase: PodPhase = PodPhase.RUNNING
    labels: Dict[str, str] = field(default_factory=dict)
    owner_references: List[OwnerReference] = field(default_factory=list)
    conditions: List[PodCondition] = field(default_factory=list)

    @property
    def ready(self) -> bool:
        """True when the pod reports a Ready condition with status True."""
        for condition in self.conditions:
            if condition.type == "Ready":
                return condition.status == "True"
        return False

    @property
    def healthy(self) -> bool:
        """Running and ready; the only state that counts toward a budget."""
        return self.phase == PodPhase.RUNNING and self.ready

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "namespace": self.namespace,
            "phase": self.phase.value,
            "ready": self.ready,
            "labels": dict(self.labels),
            "owners": [{"kind": o.kind, "name": o.name} for o in self.owner_references],
        }


_PERCENT_RE = re.compile(r"^(\d+)%$")


@dataclass(frozen=True)
class IntOrPercent:
    """An absolute count or a percentage of matched pods."""

    value: Union[int, str]

    @classmethod
    def parse(cls, raw: Any) -> Optional["IntOrPercent"]:
        """Build from an API int-or-string field. None stays None."""
        if raw is None:
            return None
        if isinstance(raw, IntOrPercent):
            return raw
        return cls(raw)

    @property
    def is_percent(self) -> bool:
        return isinstance(self.value, str)

    def resolve(self, total: int, round_up: bool) -> int:
        """Convert to an absolute count.

        Args:
            total: Number of pods the percentage applies to.
            round_up: Round a percentage up (ceil) instead of down (floor).

        Returns:
            Absolute count.

        Raises:
            BudgetError: If the value is neither a non-negative integer nor a
                percentage between 0% and 100%.
        """
        if isinstance(self.value, bool):
            raise BudgetError(f"invalid int-or-percent value {self.value!r}")
        if isinstance(self.value, int):
            if self.value < 0:
                raise BudgetError(f"negative value {self.value}")
            return self.value

        m = _PERCENT_RE.match(str(self.value).strip())
        if not m:
            raise BudgetError(f"invalid int-or-percent value {self.value!r}")
        percent = int(m.group(1))
        if percent > 100:
            raise BudgetError(f"percentage {self.value!r} exceeds 100%")

        if round_up:
            return -(-percent * total // 100)
        return percent * total // 100

    def __str__(self) -> str:
        return str(self.value)


@dataclass
class DisruptionBudget:
    """A PodDisruptionBudget.

    ``selector`` is a ``kubectl -l`` style string, a structured LabelSelector
    mapping, or None. At most one of ``min_available`` and ``max_unavailable``
    is expected; with neither set the budget imposes no constraint.
    """

    name: str
    namespace: str
    selector: Any = None
    min_available: Optional[IntOrPercent] = None
    max_unavailable: Optional[IntOrPercent] = None

    def __post_init__(self):
        self.min_available = IntOrPercent.parse(self.min_available)
        self.max_unavailable = IntOrPercent.parse(self.max_unavailable)

    def describe_policy(self) -> str:
        if self.min_available is not None:
            return f"minAvailable={self.min_available}"
        if self.max_unavailable is not None:
            return f"maxUnavailable={self.max_unavailable}"
        return "unconstrained"


@dataclass
class BudgetStatus:
    """Derived state of one budget against one snapshot."""

    budget: DisruptionBudget
    matched: int
    current_healthy: int
    desired_healthy: int
    allowed_disruptions: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.budget.name,
            "policy": self.budget.describe_policy(),
            "matched": self.matched,
            "currentHealthy": self.current_healthy,
            "desiredHealthy": self.desired_healthy,
            "allowedDisruptions": self.allowed_disruptions,
        }


class Rule(str, Enum):
    """Which rule produced a verdict."""

    PROTECTION = "protection"
    BUDGET = "budget"
    NONE = "none"


@dataclass
class Verdict:
    """Admit/deny decision for one pod in one cycle."""

    admit: bool
    reason: str
    rule: Rule = Rule.NONE
    budget: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "admit": self.admit,
            "reason": self.reason,
            "rule": self.rule.value,
            "budget": self.budget,
        }
