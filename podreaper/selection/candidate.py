"""Candidate selection: filter a namespace down to safe pods and pick one."""

import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from podreaper.safety.engine import can_disrupt
from podreaper.safety.models import DisruptionBudget, Pod, PodPhase, Rule, Verdict
from podreaper.safety.protection import ProtectionPolicy, is_protected
from podreaper.selector import compile_selector


@dataclass
class SelectionResult:
    """Outcome of one selection cycle.

    ``chosen`` is None when no pod survived filtering, which is a normal
    outcome rather than an error.
    """

    chosen: Optional[Pod] = None
    eligible: List[Pod] = field(default_factory=list)
    verdicts: Dict[str, Verdict] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    @property
    def denied(self) -> Dict[str, Verdict]:
        return {name: v for name, v in self.verdicts.items() if not v.admit}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chosen": self.chosen.name if self.chosen else None,
            "eligible": [p.name for p in self.eligible],
            "verdicts": {name: v.to_dict() for name, v in self.verdicts.items()},
            "warnings": list(self.warnings),
        }


class CandidateSelector:
    """Filters pods through protection and budget checks, then picks one.

    The randomness source is injected. It only needs ``randrange(n)``; the
    default draws from the operating system's entropy pool so picks are
    never reproducible across runs.
    """

    def __init__(
        self,
        policy: Optional[ProtectionPolicy] = None,
        rng: Optional[Any] = None,
    ):
        self.policy = policy or ProtectionPolicy()
        self.rng = rng if rng is not None else random.SystemRandom()

    def evaluate(
        self,
        pods: Sequence[Pod],
        selector: Any,
        budgets: Sequence[DisruptionBudget],
    ) -> SelectionResult:
        """Run every filter stage without picking.

        Args:
            pods: Every pod in the namespace.
            selector: Targeting selector (string or compiled Selector).
            budgets: Active budgets in the namespace.

        Returns:
            SelectionResult with eligible pods and per-pod verdicts.

        Raises:
            SelectorParseError: If the targeting selector is malformed.
        """
        target = compile_selector(selector if selector is not None else "")

        running = [p for p in pods if p.phase == PodPhase.RUNNING]
        targeted = [p for p in running if target.matches(p.labels)]

        result = SelectionResult()
        for pod in targeted:
            protected, reason = is_protected(pod, self.policy)
            if protected:
                result.verdicts[pod.name] = Verdict(
                    admit=False, reason=reason, rule=Rule.PROTECTION
                )
                continue

            verdict = can_disrupt(pod, budgets, pods, self.policy)
            result.verdicts[pod.name] = verdict
            for warning in verdict.warnings:
                if warning not in result.warnings:
                    result.warnings.append(warning)
            if verdict.admit:
                result.eligible.append(pod)

        return result

    def select_one(
        self,
        pods: Sequence[Pod],
        selector: Any,
        budgets: Sequence[DisruptionBudget],
    ) -> SelectionResult:
        """Pick one safe pod uniformly at random.

        Raises:
            SelectorParseError: If the targeting selector is malformed.
        """
        result = self.evaluate(pods, selector, budgets)
        if result.eligible:
            result.chosen = result.eligible[self.rng.randrange(len(result.eligible))]
        return result


def select_one(
    pods: Sequence[Pod],
    selector: Any,
    budgets: Sequence[DisruptionBudget],
    policy: Optional[ProtectionPolicy] = None,
    rng: Optional[Any] = None,
) -> SelectionResult:
    """Convenience wrapper around CandidateSelector.select_one."""
    return CandidateSelector(policy=policy, rng=rng).select_one(pods, selector, budgets)
