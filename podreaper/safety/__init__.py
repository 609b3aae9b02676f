"""Disruption safety evaluation: protection rules, budget math and verdicts."""

from podreaper.safety.models import (
    BudgetStatus,
    DisruptionBudget,
    IntOrPercent,
    OwnerReference,
    Pod,
    PodCondition,
    PodPhase,
    Rule,
    Verdict,
)
from podreaper.safety.protection import ProtectionPolicy, is_protected
from podreaper.safety.budget import evaluate_budget, evaluate_budgets
from podreaper.safety.engine import can_disrupt

__all__ = [
    "BudgetStatus",
    "DisruptionBudget",
    "IntOrPercent",
    "OwnerReference",
    "Pod",
    "PodCondition",
    "PodPhase",
    "ProtectionPolicy",
    "Rule",
    "Verdict",
    "can_disrupt",
    "evaluate_budget",
    "evaluate_budgets",
    "is_protected",
]
