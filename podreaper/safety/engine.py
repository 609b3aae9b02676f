"""Safety engine: combines protection rules and budgets into one verdict."""

from typing import List, Optional, Sequence, Tuple

from podreaper.errors import BudgetError
from podreaper.safety.budget import evaluate_budget
from podreaper.safety.models import DisruptionBudget, Pod, Rule, Verdict
from podreaper.safety.protection import ProtectionPolicy, is_protected
from podreaper.selector import compile_selector

REASON_UNPROTECTED = "unprotected by any budget"
REASON_ALL_PERMIT = "all applicable budgets permit disruption"
REASON_NONE_EVALUATED = "no applicable budget could be evaluated"


def applicable_budgets(
    pod: Pod, budgets: Sequence[DisruptionBudget]
) -> Tuple[List[DisruptionBudget], List[str]]:
    """Find the budgets whose selector matches a pod.

    Budgets with a selector that does not compile are skipped.

    Returns:
        (budgets, warnings), budgets in input order.
    """
    matched: List[DisruptionBudget] = []
    warnings: List[str] = []
    for budget in budgets:
        try:
            selector = compile_selector(budget.selector)
        except BudgetError as e:
            warnings.append(f"skipping budget {budget.name}: {e}")
            continue
        if selector.matches(pod.labels):
            matched.append(budget)
    return matched, warnings


def can_disrupt(
    pod: Pod,
    budgets: Sequence[DisruptionBudget],
    pods: Sequence[Pod],
    policy: Optional[ProtectionPolicy] = None,
) -> Verdict:
    """Decide whether a pod can be removed without breaking any budget.

    Applicable budgets are evaluated in input order and the first one with
    no remaining tolerance denies; later budgets are not consulted.

    Args:
        pod: Candidate pod.
        budgets: Active budgets in the pod's namespace.
        pods: Every pod in the namespace, for budget math.
        policy: Protection sets; defaults to ProtectionPolicy().

    Returns:
        Verdict with a reason naming the rule or budget responsible.
    """
    protected, reason = is_protected(pod, policy)
    if protected:
        return Verdict(admit=False, reason=reason, rule=Rule.PROTECTION)

    applicable, warnings = applicable_budgets(pod, budgets)
    if not applicable:
        return Verdict(admit=True, reason=REASON_UNPROTECTED, warnings=warnings)

    evaluated = 0
    for budget in applicable:
        try:
            status = evaluate_budget(budget, pods)
        except BudgetError as e:
            warnings.append(f"skipping budget {budget.name}: {e}")
            continue
        evaluated += 1

        if status.allowed_disruptions <= 0:
            return Verdict(
                admit=False,
                reason=(
                    f"budget {budget.name} would be violated "
                    f"(currentHealthy={status.current_healthy}, "
                    f"desiredHealthy={status.desired_healthy}, "
                    f"allowedDisruptions={status.allowed_disruptions})"
                ),
                rule=Rule.BUDGET,
                budget=budget.name,
                warnings=warnings,
            )

    if not evaluated:
        return Verdict(admit=True, reason=REASON_NONE_EVALUATED, warnings=warnings)
    return Verdict(admit=True, reason=REASON_ALL_PERMIT, rule=Rule.BUDGET, warnings=warnings)
