"""PodDisruptionBudget status computation."""

from typing import List, Sequence, Tuple

from podreaper.errors import BudgetError
from podreaper.safety.models import BudgetStatus, DisruptionBudget, Pod
from podreaper.selector import compile_selector


def evaluate_budget(budget: DisruptionBudget, pods: Sequence[Pod]) -> BudgetStatus:
    """Compute how many more disruptions a budget tolerates.

    Only pods matched by the budget's selector count. A pod is healthy when
    it is Running and Ready; every other matched pod is matched-but-unhealthy.

    Percentages resolve against the matched count, rounding up for
    minAvailable and down for maxUnavailable so a percentage never permits
    more disruption than it states.

    Args:
        budget: The budget to evaluate.
        pods: Every pod in the budget's namespace.

    Returns:
        BudgetStatus with allowed_disruptions clamped to zero or more.

    Raises:
        BudgetError: If the selector does not compile (SelectorParseError)
            or a policy value is malformed.
    """
    selector = compile_selector(budget.selector)

    matched = [p for p in pods if selector.matches(p.labels)]
    total = len(matched)
    healthy = sum(1 for p in matched if p.healthy)

    if budget.min_available is not None:
        desired = budget.min_available.resolve(total, round_up=True)
        allowed = healthy - desired
    elif budget.max_unavailable is not None:
        allowed = budget.max_unavailable.resolve(total, round_up=False)
        desired = healthy - allowed
    else:
        desired = total
        allowed = total

    return BudgetStatus(
        budget=budget,
        matched=total,
        current_healthy=healthy,
        desired_healthy=desired,
        allowed_disruptions=max(0, allowed),
    )


def evaluate_budgets(
    budgets: Sequence[DisruptionBudget], pods: Sequence[Pod]
) -> Tuple[List[BudgetStatus], List[Tuple[DisruptionBudget, BudgetError]]]:
    """Evaluate every budget, collecting the ones that cannot be evaluated.

    Returns:
        (statuses, skipped) where skipped pairs each failed budget with
        its error.
    """
    statuses: List[BudgetStatus] = []
    skipped: List[Tuple[DisruptionBudget, BudgetError]] = []
    for budget in budgets:
        try:
            statuses.append(evaluate_budget(budget, pods))
        except BudgetError as e:
            skipped.append((budget, e))
    return statuses, skipped
