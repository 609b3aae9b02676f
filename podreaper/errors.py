"""Exception types raised by PodReaper."""


class PodReaperError(Exception):
    """Base class for all PodReaper errors."""


class BudgetError(PodReaperError):
    """A disruption budget could not be evaluated."""


class SelectorParseError(BudgetError):
    """A label selector is malformed."""

    def __init__(self, selector: str, message: str):
        super().__init__(f"invalid selector {selector!r}: {message}")
        self.selector = selector


class SnapshotError(PodReaperError):
    """Listing pods or budgets from the cluster failed."""


class RemovalError(PodReaperError):
    """Deleting or evicting the chosen pod failed."""
