"""Label selector parsing and matching for PodReaper."""

from podreaper.selector.parser import (
    Operator,
    Requirement,
    Selector,
    compile_selector,
    from_label_selector,
    matches,
    parse_selector,
)

__all__ = [
    "Operator",
    "Requirement",
    "Selector",
    "compile_selector",
    "from_label_selector",
    "matches",
    "parse_selector",
]
