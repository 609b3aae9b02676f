"""Label selector parsing and matching.

Supports the two forms Kubernetes uses:

- the string form accepted by ``kubectl -l`` (``app=web,tier notin (db),!canary``)
- the structured ``LabelSelector`` form found on PodDisruptionBudgets
  (``matchLabels`` plus ``matchExpressions``)

Both compile to a :class:`Selector`, a conjunction of :class:`Requirement` terms.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from podreaper.errors import SelectorParseError


class Operator(str, Enum):
    """Requirement operator."""

    EQUALS = "="
    NOT_EQUALS = "!="
    IN = "in"
    NOT_IN = "notin"
    EXISTS = "exists"
    DOES_NOT_EXIST = "!"


# Operators of the structured LabelSelector form
EXPRESSION_OPERATORS = {
    "In": Operator.IN,
    "NotIn": Operator.NOT_IN,
    "Exists": Operator.EXISTS,
    "DoesNotExist": Operator.DOES_NOT_EXIST,
}
_STRUCTURED_KEYS = ("matchLabels", "matchExpressions")

_NAME_RE = re.compile(r"^([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9]$")
_DNS_SUBDOMAIN_RE = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$")

_TOKEN = r"[A-Za-z0-9./_-]+"
_NOT_EXISTS_RE = re.compile(rf"^!\s*({_TOKEN})$")
_SET_RE = re.compile(rf"^({_TOKEN})\s+(in|notin)\s*\((.*)\)$")
_EQUALITY_RE = re.compile(rf"^({_TOKEN})\s*(==|!=|=)\s*([A-Za-z0-9._-]*)$")
_EXISTS_RE = re.compile(rf"^({_TOKEN})$")


@dataclass(frozen=True)
class Requirement:
    """A single selector term."""

    key: str
    operator: Operator
    values: Tuple[str, ...] = ()

    def matches(self, labels: Mapping[str, str]) -> bool:
        """Check whether a label set satisfies this term."""
        present = self.key in labels
        if self.operator == Operator.EXISTS:
            return present
        if self.operator == Operator.DOES_NOT_EXIST:
            return not present
        if self.operator == Operator.EQUALS:
            return present and labels[self.key] == self.values[0]
        if self.operator == Operator.NOT_EQUALS:
            return not present or labels[self.key] != self.values[0]
        if self.operator == Operator.IN:
            return present and labels[self.key] in self.values
        # NOT_IN: an absent key is never in the excluded set
        return not present or labels[self.key] not in self.values

    def __str__(self) -> str:
        if self.operator == Operator.EXISTS:
            return self.key
        if self.operator == Operator.DOES_NOT_EXIST:
            return f"!{self.key}"
        if self.operator in (Operator.EQUALS, Operator.NOT_EQUALS):
            return f"{self.key}{self.operator.value}{self.values[0]}"
        return f"{self.key} {self.operator.value} ({','.join(self.values)})"


@dataclass(frozen=True)
class Selector:
    """A conjunction of requirements.

    An empty selector matches every label set. ``match_nothing`` marks the
    selector compiled from a missing (``None``) LabelSelector.
    """

    requirements: Tuple[Requirement, ...] = ()
    match_nothing: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.requirements and not self.match_nothing

    def matches(self, labels: Optional[Mapping[str, str]]) -> bool:
        if self.match_nothing:
            return False
        labels = labels or {}
        return all(req.matches(labels) for req in self.requirements)

    def __str__(self) -> str:
        if self.match_nothing:
            return "<none>"
        return ",".join(str(req) for req in self.requirements)


def parse_selector(text: str) -> Selector:
    """Parse a selector in the ``kubectl -l`` string syntax.

    Args:
        text: Selector string. Empty or whitespace matches everything.

    Returns:
        Compiled Selector.

    Raises:
        SelectorParseError: If the string is malformed.
    """
    if text is None or not text.strip():
        return Selector()

    requirements = []
    for term in _split_terms(text):
        requirements.append(_parse_term(text, term.strip()))
    return Selector(requirements=tuple(requirements))


def from_label_selector(spec: Optional[Mapping[str, Any]]) -> Selector:
    """Compile a structured LabelSelector mapping.

    Args:
        spec: Mapping with optional ``matchLabels`` and ``matchExpressions``,
            or None.

    Returns:
        Compiled Selector. None compiles to a selector matching nothing; an
        empty mapping matches everything.

    Raises:
        SelectorParseError: If the mapping has fields other than
            matchLabels and matchExpressions, either field has the wrong
            shape, or a key, value or operator is invalid.
    """
    if spec is None:
        return Selector(match_nothing=True)
    if not isinstance(spec, Mapping):
        raise SelectorParseError(repr(spec), "label selector must be a mapping")

    source = repr(dict(spec))
    unknown = sorted(str(k) for k in spec if k not in _STRUCTURED_KEYS)
    if unknown:
        raise SelectorParseError(
            source, f"unknown field(s) {', '.join(unknown)}; expected matchLabels or matchExpressions"
        )

    match_labels = spec.get("matchLabels") or {}
    if not isinstance(match_labels, Mapping):
        raise SelectorParseError(source, "matchLabels must be a mapping")
    match_expressions = spec.get("matchExpressions") or []
    if isinstance(match_expressions, (str, Mapping)) or not isinstance(match_expressions, Sequence):
        raise SelectorParseError(source, "matchExpressions must be a list")

    requirements: List[Requirement] = []

    for key, value in match_labels.items():
        _validate_key(source, key)
        _validate_value(source, value)
    for key, value in sorted(match_labels.items()):
        requirements.append(Requirement(key, Operator.EQUALS, (value,)))

    for expr in match_expressions:
        if not isinstance(expr, Mapping):
            raise SelectorParseError(source, f"matchExpressions entry {expr!r} must be a mapping")
        key = expr.get("key")
        op_name = expr.get("operator")
        values = expr.get("values") or []
        if isinstance(values, (str, Mapping)) or not isinstance(values, Sequence):
            raise SelectorParseError(source, f"values for key {key!r} must be a list")
        values = list(values)

        _validate_key(source, key)
        if not isinstance(op_name, str) or op_name not in EXPRESSION_OPERATORS:
            raise SelectorParseError(source, f"unknown operator {op_name!r} for key {key!r}")
        operator = EXPRESSION_OPERATORS[op_name]

        if operator in (Operator.IN, Operator.NOT_IN) and not values:
            raise SelectorParseError(source, f"operator {op_name} on key {key!r} needs values")
        if operator in (Operator.EXISTS, Operator.DOES_NOT_EXIST) and values:
            raise SelectorParseError(source, f"operator {op_name} on key {key!r} takes no values")
        for value in values:
            _validate_value(source, value)

        requirements.append(Requirement(key, operator, tuple(sorted(set(values)))))

    return Selector(requirements=tuple(requirements))


def compile_selector(selector: Any) -> Selector:
    """Compile any supported selector form into a Selector."""
    if isinstance(selector, Selector):
        return selector
    if selector is None or isinstance(selector, Mapping):
        return from_label_selector(selector)
    if isinstance(selector, str):
        return parse_selector(selector)
    raise SelectorParseError(repr(selector), f"unsupported selector type {type(selector).__name__}")


def matches(selector: Any, labels: Optional[Dict[str, str]]) -> bool:
    """Check whether a label set satisfies a selector.

    Raises:
        SelectorParseError: If the selector does not compile.
    """
    return compile_selector(selector).matches(labels)


def _split_terms(text: str) -> List[str]:
    """Split on commas that are not inside a value set."""
    terms = []
    depth = 0
    current = []
    for char in text:
        if char == "(":
            depth += 1
            if depth > 1:
                raise SelectorParseError(text, "nested parentheses")
        elif char == ")":
            depth -= 1
            if depth < 0:
                raise SelectorParseError(text, "unbalanced parentheses")
        if char == "," and depth == 0:
            terms.append("".join(current))
            current = []
        else:
            current.append(char)
    if depth != 0:
        raise SelectorParseError(text, "unbalanced parentheses")
    terms.append("".join(current))
    return terms


def _parse_term(text: str, term: str) -> Requirement:
    if not term:
        raise SelectorParseError(text, "empty requirement")

    m = _NOT_EXISTS_RE.match(term)
    if m:
        key = m.group(1)
        _validate_key(text, key)
        return Requirement(key, Operator.DOES_NOT_EXIST)

    m = _SET_RE.match(term)
    if m:
        key, op, raw_values = m.groups()
        _validate_key(text, key)
        values = [v.strip() for v in raw_values.split(",")]
        if values == [""]:
            raise SelectorParseError(text, f"'{op}' on key {key!r} needs at least one value")
        for value in values:
            _validate_value(text, value)
        operator = Operator.IN if op == "in" else Operator.NOT_IN
        return Requirement(key, operator, tuple(sorted(set(values))))

    m = _EQUALITY_RE.match(term)
    if m:
        key, op, value = m.groups()
        _validate_key(text, key)
        _validate_value(text, value)
        operator = Operator.NOT_EQUALS if op == "!=" else Operator.EQUALS
        return Requirement(key, operator, (value,))

    m = _EXISTS_RE.match(term)
    if m:
        key = m.group(1)
        _validate_key(text, key)
        return Requirement(key, Operator.EXISTS)

    raise SelectorParseError(text, f"cannot parse requirement {term!r}")


def _validate_key(source: str, key: Any) -> None:
    """Validate a Kubernetes qualified label key."""
    if not isinstance(key, str) or not key:
        raise SelectorParseError(source, f"invalid label key {key!r}")

    name = key
    if "/" in key:
        prefix, name = key.split("/", 1)
        if not prefix or len(prefix) > 253 or not _DNS_SUBDOMAIN_RE.match(prefix):
            raise SelectorParseError(source, f"invalid prefix in label key {key!r}")
    if len(name) > 63 or not _NAME_RE.match(name):
        raise SelectorParseError(source, f"invalid label key {key!r}")


def _validate_value(source: str, value: Any) -> None:
    """Validate a Kubernetes label value (may be empty)."""
    if not isinstance(value, str):
        raise SelectorParseError(source, f"invalid label value {value!r}")
    if value and (len(value) > 63 or not _NAME_RE.match(value)):
        raise SelectorParseError(source, f"invalid label value {value!r}")
