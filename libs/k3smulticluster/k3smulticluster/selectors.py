"""
Label selector compilation and matching.

Turns a LabelSelector into a Selector that can be evaluated against a label
set, applying the Kubernetes rules for label keys, values and operators.
"""

import re
from dataclasses import dataclass, field
from typing import FrozenSet, List, Mapping, Optional

from .types import Gateway, LabelSelector, SelectorOperator


EQUALS = "="

_NAME_MAX_LENGTH = 63
_PREFIX_MAX_LENGTH = 253
_NAME_RE = re.compile(r"([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9]")
_DNS_LABEL_RE = re.compile(r"[a-z0-9]([-a-z0-9]*[a-z0-9])?")


class InvalidSelectorError(ValueError):
    """
    A label selector cannot be compiled.

    weight_index and gateway are filled in by the resolver so the error can
    be reported against the policy entry it came from.
    """

    def __init__(self, selector: Optional[LabelSelector], reason: str):
        self.selector = selector
        self.reason = reason
        self.weight_index: Optional[int] = None
        self.gateway: Optional[Gateway] = None
        super().__init__(reason)

    def __str__(self) -> str:
        message = f"invalid label selector '{self.selector}': {self.reason}"
        if self.weight_index is not None:
            message = f"custom weight {self.weight_index}: {message}"
        if self.gateway is not None:
            message = f"gateway {self.gateway.namespace}/{self.gateway.name}: {message}"
        return message


def validate_label_key(key: str) -> Optional[str]:
    """
    Validate a label key (optional DNS subdomain prefix + name).

    Returns:
        Error description, or None if the key is valid
    """
    if not isinstance(key, str):
        return f"key {key!r}: must be a string"
    prefix, sep, name = key.rpartition("/")
    if sep:
        if not prefix:
            return f"key {key!r}: prefix part must be non-empty"
        if len(prefix) > _PREFIX_MAX_LENGTH:
            return f"key {key!r}: prefix part must be no more than {_PREFIX_MAX_LENGTH} characters"
        if not all(_DNS_LABEL_RE.fullmatch(part) for part in prefix.split(".")):
            return f"key {key!r}: prefix part must be a lowercase RFC 1123 subdomain"
    if not name:
        return f"key {key!r}: name part must be non-empty"
    if len(name) > _NAME_MAX_LENGTH:
        return f"key {key!r}: name part must be no more than {_NAME_MAX_LENGTH} characters"
    if not _NAME_RE.fullmatch(name):
        return (
            f"key {key!r}: name part must consist of alphanumeric characters, "
            "'-', '_' or '.', and must start and end with an alphanumeric character"
        )
    return None


def validate_label_value(value: str) -> Optional[str]:
    """Validate a label value. Empty values are allowed."""
    if not isinstance(value, str):
        return f"value {value!r}: must be a string"
    if value == "":
        return None
    if len(value) > _NAME_MAX_LENGTH:
        return f"value {value!r}: must be no more than {_NAME_MAX_LENGTH} characters"
    if not _NAME_RE.fullmatch(value):
        return (
            f"value {value!r}: must consist of alphanumeric characters, "
            "'-', '_' or '.', and must start and end with an alphanumeric character"
        )
    return None


@dataclass(frozen=True)
class Requirement:
    """One compiled requirement: key, operator and allowed values."""
    key: str
    operator: str
    values: FrozenSet[str] = frozenset()

    def matches(self, labels: Mapping[str, str]) -> bool:
        present = self.key in labels
        if self.operator in (EQUALS, SelectorOperator.IN.value):
            return present and labels[self.key] in self.values
        if self.operator == SelectorOperator.NOT_IN.value:
            return not present or labels[self.key] not in self.values
        if self.operator == SelectorOperator.EXISTS.value:
            return present
        if self.operator == SelectorOperator.DOES_NOT_EXIST.value:
            return not present
        return False


@dataclass(frozen=True)
class Selector:
    """
    A compiled label selector.

    All requirements must match. A selector with no requirements matches
    everything unless it was built with match_nothing.
    """
    requirements: List[Requirement] = field(default_factory=list)
    match_nothing: bool = False

    def matches(self, labels: Optional[Mapping[str, str]]) -> bool:
        if self.match_nothing:
            return False
        labels = labels or {}
        return all(r.matches(labels) for r in self.requirements)

    def is_empty(self) -> bool:
        return not self.match_nothing and not self.requirements


def everything() -> Selector:
    return Selector()


def nothing() -> Selector:
    return Selector(match_nothing=True)


def label_selector_as_selector(selector: Optional[LabelSelector]) -> Selector:
    """
    Compile a LabelSelector into a Selector.

    A missing selector matches nothing; an empty one matches everything.

    Args:
        selector: Selector from a policy document

    Returns:
        Compiled Selector

    Raises:
        InvalidSelectorError: If a key, value or operator is invalid
    """
    if selector is None:
        return nothing()
    if not selector.match_labels and not selector.match_expressions:
        return everything()

    requirements: List[Requirement] = []
    for key, value in selector.match_labels.items():
        _check(selector, validate_label_key(key))
        _check(selector, validate_label_value(value))
        requirements.append(Requirement(key=key, operator=EQUALS, values=frozenset([value])))

    valid_operators = {op.value for op in SelectorOperator}
    for expr in selector.match_expressions:
        if expr.operator not in valid_operators:
            raise InvalidSelectorError(
                selector, f"{expr.operator!r} is not a valid label selector operator"
            )
        _check(selector, validate_label_key(expr.key))
        if expr.operator in (SelectorOperator.IN.value, SelectorOperator.NOT_IN.value):
            if not expr.values:
                raise InvalidSelectorError(
                    selector, f"values: must be non-empty for operator {expr.operator}"
                )
        elif expr.values:
            raise InvalidSelectorError(
                selector, f"values: must be empty for operator {expr.operator}"
            )
        for value in expr.values:
            _check(selector, validate_label_value(value))
        requirements.append(
            Requirement(key=expr.key, operator=expr.operator, values=frozenset(expr.values))
        )

    # Kubernetes keeps requirements sorted by key
    requirements.sort(key=lambda r: r.key)
    return Selector(requirements=requirements)


def _check(selector: LabelSelector, error: Optional[str]) -> None:
    if error:
        raise InvalidSelectorError(selector, error)
