"""Assertion helper library and descriptor evaluation."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

IS_EQUAL = "isEqual"
NOT_NULL = "notNull"
IS_TRUE = "isTrue"
IS_FALSE = "isFalse"

_UNSET = object()


@dataclass(frozen=True)
class AssertionDescriptor:
    type: str
    actual: Any = None
    expected: Any = _UNSET
    message: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AssertionDescriptor":
        return cls(
            type=str(data.get("type", "")),
            actual=data.get("actual"),
            expected=data.get("expected", _UNSET),
            message=data.get("message"),
        )


def is_equal(expected: Any, actual: Any, message: Optional[str] = None) -> AssertionDescriptor:
    return AssertionDescriptor(type=IS_EQUAL, expected=expected, actual=actual, message=message)


def not_null(actual: Any, message: Optional[str] = None) -> AssertionDescriptor:
    return AssertionDescriptor(type=NOT_NULL, actual=actual, message=message)


def is_true(actual: Any, message: Optional[str] = None) -> AssertionDescriptor:
    return AssertionDescriptor(type=IS_TRUE, actual=actual, message=message)


def is_false(actual: Any, message: Optional[str] = None) -> AssertionDescriptor:
    return AssertionDescriptor(type=IS_FALSE, actual=actual, message=message)


class AssertionHelpers:
    """Constructors handed to check functions as their second argument."""

    is_equal = staticmethod(is_equal)
    not_null = staticmethod(not_null)
    is_true = staticmethod(is_true)
    is_false = staticmethod(is_false)


DescriptorLike = Union[AssertionDescriptor, Mapping[str, Any]]
CheckFunction = Callable[[Mapping[str, Any], AssertionHelpers], Sequence[DescriptorLike]]


def strictly_equal(expected: Any, actual: Any) -> bool:
    """Equality that does not treat ``True`` as ``1`` or ``False`` as ``0``."""

    if isinstance(expected, bool) or isinstance(actual, bool):
        return type(expected) is type(actual) and expected == actual
    if isinstance(expected, (list, tuple)) and isinstance(actual, (list, tuple)):
        return len(expected) == len(actual) and all(strictly_equal(a, b) for a, b in zip(expected, actual))
    if isinstance(expected, Mapping) and isinstance(actual, Mapping):
        if set(expected) != set(actual):
            return False
        return all(strictly_equal(expected[key], actual[key]) for key in expected)
    return expected == actual


def _check_is_equal(descriptor: AssertionDescriptor) -> Optional[str]:
    expected = None if descriptor.expected is _UNSET else descriptor.expected
    if strictly_equal(expected, descriptor.actual):
        return None
    label = descriptor.message or "Values are not equal"
    return f"{label}: expected {expected!r}, got {descriptor.actual!r}"


def _check_not_null(descriptor: AssertionDescriptor) -> Optional[str]:
    if descriptor.actual is not None:
        return None
    label = descriptor.message or "Value is null"
    return f"{label}: expected a value, got None"


def _check_is_true(descriptor: AssertionDescriptor) -> Optional[str]:
    if descriptor.actual is True:
        return None
    label = descriptor.message or "Value is not true"
    return f"{label}: expected True, got {descriptor.actual!r}"


def _check_is_false(descriptor: AssertionDescriptor) -> Optional[str]:
    if descriptor.actual is False:
        return None
    label = descriptor.message or "Value is not false"
    return f"{label}: expected False, got {descriptor.actual!r}"


_CHECKS: Dict[str, Callable[[AssertionDescriptor], Optional[str]]] = {
    IS_EQUAL: _check_is_equal,
    NOT_NULL: _check_not_null,
    IS_TRUE: _check_is_true,
    IS_FALSE: _check_is_false,
}


def evaluate(descriptor: DescriptorLike) -> Optional[str]:
    """Return a failure message for ``descriptor``, or ``None`` when it holds."""

    if isinstance(descriptor, Mapping):
        descriptor = AssertionDescriptor.from_mapping(descriptor)
    if not isinstance(descriptor, AssertionDescriptor):
        return f"Invalid assertion descriptor: {descriptor!r}"
    check = _CHECKS.get(descriptor.type)
    if check is None:
        return f"Unknown assertion type: {descriptor.type}"
    return check(descriptor)


def collect_failures(descriptors: Iterable[DescriptorLike]) -> List[str]:
    failures: List[str] = []
    for descriptor in descriptors:
        failure = evaluate(descriptor)
        if failure is not None:
            failures.append(failure)
    return failures
