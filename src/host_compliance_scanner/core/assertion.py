"""
Assertions: one expected-vs-actual check against one resource property
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Tuple

from .errors import PredicateError, PredicateTypeMismatch
from .resource import PropertyValue, Resource
from .results import AssertionResult, Status

_SUMMARY_LIMIT = 200
_OCTAL_LITERAL = re.compile(r"^0[0-7]+$")
_DECIMAL_LITERAL = re.compile(r"^-?\d+$")


class Predicate(str, Enum):
    EQUALS = "eq"
    CMP = "cmp"
    CONTAINS = "include"
    MATCHES = "match"
    IS_EMPTY = "be_empty"
    IS_TRUE = "be_true"
    EXISTS = "exist"


# Predicates that take no expected literal
UNARY_PREDICATES = (Predicate.IS_EMPTY, Predicate.IS_TRUE, Predicate.EXISTS)


@dataclass(frozen=True)
class ResourceRef:
    """Reference to a resource by kind and constructor arguments"""
    kind: str
    args: Tuple[Any, ...] = ()

    def __str__(self) -> str:
        return f"{self.kind}({', '.join(repr(arg) for arg in self.args)})"


def type_name(value: Any) -> str:
    if value is None:
        return "absent"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "list"
    return type(value).__name__


def summarize(value: PropertyValue) -> str:
    """Deterministic, bounded rendering of a property value"""
    if value is None:
        return "<absent>"
    text = repr(list(value)) if isinstance(value, tuple) else repr(value)
    if len(text) > _SUMMARY_LIMIT:
        text = text[:_SUMMARY_LIMIT - 3] + "..."
    return text


def _string_form(value: PropertyValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return "\n".join(str(item) for item in value)
    return str(value)


def _mismatch(actual: Any, expected: Any, predicate: Predicate) -> PredicateTypeMismatch:
    return PredicateTypeMismatch(
        f"'{predicate.value}' cannot compare {type_name(actual)} value "
        f"with {type_name(expected)} {expected!r}"
    )


def _match_equals(actual: PropertyValue, expected: Any) -> bool:
    if actual is None:
        return False
    if type_name(actual) != type_name(expected):
        raise _mismatch(actual, expected, Predicate.EQUALS)
    if isinstance(actual, (list, tuple)):
        return list(actual) == list(expected)
    return actual == expected


def _loose_int(value: Any) -> Any:
    """Integer reading of a literal for cmp; None if it has none"""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if _OCTAL_LITERAL.match(text):
            return int(text, 8)
        if _DECIMAL_LITERAL.match(text):
            return int(text)
    return None


def _loose_bool(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    return None


def _match_cmp(actual: PropertyValue, expected: Any) -> bool:
    """Loose comparison: octal/decimal strings vs integers, case-insensitive strings"""
    if actual is None:
        return False

    if isinstance(actual, bool) or isinstance(expected, bool):
        actual_bool, expected_bool = _loose_bool(actual), _loose_bool(expected)
        if actual_bool is None or expected_bool is None:
            raise _mismatch(actual, expected, Predicate.CMP)
        return actual_bool == expected_bool

    if isinstance(actual, (list, tuple)):
        items = [str(item) for item in actual]
        if isinstance(expected, (list, tuple)):
            return items == [str(item) for item in expected]
        return len(items) == 1 and _match_cmp(items[0], expected)

    if isinstance(actual, int) or isinstance(expected, int):
        actual_int, expected_int = _loose_int(actual), _loose_int(expected)
        if actual_int is None or expected_int is None:
            if isinstance(actual, str) or isinstance(expected, str):
                return False
            raise _mismatch(actual, expected, Predicate.CMP)
        return actual_int == expected_int

    if isinstance(expected, str):
        return actual.strip().lower() == expected.strip().lower()

    raise _mismatch(actual, expected, Predicate.CMP)


def _match_contains(actual: PropertyValue, expected: Any) -> bool:
    if actual is None:
        return False
    if not isinstance(actual, (list, tuple)):
        raise PredicateTypeMismatch(
            f"'include' needs a list property, got {type_name(actual)} value"
        )
    if not isinstance(expected, str):
        raise _mismatch(actual, expected, Predicate.CONTAINS)
    return expected in actual


def _match_regex(actual: PropertyValue, expected: Any) -> bool:
    if not isinstance(expected, str):
        raise PredicateTypeMismatch(f"'match' needs a pattern string, got {type_name(expected)}")
    try:
        pattern = re.compile(expected, re.MULTILINE)
    except re.error as e:
        raise PredicateError(f"invalid pattern {expected!r}: {e}")
    if actual is None:
        return False
    return pattern.search(_string_form(actual)) is not None


def _match_empty(actual: PropertyValue, expected: Any) -> bool:
    if actual is None:
        return True
    if not isinstance(actual, (str, list, tuple)):
        raise PredicateTypeMismatch(f"'be_empty' needs a string or list, got {type_name(actual)} value")
    return len(actual) == 0


def _match_true(actual: PropertyValue, expected: Any) -> bool:
    if actual is None:
        return False
    if not isinstance(actual, bool):
        raise PredicateTypeMismatch(f"'be_true' needs a boolean property, got {type_name(actual)} value")
    return actual


def _match_exists(actual: PropertyValue, expected: Any) -> bool:
    if isinstance(actual, bool):
        return actual
    return actual is not None


MATCHERS: Dict[Predicate, Callable[[PropertyValue, Any], bool]] = {
    Predicate.EQUALS: _match_equals,
    Predicate.CMP: _match_cmp,
    Predicate.CONTAINS: _match_contains,
    Predicate.MATCHES: _match_regex,
    Predicate.IS_EMPTY: _match_empty,
    Predicate.IS_TRUE: _match_true,
    Predicate.EXISTS: _match_exists,
}


@dataclass(frozen=True)
class Assertion:
    """Check one property of a resource against a predicate.

    ``negate`` inverts a pass/fail outcome; it never turns an error into a
    pass. A probe error on the property always yields ``ERRORED``.
    """
    resource: ResourceRef
    property: str
    predicate: Predicate
    expected: Any = None
    negate: bool = False

    def describe(self) -> str:
        verb = "should_not" if self.negate else "should"
        subject = str(self.resource)
        if not (self.predicate == Predicate.EXISTS and self.property == "exists"):
            subject = f"{subject} {self.property}"
        text = f"{subject} {verb} {self.predicate.value}"
        if self.predicate not in UNARY_PREDICATES:
            text = f"{text} {self.expected!r}"
        return text

    def evaluate(self, resource: Resource, path: str = "") -> AssertionResult:
        """Evaluate against a resolved resource.

        Raises:
            TransportUnavailable: propagated from the resource probe.
        """
        reading = resource.read(self.property)
        summary = summarize(reading.value)

        if reading.error is not None:
            return self._result(path, Status.ERRORED, summary, reading.error)

        try:
            matched = MATCHERS[self.predicate](reading.value, self.expected)
        except PredicateError as e:
            return self._result(path, Status.ERRORED, summary, str(e))

        if self.negate:
            matched = not matched
        if matched:
            return self._result(path, Status.PASSED, summary, "")
        return self._result(path, Status.FAILED, summary, f"expected {self.describe()}, got {summary}")

    def _result(self, path: str, status: Status, summary: str, message: str) -> AssertionResult:
        return AssertionResult(
            path=path,
            status=status,
            description=self.describe(),
            actual_value_summary=summary,
            message=message,
        )
