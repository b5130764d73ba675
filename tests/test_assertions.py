"""Tests for predicates and single-assertion evaluation."""

import pytest

from host_compliance_scanner.core.assertion import MATCHERS, Predicate, ResourceRef, summarize
from host_compliance_scanner.core.errors import PredicateError, PredicateTypeMismatch
from host_compliance_scanner.core.results import Status

from .conftest import check, file_ref

SHADOW = file_ref("/etc/shadow")


@pytest.mark.parametrize("actual,expected,outcome", [
    (0o640, "0640", True),
    (0o640, "0644", False),
    (0o640, 416, True),
    ("Active", "active", True),
    (22, "22", True),
    ("22", 22, True),
    ("ssh", 22, False),
    (True, "true", True),
    (False, "TRUE", False),
    (["wheel"], "wheel", True),
])
def test_cmp(actual, expected, outcome):
    assert MATCHERS[Predicate.CMP](actual, expected) is outcome


def test_cmp_bool_against_number_is_mismatch():
    with pytest.raises(PredicateTypeMismatch):
        MATCHERS[Predicate.CMP](True, 1)


def test_equals_is_type_strict():
    """Test eq refuses to compare a string with an integer."""
    assert MATCHERS[Predicate.EQUALS]("root", "root")
    with pytest.raises(PredicateTypeMismatch):
        MATCHERS[Predicate.EQUALS](0o640, "0640")


def test_equals_lists():
    assert MATCHERS[Predicate.EQUALS](["a", "b"], ("a", "b"))


def test_contains_needs_list():
    assert MATCHERS[Predicate.CONTAINS](["main", "dev"], "dev")
    assert not MATCHERS[Predicate.CONTAINS](["main"], "dev")
    with pytest.raises(PredicateTypeMismatch):
        MATCHERS[Predicate.CONTAINS]("main dev", "dev")


def test_match_is_multiline():
    content = "Protocol 2\nPermitRootLogin no\n"
    assert MATCHERS[Predicate.MATCHES](content, r"^PermitRootLogin\s+no$")
    assert not MATCHERS[Predicate.MATCHES](content, r"^PermitRootLogin\s+yes")


def test_match_invalid_pattern():
    with pytest.raises(PredicateError):
        MATCHERS[Predicate.MATCHES]("text", "(unclosed")


def test_be_empty_and_be_true():
    assert MATCHERS[Predicate.IS_EMPTY]("", None)
    assert MATCHERS[Predicate.IS_EMPTY]([], None)
    assert not MATCHERS[Predicate.IS_EMPTY]("x", None)
    assert MATCHERS[Predicate.IS_TRUE](True, None)
    with pytest.raises(PredicateTypeMismatch):
        MATCHERS[Predicate.IS_TRUE]("yes", None)


def test_summarize_is_bounded():
    assert summarize(None) == "<absent>"
    assert summarize(0o640) == "416"
    assert len(summarize("x" * 1000)) == 200


def test_describe():
    """Test descriptions read like the check they express."""
    assert check(SHADOW, "mode", "cmp", "0640").describe() == "file('/etc/shadow') mode should cmp '0640'"
    assert check(SHADOW, "exists", "exist").describe() == "file('/etc/shadow') should exist"
    assert (check(SHADOW, "writable_by_others", "be_true", negate=True).describe()
            == "file('/etc/shadow') writable_by_others should_not be_true")
    assert str(ResourceRef("os")) == "os()"


def test_evaluate_pass_and_fail(resources):
    """Test an assertion passes or fails with a readable message."""
    shadow = resources.resolve("file", ("/etc/shadow",))

    passed = check(SHADOW, "mode", "cmp", "0640").evaluate(shadow, "0")
    failed = check(SHADOW, "mode", "cmp", "0600").evaluate(shadow, "1")

    assert passed.status == Status.PASSED
    assert passed.path == "0"
    assert passed.message == ""
    assert failed.status == Status.FAILED
    assert failed.actual_value_summary == "416"
    assert failed.message.startswith("expected file('/etc/shadow') mode should cmp '0600'")


def test_negate_inverts_pass_and_fail(resources):
    shadow = resources.resolve("file", ("/etc/shadow",))

    result = check(SHADOW, "writable_by_others", "be_true", negate=True).evaluate(shadow)

    assert result.status == Status.PASSED


def test_negate_never_hides_an_error(resources):
    """Test a probe error stays ERRORED under should_not."""
    missing = resources.resolve("file", ("/etc/missing",))

    result = check(file_ref("/etc/missing"), "mode", "cmp", "0640", negate=True).evaluate(missing)

    assert result.status == Status.ERRORED
    assert "does not exist" in result.message


def test_type_mismatch_is_errored(resources):
    shadow = resources.resolve("file", ("/etc/shadow",))

    result = check(SHADOW, "owner", "include", "root").evaluate(shadow)

    assert result.status == Status.ERRORED
    assert "include" in result.message


def test_should_not_exist_on_missing_path(resources):
    missing = resources.resolve("file", ("/etc/missing",))

    result = check(file_ref("/etc/missing"), "exists", "exist", negate=True).evaluate(missing)

    assert result.status == Status.PASSED
