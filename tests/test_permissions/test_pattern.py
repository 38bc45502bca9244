"""Tests for PatternMatcher, normalize_permission and parse_permission."""
from __future__ import annotations

import pytest

from aumos_gatekeeper.permissions.pattern import (
    ParsedPermission,
    PatternMatcher,
    is_valid_permission,
    normalize_permission,
    parse_permission,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def matcher() -> PatternMatcher:
    return PatternMatcher()


@pytest.fixture()
def exact_matcher() -> PatternMatcher:
    return PatternMatcher(wildcard_support=False)


# ---------------------------------------------------------------------------
# PatternMatcher
# ---------------------------------------------------------------------------


class TestPatternMatcherExact:
    def test_identical_strings_match(self, matcher: PatternMatcher) -> None:
        assert matcher.matches("users.read", "users.read") is True

    def test_different_strings_do_not_match(self, matcher: PatternMatcher) -> None:
        assert matcher.matches("users.read", "users.write") is False

    def test_empty_matches_empty(self, matcher: PatternMatcher) -> None:
        assert matcher.matches("", "") is True

    def test_comparison_is_case_sensitive(self, matcher: PatternMatcher) -> None:
        assert matcher.matches("users.read", "Users.read") is False

    def test_prefix_without_wildcard_does_not_match(self, matcher: PatternMatcher) -> None:
        assert matcher.matches("users.read", "users") is False


class TestPatternMatcherWildcard:
    def test_global_wildcard_matches_anything(self, matcher: PatternMatcher) -> None:
        assert matcher.matches("users.read", "*") is True
        assert matcher.matches("a.b.c.d.e", "*") is True
        assert matcher.matches("single", "*") is True

    def test_trailing_wildcard_matches_one_segment(self, matcher: PatternMatcher) -> None:
        assert matcher.matches("users.read", "users.*") is True

    def test_trailing_wildcard_does_not_absorb_extra_segments(
        self, matcher: PatternMatcher
    ) -> None:
        assert matcher.matches("users.admin.read", "users.*") is False

    def test_middle_wildcard(self, matcher: PatternMatcher) -> None:
        assert matcher.matches("users.john.read", "users.*.read") is True
        assert matcher.matches("users.john.write", "users.*.read") is False

    def test_leading_wildcard(self, matcher: PatternMatcher) -> None:
        assert matcher.matches("billing.read", "*.read") is True
        assert matcher.matches("billing.write", "*.read") is False

    def test_pattern_longer_than_request(self, matcher: PatternMatcher) -> None:
        assert matcher.matches("users", "users.*") is False

    def test_pattern_shorter_than_request(self, matcher: PatternMatcher) -> None:
        assert matcher.matches("a.b.c", "*.b") is False

    def test_wildcard_requires_non_empty_segment(self, matcher: PatternMatcher) -> None:
        assert matcher.matches("users.", "users.*") is False

    def test_multiple_wildcards(self, matcher: PatternMatcher) -> None:
        assert matcher.matches("svc.res.act", "*.*.act") is True
        assert matcher.matches("svc.res.other", "*.*.act") is False

    def test_partial_segment_wildcard_is_literal(self, matcher: PatternMatcher) -> None:
        assert matcher.matches("users.reader", "users.read*") is False
        assert matcher.matches("users.read*", "users.read*") is True

    @pytest.mark.parametrize(
        "requested, pattern, expected",
        [
            ("a.b", "a.*", True),
            ("x.b", "a.*", False),
            ("a.b.c", "a.*.c", True),
            ("a.b.d", "a.*.c", False),
            ("a.b.c", "a.*", False),
        ],
    )
    def test_segment_equivalence(
        self, matcher: PatternMatcher, requested: str, pattern: str, expected: bool
    ) -> None:
        assert matcher.matches(requested, pattern) is expected


class TestPatternMatcherWildcardDisabled:
    def test_exact_still_matches(self, exact_matcher: PatternMatcher) -> None:
        assert exact_matcher.matches("users.read", "users.read") is True

    def test_segment_wildcard_ignored(self, exact_matcher: PatternMatcher) -> None:
        assert exact_matcher.matches("users.read", "users.*") is False

    def test_global_wildcard_ignored(self, exact_matcher: PatternMatcher) -> None:
        assert exact_matcher.matches("users.read", "*") is False

    def test_literal_star_permission_matches_itself(self, exact_matcher: PatternMatcher) -> None:
        assert exact_matcher.matches("*", "*") is True


class TestPatternMatcherSeparator:
    def test_custom_separator(self) -> None:
        matcher = PatternMatcher(separator=":")
        assert matcher.matches("users:read", "users:*") is True
        assert matcher.matches("users:admin:read", "users:*") is False

    def test_empty_separator_rejected(self) -> None:
        with pytest.raises(ValueError, match="separator"):
            PatternMatcher(separator="")


# ---------------------------------------------------------------------------
# normalize_permission
# ---------------------------------------------------------------------------


class TestNormalizePermission:
    def test_collapses_and_lowercases(self) -> None:
        assert normalize_permission("Users..Read") == "users.read"

    def test_strips_leading_and_trailing_separators(self) -> None:
        assert normalize_permission(".users.read.") == "users.read"

    def test_empty_string(self) -> None:
        assert normalize_permission("") == ""

    def test_wildcard_preserved(self) -> None:
        assert normalize_permission("Users.*") == "users.*"

    def test_custom_separator(self) -> None:
        assert normalize_permission("A::B", separator=":") == "a:b"

    @pytest.mark.parametrize(
        "raw",
        ["Users..Read", "...", "A.B.C", "a..b..c..", "*", "", "Mixed.CASE..*"],
    )
    def test_idempotent(self, raw: str) -> None:
        once = normalize_permission(raw)
        assert normalize_permission(once) == once


# ---------------------------------------------------------------------------
# parse_permission
# ---------------------------------------------------------------------------


class TestParsePermission:
    def test_three_segments(self) -> None:
        parsed = parse_permission("billing.invoice.read")
        assert parsed.service == "billing"
        assert parsed.resource == "invoice"
        assert parsed.action == "read"
        assert parsed.components == ("billing", "invoice", "read")

    def test_two_segments(self) -> None:
        parsed = parse_permission("invoice.read")
        assert parsed.service is None
        assert parsed.resource == "invoice"
        assert parsed.action == "read"

    def test_one_segment(self) -> None:
        parsed = parse_permission("read")
        assert parsed.service is None
        assert parsed.resource is None
        assert parsed.action == "read"

    def test_four_segments_keeps_components_only(self) -> None:
        parsed = parse_permission("a.b.c.d")
        assert parsed == ParsedPermission(components=("a", "b", "c", "d"))

    @pytest.mark.parametrize("raw", ["Read", "Invoice..Read", "Billing.Invoice.READ"])
    def test_named_fields_rejoin_to_normalized_form(self, raw: str) -> None:
        normalized = normalize_permission(raw)
        assert parse_permission(normalized).to_permission() == normalized


# ---------------------------------------------------------------------------
# is_valid_permission
# ---------------------------------------------------------------------------


class TestIsValidPermission:
    @pytest.mark.parametrize("value", ["users.read", "users.*", "*", "social-media.post", "a_b.c"])
    def test_valid(self, value: str) -> None:
        assert is_valid_permission(value) is True

    @pytest.mark.parametrize("value", ["", "users read", "users/read", None, 42])
    def test_invalid(self, value: object) -> None:
        assert is_valid_permission(value) is False
