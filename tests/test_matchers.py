"""
Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import unittest

try:
    from ._env import ensure_test_env
except ImportError:
    from tests._env import ensure_test_env

ensure_test_env()

from pydantic import ValidationError

from models.alerting.matchers import LabelMatcher, matcher_from_pattern, split_alternatives
from services.alerting.matcher_engine import labels_equal, matches


class SplitAlternativesTests(unittest.TestCase):
    def test_plain_value_is_single_alternative(self):
        self.assertEqual(split_alternatives("critical"), ["critical"])

    def test_pipe_separates_alternatives(self):
        self.assertEqual(split_alternatives("critical|warning"), ["critical", "warning"])

    def test_escaped_pipe_and_backslash_are_literal(self):
        self.assertEqual(split_alternatives("a\\|b"), ["a|b"])
        self.assertEqual(split_alternatives("a\\\\|b"), ["a\\", "b"])

    def test_rejects_empty_value_and_empty_alternatives(self):
        for pattern in ("", "a||b", "|a", "a|"):
            with self.subTest(pattern=pattern):
                with self.assertRaises(ValueError):
                    split_alternatives(pattern)

    def test_rejects_unknown_escape_and_trailing_backslash(self):
        with self.assertRaises(ValueError):
            split_alternatives("a\\nb")
        with self.assertRaises(ValueError):
            split_alternatives("abc\\")


class MatcherFromPatternTests(unittest.TestCase):
    def test_single_alternative_is_exact_match(self):
        matcher = matcher_from_pattern("severity", "critical")
        self.assertFalse(matcher.is_regex)
        self.assertTrue(matcher.matches_value("critical"))
        self.assertFalse(matcher.matches_value("critical2"))

    def test_alternation_matches_whole_value_only(self):
        matcher = matcher_from_pattern("severity", "critical|warning")
        self.assertTrue(matcher.is_regex)
        self.assertTrue(matcher.matches_value("warning"))
        self.assertFalse(matcher.matches_value("warnings"))
        self.assertFalse(matcher.matches_value("info"))

    def test_regex_metacharacters_in_alternatives_are_literal(self):
        matcher = matcher_from_pattern("service", "api.v1|db*")
        self.assertTrue(matcher.matches_value("api.v1"))
        self.assertTrue(matcher.matches_value("db*"))
        self.assertFalse(matcher.matches_value("apixv1"))
        self.assertFalse(matcher.matches_value("dbbb"))

    def test_missing_label_never_matches(self):
        self.assertFalse(matcher_from_pattern("team", "ops").matches_value(None))


class LabelMatcherTests(unittest.TestCase):
    def test_regex_matcher_is_anchored(self):
        matcher = LabelMatcher(name="instance", value="sw-[0-9]+", isRegex=True)
        self.assertTrue(matcher.matches_value("sw-12"))
        self.assertFalse(matcher.matches_value("core-sw-12"))

    def test_invalid_regex_is_rejected(self):
        with self.assertRaises(ValidationError):
            LabelMatcher(name="instance", value="sw-[", isRegex=True)

    def test_invalid_label_name_is_rejected(self):
        with self.assertRaises(ValidationError):
            LabelMatcher(name="1bad", value="x")


def test_matches_requires_every_matcher():
    matchers = [matcher_from_pattern("severity", "critical"), matcher_from_pattern("team", "ops|infra")]
    assert matches(matchers, {"severity": "critical", "team": "infra", "extra": "x"}) is True
    assert matches(matchers, {"severity": "critical"}) is False
    assert matches(matchers, {"severity": "warning", "team": "ops"}) is False


def test_empty_matcher_list_matches_everything():
    assert matches([], {}) is True
    assert matches([], {"alertname": "Anything"}) is True


def test_labels_equal_treats_missing_on_both_sides_as_equal():
    assert labels_equal({"instance": "sw-1"}, {"instance": "sw-1"}, ["instance"]) is True
    assert labels_equal({"instance": "sw-1"}, {"instance": "sw-2"}, ["instance"]) is False
    assert labels_equal({}, {}, ["cluster"]) is True
    assert labels_equal({"cluster": "eu"}, {}, ["cluster"]) is False
    assert labels_equal({"a": "1"}, {"a": "2"}, []) is True


if __name__ == "__main__":
    unittest.main()
