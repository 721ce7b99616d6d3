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

from config import config
from models.alerting.routes import Route
from services.alerting.errors import NoRouteMatched
from services.alerting.route_resolver import (
    SYSTEM_DEFAULT_ROUTE_ID,
    resolve,
    resolve_or_default,
)


def _route(route_id, match=None, priority=100, receiver="r-ops", enabled=True):
    return Route(
        id=route_id,
        name=route_id,
        match=match or {},
        receiver=receiver,
        priority=priority,
        enabled=enabled,
    )


class ResolveTests(unittest.TestCase):
    def setUp(self):
        self.critical = _route("critical", {"severity": "critical"}, priority=10, receiver="r-pager")
        self.db = _route("db", {"service": "db|cache"}, priority=20, receiver="r-db")
        self.default = _route("fallback", receiver="r-default")
        self.routes = [self.default, self.db, self.critical]

    def test_lowest_priority_match_wins(self):
        route = resolve({"severity": "critical", "service": "db"}, self.routes)
        self.assertEqual(route.id, "critical")

    def test_alternation_route_matches(self):
        self.assertEqual(resolve({"service": "cache"}, self.routes).id, "db")

    def test_falls_back_to_default_route(self):
        self.assertEqual(resolve({"service": "web"}, self.routes).id, "fallback")

    def test_equal_priority_keeps_declaration_order(self):
        first = _route("first", {"team": "ops"}, priority=5)
        second = _route("second", {"team": "ops"}, priority=5)
        self.assertEqual(resolve({"team": "ops"}, [first, second]).id, "first")
        self.assertEqual(resolve({"team": "ops"}, [second, first]).id, "second")

    def test_disabled_routes_are_ignored(self):
        disabled = _route("disabled", {"team": "ops"}, priority=1, enabled=False)
        self.assertEqual(resolve({"team": "ops"}, [disabled, self.default]).id, "fallback")

    def test_disabled_default_route_is_ignored(self):
        disabled_default = _route("off", enabled=False)
        with self.assertRaises(NoRouteMatched):
            resolve({"team": "ops"}, [disabled_default])

    def test_no_match_and_no_default_raises(self):
        with self.assertRaises(NoRouteMatched):
            resolve({"service": "web"}, [self.critical, self.db])

    def test_empty_labels_only_match_default(self):
        self.assertEqual(resolve({}, self.routes).id, "fallback")

    def test_default_route_competes_on_priority(self):
        catch_all = _route("catch-all", priority=1, receiver="r-default")
        specific = _route("specific", {"severity": "critical"}, priority=5)
        self.assertEqual(resolve({"severity": "critical"}, [catch_all, specific]).id, "catch-all")
        self.assertEqual(resolve({"severity": "critical"}, [specific, catch_all]).id, "catch-all")

    def test_default_route_wins_equal_priority_when_declared_first(self):
        catch_all = _route("catch-all", priority=5)
        specific = _route("specific", {"severity": "critical"}, priority=5)
        self.assertEqual(resolve({"severity": "critical"}, [catch_all, specific]).id, "catch-all")
        self.assertEqual(resolve({"severity": "critical"}, [specific, catch_all]).id, "specific")


def test_critical_alert_goes_to_ops_and_others_to_default():
    routes = [
        _route("ops", {"severity": "critical"}, priority=1, receiver="ops"),
        _route("default", priority=999, receiver="default"),
    ]
    assert resolve({"severity": "critical", "instance": "sw-1"}, routes).receiver == "ops"
    assert resolve({"severity": "info"}, routes).receiver == "default"


class ResolveOrDefaultTests(unittest.TestCase):
    def test_system_route_used_when_nothing_matches(self):
        route = resolve_or_default({"service": "web"}, [_route("db", {"service": "db"})])
        self.assertEqual(route.id, SYSTEM_DEFAULT_ROUTE_ID)
        self.assertEqual(route.receiver, config.DEFAULT_RECEIVER)

    def test_matching_route_is_returned_unchanged(self):
        db = _route("db", {"service": "db"})
        self.assertIs(resolve_or_default({"service": "db"}, [db]), db)


if __name__ == "__main__":
    unittest.main()
