"""
Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import unittest
from datetime import datetime, timedelta, timezone

try:
    from ._env import ensure_test_env
except ImportError:
    from tests._env import ensure_test_env

ensure_test_env()

from pydantic import ValidationError

from models.alerting.alerts import Alert
from models.alerting.silences import Silence, SilenceState
from services.alerting.silences_ops import (
    active_silences,
    filter_silences,
    is_silenced,
    silence_states,
    silencing_ids,
)

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class SilencesOpsTests(unittest.TestCase):
    def _silence(self, silence_id="s1", starts=-1, ends=1, matchers=None):
        return Silence(
            id=silence_id,
            matchers=matchers or [{"name": "instance", "value": "sw-1"}],
            startsAt=NOW + timedelta(hours=starts),
            endsAt=NOW + timedelta(hours=ends),
            createdBy="alice",
            comment="maintenance",
        )

    def test_state_follows_time_window(self):
        self.assertEqual(self._silence(starts=1, ends=2).state_at(NOW), SilenceState.PENDING)
        self.assertEqual(self._silence(starts=-1, ends=1).state_at(NOW), SilenceState.ACTIVE)
        self.assertEqual(self._silence(starts=-2, ends=-1).state_at(NOW), SilenceState.EXPIRED)

    def test_end_of_window_is_exclusive(self):
        silence = self._silence(starts=-1, ends=0)
        self.assertEqual(silence.state_at(NOW), SilenceState.EXPIRED)

    def test_naive_timestamps_are_treated_as_utc(self):
        silence = Silence(
            id="naive",
            matchers=[{"name": "instance", "value": "sw-1"}],
            startsAt=datetime(2026, 1, 1, 11, 0),
            endsAt=datetime(2026, 1, 1, 13, 0),
            createdBy="alice",
            comment="naive",
        )
        self.assertEqual(silence.starts_at.tzinfo, timezone.utc)
        self.assertEqual(silence.state_at(NOW), SilenceState.ACTIVE)

    def test_window_must_end_after_start(self):
        with self.assertRaises(ValidationError):
            self._silence(starts=1, ends=1)

    def test_silence_requires_matchers(self):
        with self.assertRaises(ValidationError):
            Silence(
                id="empty",
                matchers=[],
                startsAt=NOW,
                endsAt=NOW + timedelta(hours=1),
                createdBy="alice",
                comment="x",
            )

    def test_only_active_matching_silences_silence_alerts(self):
        silences = [
            self._silence("active"),
            self._silence("pending", starts=1, ends=2),
            self._silence("other", matchers=[{"name": "instance", "value": "sw-2"}]),
        ]
        alert = Alert(labels={"alertname": "HostDown", "instance": "sw-1"})
        self.assertEqual(silencing_ids(alert, silences, NOW), ["active"])
        self.assertTrue(is_silenced(alert, silences, NOW))
        self.assertFalse(is_silenced(Alert(labels={"instance": "sw-3"}), silences, NOW))

    def test_states_and_filters(self):
        silences = [self._silence("a"), self._silence("p", starts=1, ends=2), self._silence("e", starts=-3, ends=-2)]
        self.assertEqual(silence_states(silences, NOW), {"a": "active", "p": "pending", "e": "expired"})
        self.assertEqual([s.id for s in active_silences(silences, NOW)], ["a"])
        self.assertEqual([s.id for s in filter_silences(silences, NOW, "expired")], ["e"])
        self.assertEqual(len(filter_silences(silences, NOW)), 3)


if __name__ == "__main__":
    unittest.main()
