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

from models.alerting.sync import SyncTargetCreate, SyncTargetUpdate, TargetStatus
from services.alerting.errors import TargetBusy, TargetNotFound
from services.sync.target_registry import InvalidTransition, TargetRegistry


class TargetRegistryTests(unittest.TestCase):
    def setUp(self):
        self.registry = TargetRegistry()
        self.target = self.registry.register(
            SyncTargetCreate(name="am-1", type="alert-dispatcher", endpoint="http://am-1.example.com:9093/")
        )

    def test_register_starts_disconnected_with_normalized_endpoint(self):
        self.assertEqual(self.target.status, TargetStatus.DISCONNECTED.value)
        self.assertEqual(self.target.endpoint, "http://am-1.example.com:9093")
        self.assertEqual(self.registry.get(self.target.id), self.target)

    def test_register_rejects_duplicate_names_and_bad_input(self):
        with self.assertRaises(ValueError):
            self.registry.register({"name": "am-1", "type": "other", "endpoint": "http://x.example.com"})
        with self.assertRaises(ValidationError):
            SyncTargetCreate(name="bad", type="other", endpoint="not a url")
        with self.assertRaises(ValidationError):
            SyncTargetCreate(name="bad", type="prometheus", endpoint="http://x.example.com")

    def test_bootstrap_skips_invalid_entries(self):
        registered = self.registry.bootstrap(
            [
                {"name": "mimir", "type": "metrics-engine", "endpoint": "http://mimir.example.com"},
                {"name": "broken", "type": "other", "endpoint": "nope"},
                {"name": "am-1", "type": "other", "endpoint": "http://dup.example.com"},
            ]
        )
        self.assertEqual([target.name for target in registered], ["mimir"])
        self.assertEqual(len(self.registry.list()), 2)

    def test_state_machine(self):
        target_id = self.target.id
        self.registry.transition(target_id, TargetStatus.SYNCING)
        with self.assertRaises(InvalidTransition):
            self.registry.transition(target_id, TargetStatus.DISCONNECTED)
        self.registry.transition(target_id, TargetStatus.ERROR, error="boom")
        connected = self.registry.transition(target_id, TargetStatus.CONNECTED, error=None, config_hash="abc")
        self.assertEqual(connected.status, TargetStatus.CONNECTED.value)
        self.assertIsNone(connected.error)
        self.assertEqual(self.registry.list(status=TargetStatus.CONNECTED), [connected])

    def test_endpoint_change_resets_connection_state(self):
        self.registry.transition(self.target.id, TargetStatus.CONNECTED, config_hash="abc", backend_version="0.27.0")
        updated = self.registry.update(self.target.id, SyncTargetUpdate(endpoint="http://am-2.example.com"))
        self.assertEqual(updated.status, TargetStatus.DISCONNECTED.value)
        self.assertIsNone(updated.config_hash)
        self.assertIsNone(updated.backend_version)

    def test_rename_keeps_connection_state(self):
        self.registry.transition(self.target.id, TargetStatus.CONNECTED, config_hash="abc")
        updated = self.registry.update(self.target.id, SyncTargetUpdate(name="am-primary"))
        self.assertEqual(updated.name, "am-primary")
        self.assertEqual(updated.config_hash, "abc")
        self.assertEqual(updated.status, TargetStatus.CONNECTED.value)

    def test_syncing_target_cannot_be_changed_or_removed(self):
        self.registry.transition(self.target.id, TargetStatus.SYNCING)
        with self.assertRaises(TargetBusy):
            self.registry.update(self.target.id, SyncTargetUpdate(name="other"))
        with self.assertRaises(TargetBusy):
            self.registry.remove(self.target.id)

    def test_enable_filter_and_remove(self):
        self.registry.set_enabled(self.target.id, False)
        self.assertEqual(self.registry.list(enabled_only=True), [])
        self.registry.remove(self.target.id)
        with self.assertRaises(TargetNotFound):
            self.registry.get(self.target.id)

    def test_update_rejects_unknown_fields(self):
        with self.assertRaises(ValidationError):
            SyncTargetUpdate(status="connected")


if __name__ == "__main__":
    unittest.main()
