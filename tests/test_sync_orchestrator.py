"""
Tests for the sync orchestrator: fan-out to targets, retry and timeout handling,
hash-based skipping, cancellation and sync history.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import asyncio

import pytest

from tests._env import ensure_test_env

ensure_test_env()

from models.alerting.sync import SyncStatus, SyncTrigger, TargetOutcome, TargetStatus
from services.alerting.config_compiler import compile_model
from services.alerting.errors import TargetError, TargetNotFound, VersionNotFound
from services.alerting.rule_model import RuleModel
from services.alerting.version_store import VersionStore
from services.sync.orchestrator import CANCELLED_MESSAGE, SyncOrchestrator, aggregate_status
from services.sync.target_registry import TargetRegistry


class FakeAdapter:
    def __init__(self, target, backend):
        self.target = target
        self.backend = backend

    async def probe(self):
        behaviour = self.backend.probes.get(self.target.name, "ok")
        if behaviour == "fail":
            raise TargetError("connection refused", transient=True)
        return "0.27.0"

    async def push(self, version):
        self.backend.in_flight += 1
        self.backend.max_in_flight = max(self.backend.max_in_flight, self.backend.in_flight)
        self.backend.calls.append(self.target.name)
        try:
            behaviour = self.backend.pushes.get(self.target.name, "ok")
            if behaviour == "hang":
                await asyncio.sleep(10)
            elif behaviour == "block":
                await self.backend.release.wait()
            elif behaviour == "reject":
                raise TargetError("HTTP 400: bad config", status_code=400)
            elif behaviour == "flaky" and self.backend.calls.count(self.target.name) == 1:
                raise TargetError("HTTP 503", transient=True, status_code=503)
            else:
                await asyncio.sleep(self.backend.delay)
            self.backend.pushed[self.target.name] = version.config_hash
        finally:
            self.backend.in_flight -= 1


class FakeBackend:
    def __init__(self, pushes=None, probes=None, delay=0.0):
        self.pushes = pushes or {}
        self.probes = probes or {}
        self.delay = delay
        self.calls = []
        self.pushed = {}
        self.in_flight = 0
        self.max_in_flight = 0
        self.release = asyncio.Event()

    def factory(self, target):
        return FakeAdapter(target, self)


def _model():
    model = RuleModel()
    model.add_receiver({"id": "ops", "name": "ops"})
    model.add_route({"id": "fallback", "name": "Fallback", "receiver": "ops"})
    return model


def _setup(backend, names=("am-1", "am-2", "mimir"), **options):
    registry = TargetRegistry()
    targets = [
        registry.register({"name": name, "type": "other", "endpoint": f"http://{name}.example.com"})
        for name in names
    ]
    versions = VersionStore()
    model = _model()
    versions.commit(compile_model(model), "alice")
    options.setdefault("push_timeout", 0.05)
    options.setdefault("probe_timeout", 0.05)
    options.setdefault("retry_backoff", 0)
    options.setdefault("retry_max_backoff", 0)
    orchestrator = SyncOrchestrator(registry, versions, backend.factory, **options)
    return orchestrator, registry, versions, model, targets


@pytest.mark.asyncio
async def test_all_targets_succeed():
    backend = FakeBackend()
    orchestrator, registry, versions, _, targets = _setup(backend)

    record = await orchestrator.sync()

    assert record.status == SyncStatus.SUCCESS.value
    assert record.trigger == SyncTrigger.MANUAL.value
    assert record.targets == [target.id for target in targets]
    assert record.rules_added == versions.current().rule_count
    for target in registry.list():
        assert target.status == TargetStatus.CONNECTED.value
        assert target.config_hash == versions.current().config_hash
        assert target.version == versions.current().id
        assert target.last_sync_at is not None


@pytest.mark.asyncio
async def test_timeout_on_one_target_gives_partial_after_capped_attempts():
    backend = FakeBackend(pushes={"mimir": "hang"})
    orchestrator, registry, _, _, targets = _setup(backend, max_attempts=2)

    record = await orchestrator.sync()

    assert record.status == SyncStatus.PARTIAL.value
    results = {result.target_name: result for result in record.results}
    assert results["mimir"].outcome == TargetOutcome.FAILED.value
    assert results["mimir"].attempts == 2
    assert backend.calls.count("mimir") == 2
    assert results["am-1"].attempts == 1
    failed = registry.get(targets[2].id)
    assert failed.status == TargetStatus.ERROR.value
    assert "timed out" in failed.error
    assert "mimir" in record.message


@pytest.mark.asyncio
async def test_permanent_error_is_not_retried():
    backend = FakeBackend(pushes={"am-1": "reject", "am-2": "reject", "mimir": "reject"})
    orchestrator, registry, _, _, _ = _setup(backend, max_attempts=3)

    record = await orchestrator.sync()

    assert record.status == SyncStatus.FAILED.value
    assert all(result.attempts == 1 for result in record.results)
    assert all(target.status == TargetStatus.ERROR.value for target in registry.list())
    assert record.rules_added == 0


@pytest.mark.asyncio
async def test_transient_error_is_retried_until_success():
    backend = FakeBackend(pushes={"am-1": "flaky"})
    orchestrator, _, _, _, _ = _setup(backend, names=("am-1",), max_attempts=3)

    record = await orchestrator.sync()

    assert record.status == SyncStatus.SUCCESS.value
    assert record.results[0].attempts == 2


@pytest.mark.asyncio
async def test_unchanged_hash_is_skipped_unless_forced():
    backend = FakeBackend()
    orchestrator, _, _, _, _ = _setup(backend)
    await orchestrator.sync()
    assert len(backend.calls) == 3

    second = await orchestrator.sync()
    assert second.status == SyncStatus.SUCCESS.value
    assert {result.outcome for result in second.results} == {TargetOutcome.SKIPPED.value}
    assert len(backend.calls) == 3
    assert "already up to date" in second.message

    forced = await orchestrator.sync(force=True)
    assert {result.outcome for result in forced.results} == {TargetOutcome.SUCCESS.value}
    assert len(backend.calls) == 6


@pytest.mark.asyncio
async def test_failed_target_recovers_on_next_sync():
    backend = FakeBackend(pushes={"am-1": "reject"})
    orchestrator, registry, _, _, targets = _setup(backend, names=("am-1",))
    await orchestrator.sync()
    assert registry.get(targets[0].id).status == TargetStatus.ERROR.value

    backend.pushes = {}
    record = await orchestrator.sync()
    assert record.results[0].outcome == TargetOutcome.SUCCESS.value
    assert registry.get(targets[0].id).status == TargetStatus.CONNECTED.value


@pytest.mark.asyncio
async def test_change_counts_are_relative_to_last_synced_version():
    backend = FakeBackend()
    orchestrator, _, versions, model, _ = _setup(backend)
    await orchestrator.sync()

    model.add_route({"id": "db", "name": "DB", "match": {"service": "db"}, "receiver": "ops"})
    versions.commit(compile_model(model), "alice")
    record = await orchestrator.sync()

    assert record.rules_added == 1
    assert record.rules_updated == 0
    assert record.rules_deleted == 0


@pytest.mark.asyncio
async def test_concurrency_is_bounded():
    backend = FakeBackend(delay=0.01)
    names = tuple(f"target-{index}" for index in range(6))
    orchestrator, _, _, _, _ = _setup(backend, names=names, max_concurrency=2)

    record = await orchestrator.sync()

    assert record.status == SyncStatus.SUCCESS.value
    assert backend.max_in_flight <= 2


@pytest.mark.asyncio
async def test_explicit_targets_include_disabled_ones():
    backend = FakeBackend()
    orchestrator, registry, _, _, targets = _setup(backend)
    registry.set_enabled(targets[0].id, False)

    default_record = await orchestrator.sync()
    assert targets[0].id not in default_record.targets

    explicit = await orchestrator.sync([targets[0].id])
    assert explicit.targets == [targets[0].id]
    assert explicit.results[0].outcome == TargetOutcome.SUCCESS.value


@pytest.mark.asyncio
async def test_unknown_target_or_missing_version_fails_fast():
    backend = FakeBackend()
    orchestrator, _, _, _, _ = _setup(backend)
    with pytest.raises(TargetNotFound):
        await orchestrator.sync(["missing"])

    empty = SyncOrchestrator(TargetRegistry(), VersionStore(), backend.factory)
    with pytest.raises(VersionNotFound):
        await empty.sync()


@pytest.mark.asyncio
async def test_cancelled_manual_sync_is_recorded():
    backend = FakeBackend(pushes={"am-1": "block", "am-2": "block", "mimir": "block"})
    orchestrator, registry, _, _, _ = _setup(backend, push_timeout=5)

    handle = orchestrator.start_manual_sync()
    while backend.in_flight < 3:
        await asyncio.sleep(0.001)
    assert orchestrator.manual_sync_running
    assert all(target.status == TargetStatus.SYNCING.value for target in registry.list())

    assert orchestrator.cancel_manual_syncs() == 1
    record = await handle.wait()

    assert record.id == handle.record_id
    assert record.status == SyncStatus.FAILED.value
    assert record.message.startswith(CANCELLED_MESSAGE)
    assert all(result.error == CANCELLED_MESSAGE for result in record.results)
    assert all(target.status == TargetStatus.ERROR.value for target in registry.list())
    assert orchestrator.history()[0].id == record.id
    assert not orchestrator.manual_sync_running


@pytest.mark.asyncio
async def test_manual_sync_cancelled_before_start_is_recorded():
    backend = FakeBackend()
    orchestrator, registry, _, _, _ = _setup(backend)

    handle = orchestrator.start_manual_sync()
    assert orchestrator.cancel_manual_syncs() == 1
    record = await handle.wait()

    assert record.id == handle.record_id
    assert record.status == SyncStatus.FAILED.value
    assert record.trigger == SyncTrigger.MANUAL.value
    assert record.message.startswith(CANCELLED_MESSAGE)
    assert sorted(record.targets) == sorted(target.id for target in registry.list())
    assert all(result.outcome == TargetOutcome.FAILED.value for result in record.results)
    assert all(result.error == CANCELLED_MESSAGE for result in record.results)
    assert backend.calls == []
    assert [item.id for item in orchestrator.history()] == [record.id]
    assert (await handle.wait()).id == record.id
    assert len(orchestrator.history()) == 1


@pytest.mark.asyncio
async def test_history_is_bounded_and_newest_first():
    backend = FakeBackend()
    orchestrator, _, _, _, _ = _setup(backend, names=("am-1",), history_limit=2)

    records = [await orchestrator.sync(force=True) for _ in range(3)]

    history = orchestrator.history()
    assert [record.id for record in history] == [records[2].id, records[1].id]
    assert orchestrator.history(limit=1)[0].id == records[2].id
    with pytest.raises(LookupError):
        orchestrator.get_record(records[0].id)


@pytest.mark.asyncio
async def test_probe_updates_target_state():
    backend = FakeBackend(probes={"am-2": "fail"})
    orchestrator, registry, _, _, targets = _setup(backend, names=("am-1", "am-2"))

    probed = {target.name: target for target in await orchestrator.probe_all()}

    assert probed["am-1"].status == TargetStatus.CONNECTED.value
    assert probed["am-1"].backend_version == "0.27.0"
    assert probed["am-2"].status == TargetStatus.ERROR.value
    assert "connection refused" in registry.get(targets[1].id).error


@pytest.mark.asyncio
async def test_auto_sync_only_targets_connected_ones():
    backend = FakeBackend(probes={"am-2": "fail"})
    orchestrator, _, _, _, targets = _setup(backend, names=("am-1", "am-2"))

    assert await orchestrator.auto_sync() is None
    assert orchestrator.history() == []

    await orchestrator.probe_all()
    record = await orchestrator.auto_sync()

    assert record.trigger == SyncTrigger.AUTO.value
    assert record.targets == [targets[0].id]


@pytest.mark.asyncio
async def test_auto_sync_without_version_records_nothing():
    backend = FakeBackend()
    registry = TargetRegistry()
    registry.register({"name": "am-1", "type": "other", "endpoint": "http://am-1.example.com"})
    orchestrator = SyncOrchestrator(registry, VersionStore(), backend.factory)
    await orchestrator.probe_all()

    assert await orchestrator.auto_sync() is None
    assert orchestrator.history() == []


def test_aggregate_status():
    assert aggregate_status([]) == SyncStatus.SUCCESS
