"""
Sync orchestrator: pushes a committed configuration version to many targets concurrently and records the outcome.

Each target is synced independently under its own lock, bounded by a shared concurrency limit. A failing, timing-out or cancelled target never affects its siblings. Every sync call appends exactly one SyncRecord once all of its targets have finished, in the order the calls complete.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import asyncio
import logging
import time
import uuid
from collections import deque
from datetime import datetime, timezone
from typing import Deque, Dict, List, Optional, Sequence, Set

from config import config
from models.alerting.sync import (
    SyncRecord,
    SyncStatus,
    SyncTarget,
    SyncTrigger,
    TargetOutcome,
    TargetStatus,
    TargetSyncResult,
)
from models.alerting.versions import ChangeSummary, ConfigVersion
from services.alerting.errors import TargetError, TargetNotFound, VersionNotFound
from services.alerting.version_store import VersionStore, diff_indexes

from .adapters import AdapterFactory
from .target_registry import TargetRegistry
from .transport import call_with_timeout, run_with_retry

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Sync cancelled"


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def aggregate_status(results: Sequence[TargetSyncResult]) -> SyncStatus:
    succeeded = sum(1 for result in results if result.outcome != TargetOutcome.FAILED.value)
    if succeeded == len(results):
        return SyncStatus.SUCCESS
    if succeeded == 0:
        return SyncStatus.FAILED
    return SyncStatus.PARTIAL


class SyncOrchestrator:
    def __init__(
        self,
        registry: TargetRegistry,
        versions: VersionStore,
        adapter_factory: AdapterFactory,
        *,
        max_concurrency: int = config.SYNC_MAX_CONCURRENCY,
        probe_timeout: float = config.SYNC_PROBE_TIMEOUT,
        push_timeout: float = config.SYNC_PUSH_TIMEOUT,
        max_attempts: int = config.SYNC_MAX_ATTEMPTS,
        retry_backoff: float = config.SYNC_RETRY_BACKOFF,
        retry_max_backoff: float = config.SYNC_RETRY_MAX_BACKOFF,
        history_limit: int = config.SYNC_HISTORY_LIMIT,
    ) -> None:
        self.registry = registry
        self.versions = versions
        self._adapter_factory = adapter_factory
        self.max_concurrency = max(1, max_concurrency)
        self.probe_timeout = probe_timeout
        self.push_timeout = push_timeout
        self.max_attempts = max(1, max_attempts)
        self.retry_backoff = retry_backoff
        self.retry_max_backoff = retry_max_backoff
        self._history: Deque[SyncRecord] = deque(maxlen=max(1, history_limit))
        self._manual_tasks: Set[asyncio.Task] = set()
        self._last_synced_version_id: Optional[str] = None

    # History

    def history(self, limit: Optional[int] = None) -> List[SyncRecord]:
        records = list(reversed(self._history))
        return records[:limit] if limit else records

    def get_record(self, record_id: str) -> SyncRecord:
        for record in self._history:
            if record.id == record_id:
                return record
        raise LookupError(f"Sync record '{record_id}' not found")

    # Probe

    async def probe(self, target_id: str) -> SyncTarget:
        target = self.registry.get(target_id)
        adapter = self._adapter_factory(target)
        async with self.registry.sync_lock(target_id):
            try:
                backend_version = await call_with_timeout(adapter.probe, self.probe_timeout, f"Probe of {target.name}")
            except TargetError as exc:
                logger.warning("Probe of target %s failed: %s", target.name, exc)
                return self.registry.transition(target_id, TargetStatus.ERROR, error=str(exc))
            return self.registry.transition(
                target_id,
                TargetStatus.CONNECTED,
                error=None,
                backend_version=backend_version,
            )

    async def probe_all(self, *, enabled_only: bool = True) -> List[SyncTarget]:
        targets = self.registry.list(enabled_only=enabled_only)
        return list(await asyncio.gather(*(self.probe(target.id) for target in targets)))

    # Sync

    def _select_targets(self, target_ids: Optional[Sequence[str]]) -> List[SyncTarget]:
        if target_ids is None:
            return self.registry.list(enabled_only=True)
        targets = []
        seen = set()
        for target_id in target_ids:
            if target_id in seen:
                continue
            seen.add(target_id)
            targets.append(self.registry.get(target_id))
        return targets

    def _result(
        self,
        target: SyncTarget,
        outcome: TargetOutcome,
        started: float,
        attempts: int = 0,
        error: Optional[str] = None,
    ) -> TargetSyncResult:
        return TargetSyncResult(
            targetId=target.id,
            targetName=target.name,
            outcome=outcome,
            attempts=attempts,
            durationMs=_elapsed_ms(started),
            error=error,
        )

    async def _push(self, target: SyncTarget, version: ConfigVersion, attempts: List[int]) -> None:
        adapter = self._adapter_factory(target)

        async def _attempt() -> None:
            attempts[0] += 1
            await adapter.push(version)

        await run_with_retry(
            _attempt,
            action=f"Push of version {version.version} to {target.name}",
            timeout=self.push_timeout,
            attempts=self.max_attempts,
            backoff=self.retry_backoff,
            max_backoff=self.retry_max_backoff,
        )

    async def _sync_target(
        self,
        target: SyncTarget,
        version: ConfigVersion,
        force: bool,
        semaphore: asyncio.Semaphore,
        results: Dict[str, TargetSyncResult],
    ) -> None:
        started = time.monotonic()
        attempts = [0]
        try:
            async with semaphore, self.registry.sync_lock(target.id):
                current = self.registry.get(target.id)
                if (
                    not force
                    and current.config_hash == version.config_hash
                    and current.status != TargetStatus.ERROR.value
                ):
                    logger.info("Target %s already has configuration %s; skipping", current.name, version.config_hash[:12])
                    results[target.id] = self._result(current, TargetOutcome.SKIPPED, started)
                    return

                self.registry.transition(target.id, TargetStatus.SYNCING, error=None)
                try:
                    await self._push(current, version, attempts)
                except asyncio.CancelledError:
                    self.registry.transition(target.id, TargetStatus.ERROR, error=CANCELLED_MESSAGE)
                    results[target.id] = self._result(current, TargetOutcome.FAILED, started, attempts[0], CANCELLED_MESSAGE)
                    raise
                except TargetError as exc:
                    self.registry.transition(target.id, TargetStatus.ERROR, error=str(exc))
                    logger.warning("Sync of target %s failed after %d attempt(s): %s", current.name, attempts[0], exc)
                    results[target.id] = self._result(current, TargetOutcome.FAILED, started, attempts[0], str(exc))
                    return
                except Exception as exc:
                    self.registry.transition(target.id, TargetStatus.ERROR, error=f"Unexpected error: {exc}")
                    logger.exception("Unexpected error syncing target %s", current.name)
                    results[target.id] = self._result(current, TargetOutcome.FAILED, started, attempts[0], str(exc))
                    return

                self.registry.transition(
                    target.id,
                    TargetStatus.CONNECTED,
                    error=None,
                    last_sync_at=datetime.now(timezone.utc),
                    version=version.id,
                    rule_count=version.rule_count,
                    config_hash=version.config_hash,
                )
                results[target.id] = self._result(current, TargetOutcome.SUCCESS, started, attempts[0])
        except TargetNotFound as exc:
            results[target.id] = self._result(target, TargetOutcome.FAILED, started, attempts[0], str(exc))
        except asyncio.CancelledError:
            # targets still waiting for a slot were never started; their state is left alone
            results.setdefault(
                target.id,
                self._result(target, TargetOutcome.FAILED, started, attempts[0], CANCELLED_MESSAGE),
            )
            raise

    def _change_counts(self, version: ConfigVersion, results: Sequence[TargetSyncResult]) -> ChangeSummary:
        if not any(result.outcome == TargetOutcome.SUCCESS.value for result in results):
            return ChangeSummary()
        baseline: Dict[str, str] = {}
        if self._last_synced_version_id and self._last_synced_version_id != version.id:
            try:
                baseline = self.versions.get(self._last_synced_version_id).compiled.rule_index
            except VersionNotFound:
                baseline = {}
        elif self._last_synced_version_id == version.id:
            baseline = dict(version.compiled.rule_index)
        return diff_indexes(baseline, version.compiled.rule_index)

    def _record(
        self,
        record_id: str,
        trigger: SyncTrigger,
        version: ConfigVersion,
        targets: Sequence[SyncTarget],
        results: Dict[str, TargetSyncResult],
        started: float,
        cancelled: bool = False,
    ) -> SyncRecord:
        ordered = [results[target.id] for target in targets if target.id in results]
        status = aggregate_status(ordered)
        changes = self._change_counts(version, ordered)
        if any(result.outcome == TargetOutcome.SUCCESS.value for result in ordered):
            self._last_synced_version_id = version.id

        succeeded = sum(1 for result in ordered if result.outcome != TargetOutcome.FAILED.value)
        skipped = sum(1 for result in ordered if result.outcome == TargetOutcome.SKIPPED.value)
        if not targets:
            message = "No targets to synchronize"
        else:
            message = f"Synchronized version {version.version} to {succeeded}/{len(targets)} target(s)"
            if skipped:
                message += f", {skipped} already up to date"
            failures = [f"{result.target_name}: {result.error}" for result in ordered if result.error]
            if failures:
                message += "; " + "; ".join(failures)
        if cancelled:
            message = f"{CANCELLED_MESSAGE}. {message}"

        record = SyncRecord(
            id=record_id,
            timestamp=datetime.now(timezone.utc),
            trigger=trigger,
            targets=[target.id for target in targets],
            status=status,
            durationMs=_elapsed_ms(started),
            rulesUpdated=len(changes.modified),
            rulesAdded=len(changes.added),
            rulesDeleted=len(changes.deleted),
            message=message,
            versionId=version.id,
            results=ordered,
        )
        self._history.append(record)
        log = logger.info if status == SyncStatus.SUCCESS else logger.warning
        log("Sync %s (%s) finished with status %s: %s", record.id, record.trigger, record.status, message)
        return record

    async def sync(
        self,
        target_ids: Optional[Sequence[str]] = None,
        version: Optional[ConfigVersion] = None,
        *,
        force: bool = False,
        trigger: SyncTrigger = SyncTrigger.MANUAL,
        record_id: Optional[str] = None,
    ) -> SyncRecord:
        version = version or self.versions.current()
        if version is None:
            raise VersionNotFound("No committed configuration version to synchronize")
        targets = self._select_targets(target_ids)
        record_id = record_id or str(uuid.uuid4())
        started = time.monotonic()
        results: Dict[str, TargetSyncResult] = {}
        semaphore = asyncio.Semaphore(self.max_concurrency)
        tasks = [
            asyncio.create_task(self._sync_target(target, version, force, semaphore, results))
            for target in targets
        ]
        try:
            if tasks:
                await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            self._record(record_id, trigger, version, targets, results, started, cancelled=True)
            raise
        return self._record(record_id, trigger, version, targets, results, started)

    # Manual sync handles

    def start_manual_sync(
        self,
        target_ids: Optional[Sequence[str]] = None,
        version: Optional[ConfigVersion] = None,
        *,
        force: bool = False,
    ) -> "ManualSync":
        version = version or self.versions.current()
        if version is None:
            raise VersionNotFound("No committed configuration version to synchronize")
        # resolve ids up front so unknown targets fail the request instead of the task
        targets = self._select_targets(target_ids)
        record_id = str(uuid.uuid4())
        started = time.monotonic()
        task = asyncio.create_task(
            self.sync(target_ids, version, force=force, trigger=SyncTrigger.MANUAL, record_id=record_id)
        )
        self._manual_tasks.add(task)
        task.add_done_callback(self._manual_tasks.discard)
        task.add_done_callback(lambda done: self._record_unstarted(done, record_id, version, targets, started))
        return ManualSync(record_id, task, self)

    def _record_unstarted(
        self,
        task: asyncio.Task,
        record_id: str,
        version: ConfigVersion,
        targets: Sequence[SyncTarget],
        started: float,
    ) -> None:
        # a task cancelled before its first step never enters sync(), so nothing recorded it
        if not task.cancelled() or any(record.id == record_id for record in self._history):
            return
        results = {
            target.id: self._result(target, TargetOutcome.FAILED, started, error=CANCELLED_MESSAGE)
            for target in targets
        }
        self._record(record_id, SyncTrigger.MANUAL, version, targets, results, started, cancelled=True)

    def cancel_manual_syncs(self) -> int:
        cancelled = 0
        for task in list(self._manual_tasks):
            if not task.done():
                task.cancel()
                cancelled += 1
        if cancelled:
            logger.info("Cancelled %d manual sync(s)", cancelled)
        return cancelled

    @property
    def manual_sync_running(self) -> bool:
        return any(not task.done() for task in self._manual_tasks)

    # Auto sync

    async def auto_sync(self) -> Optional[SyncRecord]:
        version = self.versions.current()
        if version is None:
            logger.debug("Auto-sync skipped: no committed configuration")
            return None
        targets = [
            target
            for target in self.registry.list(enabled_only=True)
            if target.status == TargetStatus.CONNECTED.value
        ]
        if not targets:
            logger.debug("Auto-sync skipped: no connected targets")
            return None
        try:
            return await self.sync([target.id for target in targets], version, trigger=SyncTrigger.AUTO)
        except (TargetNotFound, VersionNotFound) as exc:
            logger.warning("Auto-sync aborted: %s", exc)
            return None


class ManualSync:
    """Handle on a running manual sync. Waiting never raises on cancellation; the record is always returned."""

    def __init__(self, record_id: str, task: asyncio.Task, orchestrator: SyncOrchestrator) -> None:
        self.record_id = record_id
        self.task = task
        self._orchestrator = orchestrator

    async def wait(self) -> SyncRecord:
        await asyncio.wait({self.task})
        if self.task.cancelled():
            return self._orchestrator.get_record(self.record_id)
        return self.task.result()
