"""
Service facade for the alert configuration subsystem. Owns the rule model, the version store, the target registry, the sync orchestrator and the auto-sync scheduler, and exposes the operations used by the API routers. Heavy lifting is delegated to the modules under services/alerting and services/sync.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import httpx

from config import config
from models.alerting.alerts import Alert, AlertDecision
from models.alerting.sync import SyncRecord, SyncTarget, SyncTargetCreate, SyncTargetUpdate
from models.alerting.versions import CompiledConfig, ConfigDiff, ConfigVersion
from services.alerting.alert_evaluation import evaluate
from services.alerting.config_compiler import compile_snapshot
from services.alerting.errors import VersionNotFound
from services.alerting.export_ops import export_config
from services.alerting.route_resolver import SYSTEM_DEFAULT_ROUTE_ID, resolve_or_default
from services.alerting.rule_model import RuleModel
from services.alerting.silences_ops import silence_states
from services.alerting.version_store import VersionStore
from services.common.http_client import create_async_client
from services.sync.adapters import AdapterFactory, adapter_factory
from services.sync.orchestrator import ManualSync, SyncOrchestrator
from services.sync.scheduler import AutoSyncScheduler
from services.sync.target_registry import TargetRegistry

logger = logging.getLogger(__name__)


class AlertConfigService:
    def __init__(
        self,
        *,
        adapter_factory_override: Optional[AdapterFactory] = None,
        client: Optional[httpx.AsyncClient] = None,
        orchestrator_options: Optional[Mapping[str, Any]] = None,
        auto_sync_enabled: bool = config.AUTO_SYNC_ENABLED,
        auto_sync_interval: float = config.AUTO_SYNC_INTERVAL_SECONDS,
    ) -> None:
        self.model = RuleModel()
        self.versions = VersionStore()
        self.registry = TargetRegistry()
        self._client = client
        self._owns_client = client is None and adapter_factory_override is None
        factory = adapter_factory_override or self._default_adapter_factory
        self.orchestrator = SyncOrchestrator(self.registry, self.versions, factory, **dict(orchestrator_options or {}))
        self.scheduler = AutoSyncScheduler(
            self.orchestrator,
            interval_seconds=auto_sync_interval,
            enabled=auto_sync_enabled,
        )

    def _http_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = create_async_client(config.DEFAULT_TIMEOUT)
        return self._client

    def _default_adapter_factory(self, target: SyncTarget):
        return adapter_factory(self._http_client())(target)

    # Lifecycle

    def bootstrap_targets(self, entries: Iterable[Mapping[str, Any]] = ()) -> List[SyncTarget]:
        return self.registry.bootstrap(entries)

    async def startup(self) -> None:
        self.bootstrap_targets(config.TARGETS)
        self.scheduler.ensure_started()

    async def shutdown(self) -> None:
        await self.scheduler.stop()
        self.orchestrator.cancel_manual_syncs()
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    # Compile and versions

    def compile(self) -> CompiledConfig:
        return compile_snapshot(self.model.snapshot())

    def commit(self, author: str, description: str = "", force: bool = False) -> ConfigVersion:
        snapshot = self.model.snapshot()
        compiled = compile_snapshot(snapshot)
        return self.versions.commit(compiled, author, description, force=force, source=snapshot.to_document())

    def rollback(self, version_id: str, author: str, description: Optional[str] = None) -> ConfigVersion:
        version = self.versions.rollback(version_id, author, description)
        if version.source:
            self.model.load(version.source)
            restored = self.compile()
            if restored.config_hash != version.config_hash:
                logger.warning(
                    "Rule model restored from version %s compiles to %s instead of %s",
                    version.rollback_of,
                    restored.config_hash[:12],
                    version.config_hash[:12],
                )
        return version

    def diff(self, from_version_id: str, to_version_id: str) -> ConfigDiff:
        return self.versions.diff(from_version_id, to_version_id)

    def list_versions(self, limit: Optional[int] = None) -> List[ConfigVersion]:
        return self.versions.list(limit)

    def get_version(self, version_id: Optional[str] = None) -> ConfigVersion:
        if version_id:
            return self.versions.get(version_id)
        current = self.versions.current()
        if current is None:
            raise VersionNotFound("No configuration version has been committed")
        return current

    def export(self, version_id: Optional[str] = None, export_format: str = "yaml") -> bytes:
        return export_config(self.get_version(version_id), export_format)

    # Routing decisions

    def resolve(self, labels: Mapping[str, str]) -> Dict[str, Any]:
        snapshot = self.model.snapshot()
        route = resolve_or_default(labels, snapshot.routes)
        if route.id == SYSTEM_DEFAULT_ROUTE_ID:
            return {"route": None, "receiver": config.DEFAULT_RECEIVER, "degraded": True}
        receiver = next((item for item in snapshot.receivers if item.id == route.receiver), None)
        if receiver is None:
            logger.warning("Route %s references missing receiver %s", route.id, route.receiver)
            return {"route": route.id, "receiver": config.DEFAULT_RECEIVER, "degraded": True}
        return {"route": route.id, "receiver": receiver.name, "degraded": False}

    def evaluate(
        self,
        alert: Alert,
        active_alerts: Sequence[Alert] = (),
        now: Optional[datetime] = None,
    ) -> AlertDecision:
        return evaluate(alert, active_alerts, self.model.snapshot(), now)

    def silence_statuses(self, now: Optional[datetime] = None) -> Dict[str, str]:
        return silence_states(self.model.silences(), now or datetime.now(timezone.utc))

    # Targets

    def register_target(self, payload: SyncTargetCreate) -> SyncTarget:
        return self.registry.register(payload)

    def update_target(self, target_id: str, payload: SyncTargetUpdate) -> SyncTarget:
        return self.registry.update(target_id, payload)

    def remove_target(self, target_id: str) -> None:
        self.registry.remove(target_id)

    def set_target_enabled(self, target_id: str, enabled: bool) -> SyncTarget:
        return self.registry.set_enabled(target_id, enabled)

    def list_targets(self) -> List[SyncTarget]:
        return self.registry.list()

    def get_target(self, target_id: str) -> SyncTarget:
        return self.registry.get(target_id)

    async def probe_target(self, target_id: str) -> SyncTarget:
        return await self.orchestrator.probe(target_id)

    # Sync

    def start_sync(
        self,
        target_ids: Optional[Sequence[str]] = None,
        version_id: Optional[str] = None,
        force: bool = False,
    ) -> ManualSync:
        version = self.versions.get(version_id) if version_id else None
        return self.orchestrator.start_manual_sync(target_ids, version, force=force)

    async def sync(
        self,
        target_ids: Optional[Sequence[str]] = None,
        version_id: Optional[str] = None,
        force: bool = False,
    ) -> SyncRecord:
        return await self.start_sync(target_ids, version_id, force).wait()

    def cancel_sync(self) -> int:
        return self.orchestrator.cancel_manual_syncs()

    def sync_history(self, limit: Optional[int] = None) -> List[SyncRecord]:
        return self.orchestrator.history(limit)

    def auto_sync_settings(self) -> Dict[str, Any]:
        return self.scheduler.settings()

    def configure_auto_sync(self, *, enabled: Optional[bool] = None, interval_seconds: Optional[float] = None) -> Dict[str, Any]:
        return self.scheduler.configure(enabled=enabled, interval_seconds=interval_seconds)

