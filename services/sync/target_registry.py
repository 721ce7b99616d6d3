"""
Registry of synchronization targets. Owns every SyncTarget record and is the only place target state changes; transitions outside the connection state machine are rejected.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import asyncio
import logging
import threading
import uuid
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel, ValidationError

from models.alerting.sync import SyncTarget, SyncTargetCreate, SyncTargetUpdate, TargetStatus
from services.alerting.errors import TargetBusy, TargetNotFound

logger = logging.getLogger(__name__)

_ALLOWED_TRANSITIONS: Dict[str, frozenset] = {
    TargetStatus.DISCONNECTED.value: frozenset({TargetStatus.CONNECTED.value, TargetStatus.SYNCING.value, TargetStatus.ERROR.value}),
    TargetStatus.CONNECTED.value: frozenset(
        {TargetStatus.CONNECTED.value, TargetStatus.SYNCING.value, TargetStatus.ERROR.value, TargetStatus.DISCONNECTED.value}
    ),
    TargetStatus.SYNCING.value: frozenset({TargetStatus.CONNECTED.value, TargetStatus.ERROR.value}),
    TargetStatus.ERROR.value: frozenset(
        {TargetStatus.CONNECTED.value, TargetStatus.SYNCING.value, TargetStatus.ERROR.value, TargetStatus.DISCONNECTED.value}
    ),
}


class InvalidTransition(RuntimeError):
    pass


def _status_value(status: Union[TargetStatus, str]) -> str:
    return status.value if isinstance(status, TargetStatus) else str(status)


class TargetRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._targets: Dict[str, SyncTarget] = {}
        self._sync_locks: Dict[str, asyncio.Lock] = {}

    def register(self, payload: Union[SyncTargetCreate, Mapping[str, Any]]) -> SyncTarget:
        data = payload.model_dump() if isinstance(payload, BaseModel) else dict(payload)
        target = SyncTarget.model_validate({**data, "id": data.get("id") or str(uuid.uuid4())})
        with self._lock:
            if target.id in self._targets:
                raise ValueError(f"Duplicate target id '{target.id}'")
            if any(existing.name == target.name for existing in self._targets.values()):
                raise ValueError(f"Target name '{target.name}' is already registered")
            self._targets[target.id] = target
        logger.info("Registered %s target %s (%s) at %s", target.type, target.name, target.id, target.endpoint)
        return target

    def bootstrap(self, entries: Iterable[Mapping[str, Any]]) -> List[SyncTarget]:
        registered = []
        for entry in entries:
            try:
                registered.append(self.register(entry))
            except (ValueError, ValidationError) as exc:
                logger.error("Skipping configured target %s: %s", entry.get("name"), exc)
        return registered

    def _require(self, target_id: str) -> SyncTarget:
        target = self._targets.get(target_id)
        if target is None:
            raise TargetNotFound(f"Target '{target_id}' not found")
        return target

    def get(self, target_id: str) -> SyncTarget:
        with self._lock:
            return self._require(target_id)

    def list(self, *, enabled_only: bool = False, status: Optional[TargetStatus] = None) -> List[SyncTarget]:
        with self._lock:
            targets = list(self._targets.values())
        if enabled_only:
            targets = [target for target in targets if target.enabled]
        if status is not None:
            wanted = _status_value(status)
            targets = [target for target in targets if target.status == wanted]
        return targets

    def update(self, target_id: str, payload: SyncTargetUpdate) -> SyncTarget:
        changes = {
            key: value
            for key, value in payload.model_dump(exclude_unset=True).items()
            if value is not None or key == "tenant_id"
        }
        with self._lock:
            target = self._require(target_id)
            if target.status == TargetStatus.SYNCING.value:
                raise TargetBusy(f"Target '{target.name}' is syncing and cannot be modified")
            if "name" in changes and any(
                other.name == changes["name"] and other.id != target_id for other in self._targets.values()
            ):
                raise ValueError(f"Target name '{changes['name']}' is already registered")
            if changes.get("endpoint", target.endpoint) != target.endpoint or (
                "tenant_id" in changes and changes["tenant_id"] != target.tenant_id
            ):
                # a different backend has not seen anything we pushed
                changes.update(
                    status=TargetStatus.DISCONNECTED.value,
                    config_hash=None,
                    backend_version=None,
                    error=None,
                )
            updated = target.model_copy(update=changes)
            self._targets[target_id] = updated
        logger.info("Updated target %s: %s", target_id, sorted(changes))
        return updated

    def set_enabled(self, target_id: str, enabled: bool) -> SyncTarget:
        with self._lock:
            target = self._require(target_id).model_copy(update={"enabled": enabled})
            self._targets[target_id] = target
        return target

    def remove(self, target_id: str) -> None:
        with self._lock:
            target = self._require(target_id)
            if target.status == TargetStatus.SYNCING.value:
                raise TargetBusy(f"Target '{target.name}' is syncing and cannot be removed")
            del self._targets[target_id]
            self._sync_locks.pop(target_id, None)
        logger.info("Removed target %s (%s)", target.name, target_id)

    def transition(self, target_id: str, status: Union[TargetStatus, str], **fields: Any) -> SyncTarget:
        new_status = _status_value(status)
        with self._lock:
            target = self._require(target_id)
            if new_status not in _ALLOWED_TRANSITIONS[target.status]:
                raise InvalidTransition(f"Target '{target.name}' cannot move from {target.status} to {new_status}")
            updated = target.model_copy(update={**fields, "status": new_status})
            self._targets[target_id] = updated
        if target.status != new_status:
            logger.info("Target %s: %s -> %s", target.name, target.status, new_status)
        return updated

    def sync_lock(self, target_id: str) -> asyncio.Lock:
        with self._lock:
            self._require(target_id)
            lock = self._sync_locks.get(target_id)
            if lock is None:
                lock = asyncio.Lock()
                self._sync_locks[target_id] = lock
            return lock
