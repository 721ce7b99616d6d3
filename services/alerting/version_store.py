"""
Append-only store of committed configuration versions. Versions are never modified after commit; the store only moves its current pointer, and rollback appends a new version carrying the historical content.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from models.alerting.versions import ChangeSummary, CompiledConfig, ConfigDiff, ConfigVersion

from .errors import NoOpCommit, VersionNotFound

logger = logging.getLogger(__name__)


def diff_indexes(old: Mapping[str, str], new: Mapping[str, str]) -> ChangeSummary:
    return ChangeSummary(
        added=sorted(key for key in new if key not in old),
        modified=sorted(key for key in new if key in old and old[key] != new[key]),
        deleted=sorted(key for key in old if key not in new),
    )


class VersionStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._versions: List[ConfigVersion] = []
        self._by_id: Dict[str, ConfigVersion] = {}
        self._current_id: Optional[str] = None

    def _view(self, version: ConfigVersion) -> ConfigVersion:
        return version.model_copy(update={"is_current": version.id == self._current_id})

    def _append(
        self,
        compiled: CompiledConfig,
        author: str,
        description: str,
        rollback_of: Optional[str] = None,
        source: Optional[Dict[str, Any]] = None,
    ) -> ConfigVersion:
        previous = self._by_id.get(self._current_id) if self._current_id else None
        changes = diff_indexes(previous.compiled.rule_index if previous else {}, compiled.rule_index)
        version = ConfigVersion(
            id=str(uuid.uuid4()),
            version=len(self._versions) + 1,
            timestamp=datetime.now(timezone.utc),
            author=author,
            description=description,
            ruleCount=compiled.rule_count,
            changes=changes,
            configHash=compiled.config_hash,
            rollbackOf=rollback_of,
            compiled=compiled,
            source=source or {},
        )
        self._versions.append(version)
        self._by_id[version.id] = version
        self._current_id = version.id
        return version

    def commit(
        self,
        compiled: CompiledConfig,
        author: str,
        description: str = "",
        force: bool = False,
        source: Optional[Dict[str, Any]] = None,
    ) -> ConfigVersion:
        with self._lock:
            current = self._by_id.get(self._current_id) if self._current_id else None
            if current is not None and current.config_hash == compiled.config_hash and not force:
                logger.info("Commit by %s skipped: configuration %s unchanged", author, compiled.config_hash[:12])
                raise NoOpCommit(compiled.config_hash, current.id)
            version = self._append(compiled, author, description, source=source)
            logger.info(
                "Committed version %d (%s) by %s: +%d ~%d -%d",
                version.version,
                version.config_hash[:12],
                author,
                len(version.changes.added),
                len(version.changes.modified),
                len(version.changes.deleted),
            )
            return self._view(version)

    def rollback(self, version_id: str, author: str, description: Optional[str] = None) -> ConfigVersion:
        with self._lock:
            target = self._by_id.get(version_id)
            if target is None:
                raise VersionNotFound(f"Version '{version_id}' not found")
            if version_id == self._current_id:
                raise NoOpCommit(target.config_hash, target.id)
            version = self._append(
                target.compiled,
                author,
                description or f"Rollback to version {target.version}",
                rollback_of=target.id,
                source=target.source,
            )
            logger.info("Rolled back to version %d as version %d by %s", target.version, version.version, author)
            return self._view(version)

    def diff(self, from_version_id: str, to_version_id: str) -> ConfigDiff:
        with self._lock:
            old = self._get_locked(from_version_id)
            new = self._get_locked(to_version_id)
        changes = diff_indexes(old.compiled.rule_index, new.compiled.rule_index)
        return ConfigDiff(
            fromVersion=old.id,
            toVersion=new.id,
            added=changes.added,
            modified=changes.modified,
            deleted=changes.deleted,
        )

    def _get_locked(self, version_id: str) -> ConfigVersion:
        version = self._by_id.get(version_id)
        if version is None:
            raise VersionNotFound(f"Version '{version_id}' not found")
        return version

    def get(self, version_id: str) -> ConfigVersion:
        with self._lock:
            return self._view(self._get_locked(version_id))

    def current(self) -> Optional[ConfigVersion]:
        with self._lock:
            if self._current_id is None:
                return None
            return self._view(self._by_id[self._current_id])

    def list(self, limit: Optional[int] = None) -> List[ConfigVersion]:
        with self._lock:
            versions = [self._view(version) for version in reversed(self._versions)]
        return versions[:limit] if limit else versions
