"""
Module defines Pydantic models for synchronization targets and the append-only sync history.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from services.common.url_utils import is_http_url

DESC_TARGET_ID = "Unique identifier of the target"
DESC_TARGET_NAME = "Target name"
DESC_TARGET_TYPE = "Kind of monitoring backend"
DESC_TARGET_ENDPOINT = "Base URL of the backend API"
DESC_TARGET_ENABLED = "Whether the target takes part in synchronization"
DESC_TARGET_STATUS = "Connection and synchronization state"
DESC_TARGET_LAST_SYNC = "Time of the last successful synchronization"
DESC_TARGET_VERSION = "Identifier of the configuration version last pushed"
DESC_TARGET_RULE_COUNT = "Number of compiled entities last pushed"
DESC_TARGET_ERROR = "Last error message"
DESC_TARGET_CONFIG_HASH = "Hash of the configuration last pushed"
DESC_TARGET_BACKEND_VERSION = "Backend version reported by the last probe"
DESC_TARGET_TENANT = "Tenant sent as X-Scope-OrgID"


class TargetType(str, Enum):
    METRICS_ENGINE = "metrics-engine"
    ALERT_DISPATCHER = "alert-dispatcher"
    OTHER = "other"


class TargetStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    SYNCING = "syncing"
    ERROR = "error"


class SyncTrigger(str, Enum):
    MANUAL = "manual"
    AUTO = "auto"


class SyncStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class TargetOutcome(str, Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


def _check_endpoint(value: str) -> str:
    if not is_http_url(value):
        raise ValueError(f"Invalid target endpoint '{value}'")
    return value.strip().rstrip("/")


class SyncTarget(BaseModel):
    id: str = Field(..., min_length=1, description=DESC_TARGET_ID)
    name: str = Field(..., min_length=1, max_length=100, description=DESC_TARGET_NAME)
    type: TargetType = Field(..., description=DESC_TARGET_TYPE)
    endpoint: str = Field(..., description=DESC_TARGET_ENDPOINT)
    enabled: bool = Field(True, description=DESC_TARGET_ENABLED)
    status: TargetStatus = Field(TargetStatus.DISCONNECTED, description=DESC_TARGET_STATUS)
    last_sync_at: Optional[datetime] = Field(None, alias="lastSyncAt", description=DESC_TARGET_LAST_SYNC)
    version: Optional[str] = Field(None, description=DESC_TARGET_VERSION)
    rule_count: int = Field(0, alias="ruleCount", description=DESC_TARGET_RULE_COUNT)
    error: Optional[str] = Field(None, description=DESC_TARGET_ERROR)
    config_hash: Optional[str] = Field(None, alias="configHash", description=DESC_TARGET_CONFIG_HASH)
    backend_version: Optional[str] = Field(None, alias="backendVersion", description=DESC_TARGET_BACKEND_VERSION)
    tenant_id: Optional[str] = Field(None, alias="tenantId", description=DESC_TARGET_TENANT)
    model_config = ConfigDict(populate_by_name=True, frozen=True, use_enum_values=True)

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, value: str) -> str:
        return _check_endpoint(value)


class SyncTargetCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description=DESC_TARGET_NAME)
    type: TargetType = Field(..., description=DESC_TARGET_TYPE)
    endpoint: str = Field(..., description=DESC_TARGET_ENDPOINT)
    enabled: bool = Field(True, description=DESC_TARGET_ENABLED)
    tenant_id: Optional[str] = Field(None, alias="tenantId", description=DESC_TARGET_TENANT)
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, value: str) -> str:
        return _check_endpoint(value)


class SyncTargetUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, use_enum_values=True)

    name: Optional[str] = Field(None, min_length=1, max_length=100, description=DESC_TARGET_NAME)
    endpoint: Optional[str] = Field(None, description=DESC_TARGET_ENDPOINT)
    enabled: Optional[bool] = Field(None, description=DESC_TARGET_ENABLED)
    tenant_id: Optional[str] = Field(None, alias="tenantId", description=DESC_TARGET_TENANT)

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else _check_endpoint(value)


class TargetSyncResult(BaseModel):
    target_id: str = Field(..., alias="targetId")
    target_name: str = Field(..., alias="targetName")
    outcome: TargetOutcome
    attempts: int = 0
    duration_ms: int = Field(0, alias="durationMs")
    error: Optional[str] = None
    model_config = ConfigDict(populate_by_name=True, frozen=True, use_enum_values=True)


class SyncRecord(BaseModel):
    id: str
    timestamp: datetime
    trigger: SyncTrigger
    targets: List[str] = Field(default_factory=list)
    status: SyncStatus
    duration_ms: int = Field(0, alias="durationMs")
    rules_updated: int = Field(0, alias="rulesUpdated")
    rules_added: int = Field(0, alias="rulesAdded")
    rules_deleted: int = Field(0, alias="rulesDeleted")
    message: str = ""
    version_id: Optional[str] = Field(None, alias="versionId")
    results: List[TargetSyncResult] = Field(default_factory=list)
    model_config = ConfigDict(populate_by_name=True, frozen=True, use_enum_values=True)
