"""
Request models for alert configuration API endpoints.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .alerts import Alert


class ToggleRequest(BaseModel):
    enabled: bool


class CommitRequest(BaseModel):
    author: str = Field(..., min_length=1)
    description: str = ""
    force: bool = False


class RollbackRequest(BaseModel):
    author: str = Field(..., min_length=1)
    description: Optional[str] = None


class SyncRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    target_ids: Optional[List[str]] = Field(None, alias="targetIds")
    version_id: Optional[str] = Field(None, alias="versionId")
    force: bool = False


class ResolveRequest(BaseModel):
    labels: Dict[str, str] = Field(default_factory=dict)


class EvaluateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    alert: Alert
    active_alerts: List[Alert] = Field(default_factory=list, alias="activeAlerts")
    now: Optional[datetime] = None


class AutoSyncSettingsRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    enabled: Optional[bool] = None
    interval_seconds: Optional[float] = Field(None, gt=0, alias="intervalSeconds")


ExportFormat = Literal["yaml", "json"]
