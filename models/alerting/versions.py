"""
Module defines Pydantic models for compiled configuration documents, committed configuration versions and version diffs.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

DESC_COMPILED_DOCUMENT = "Compiled configuration document"
DESC_COMPILED_CONTENT = "Canonical serialized form of the document"
DESC_CONFIG_HASH = "SHA-256 hash of the canonical content"
DESC_RULE_INDEX = "Per-entity content hash keyed by kind and stable id"
DESC_RULE_COUNT = "Number of compiled entities"
DESC_VERSION_ID = "Unique identifier of the version"
DESC_VERSION_NUMBER = "Monotonic version number"
DESC_VERSION_TIMESTAMP = "Time the version was committed"
DESC_VERSION_AUTHOR = "Author of the version"
DESC_VERSION_DESCRIPTION = "Description of the change"
DESC_VERSION_CHANGES = "Entities added, modified and deleted relative to the previous version"
DESC_VERSION_IS_CURRENT = "Whether this version is the current one"
DESC_VERSION_ROLLBACK_OF = "Identifier of the version this one restores"


class CompiledConfig(BaseModel):
    document: Dict[str, Any] = Field(..., description=DESC_COMPILED_DOCUMENT)
    content: str = Field(..., description=DESC_COMPILED_CONTENT)
    config_hash: str = Field(..., alias="configHash", description=DESC_CONFIG_HASH)
    rule_index: Dict[str, str] = Field(default_factory=dict, alias="ruleIndex", description=DESC_RULE_INDEX)
    rule_count: int = Field(0, alias="ruleCount", description=DESC_RULE_COUNT)
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class ChangeSummary(BaseModel):
    added: List[str] = Field(default_factory=list)
    modified: List[str] = Field(default_factory=list)
    deleted: List[str] = Field(default_factory=list)
    model_config = ConfigDict(frozen=True)

    @property
    def total(self) -> int:
        return len(self.added) + len(self.modified) + len(self.deleted)


class ConfigVersion(BaseModel):
    id: str = Field(..., description=DESC_VERSION_ID)
    version: int = Field(..., ge=1, description=DESC_VERSION_NUMBER)
    timestamp: datetime = Field(..., description=DESC_VERSION_TIMESTAMP)
    author: str = Field(..., description=DESC_VERSION_AUTHOR)
    description: str = Field("", description=DESC_VERSION_DESCRIPTION)
    rule_count: int = Field(0, alias="ruleCount", description=DESC_RULE_COUNT)
    changes: ChangeSummary = Field(default_factory=ChangeSummary, description=DESC_VERSION_CHANGES)
    is_current: bool = Field(False, alias="isCurrent", description=DESC_VERSION_IS_CURRENT)
    config_hash: str = Field(..., alias="configHash", description=DESC_CONFIG_HASH)
    rollback_of: Optional[str] = Field(None, alias="rollbackOf", description=DESC_VERSION_ROLLBACK_OF)
    compiled: CompiledConfig = Field(..., exclude=True)
    source: Dict[str, Any] = Field(default_factory=dict, exclude=True)
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class ConfigDiff(BaseModel):
    from_version: str = Field(..., alias="fromVersion")
    to_version: str = Field(..., alias="toVersion")
    added: List[str] = Field(default_factory=list)
    modified: List[str] = Field(default_factory=list)
    deleted: List[str] = Field(default_factory=list)
    model_config = ConfigDict(populate_by_name=True, frozen=True)
