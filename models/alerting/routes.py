"""
Module defines Pydantic models for notification routes.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from .matchers import LabelMatcher, matcher_from_pattern, validate_label_name

DESC_UNIQUE_IDENTIFIER = "Unique identifier"
DESC_ROUTE_NAME = "Route name"
DESC_ROUTE_DESCRIPTION = "Description of the route"
DESC_ROUTE_MATCH = "Label patterns an alert must satisfy; values accept '|' alternation"
DESC_ROUTE_RECEIVER = "Identifier of the receiver notified by this route"
DESC_ROUTE_GROUP_BY = "Labels used to group alerts"
DESC_ROUTE_GROUP_WAIT = "How long to wait before sending the first notification for a group"
DESC_ROUTE_GROUP_INTERVAL = "How long to wait before notifying about new alerts in a group"
DESC_ROUTE_REPEAT_INTERVAL = "How long to wait before re-sending a notification"
DESC_ROUTE_ENABLED = "Whether the route is enabled"
DESC_ROUTE_PRIORITY = "Route priority; lower values win"

_DURATION_RE = re.compile(r"^((\d+)(ms|s|m|h|d|w|y))+$")


def validate_duration(value: str) -> str:
    if not _DURATION_RE.match(value or ""):
        raise ValueError(f"Invalid duration '{value}'")
    return value


class Route(BaseModel):
    id: str = Field(..., min_length=1, description=DESC_UNIQUE_IDENTIFIER)
    name: str = Field(..., min_length=1, max_length=100, description=DESC_ROUTE_NAME)
    description: Optional[str] = Field(None, description=DESC_ROUTE_DESCRIPTION)
    match: Dict[str, str] = Field(default_factory=dict, description=DESC_ROUTE_MATCH)
    receiver: str = Field(..., min_length=1, description=DESC_ROUTE_RECEIVER)
    group_by: List[str] = Field(default_factory=list, alias="groupBy", description=DESC_ROUTE_GROUP_BY)
    group_wait: str = Field("30s", alias="groupWait", description=DESC_ROUTE_GROUP_WAIT)
    group_interval: str = Field("5m", alias="groupInterval", description=DESC_ROUTE_GROUP_INTERVAL)
    repeat_interval: str = Field("4h", alias="repeatInterval", description=DESC_ROUTE_REPEAT_INTERVAL)
    enabled: bool = Field(True, description=DESC_ROUTE_ENABLED)
    priority: int = Field(100, ge=0, description=DESC_ROUTE_PRIORITY)
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    _matchers: List[LabelMatcher] = PrivateAttr(default_factory=list)

    @field_validator("match")
    @classmethod
    def _check_match(cls, value: Dict[str, str]) -> Dict[str, str]:
        for label, pattern in value.items():
            validate_label_name(label)
            matcher_from_pattern(label, pattern)
        return value

    @field_validator("group_by")
    @classmethod
    def _check_group_by(cls, value: List[str]) -> List[str]:
        for label in value:
            if label != "...":
                validate_label_name(label)
        return value

    @field_validator("group_wait", "group_interval", "repeat_interval")
    @classmethod
    def _check_durations(cls, value: str) -> str:
        return validate_duration(value)

    def model_post_init(self, __context: Any) -> None:
        self._matchers = [matcher_from_pattern(label, self.match[label]) for label in sorted(self.match)]

    @property
    def matchers(self) -> List[LabelMatcher]:
        return list(self._matchers)

    @property
    def is_default(self) -> bool:
        return not self.match


class RouteCreate(BaseModel):
    id: Optional[str] = Field(None, description=DESC_UNIQUE_IDENTIFIER)
    name: str = Field(..., min_length=1, max_length=100, description=DESC_ROUTE_NAME)
    description: Optional[str] = Field(None, description=DESC_ROUTE_DESCRIPTION)
    match: Dict[str, str] = Field(default_factory=dict, description=DESC_ROUTE_MATCH)
    receiver: str = Field(..., min_length=1, description=DESC_ROUTE_RECEIVER)
    group_by: List[str] = Field(default_factory=list, alias="groupBy", description=DESC_ROUTE_GROUP_BY)
    group_wait: str = Field("30s", alias="groupWait", description=DESC_ROUTE_GROUP_WAIT)
    group_interval: str = Field("5m", alias="groupInterval", description=DESC_ROUTE_GROUP_INTERVAL)
    repeat_interval: str = Field("4h", alias="repeatInterval", description=DESC_ROUTE_REPEAT_INTERVAL)
    enabled: bool = Field(True, description=DESC_ROUTE_ENABLED)
    priority: int = Field(100, ge=0, description=DESC_ROUTE_PRIORITY)
    model_config = ConfigDict(populate_by_name=True)
