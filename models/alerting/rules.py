"""
Module defines Pydantic models for alerting rules evaluated by metrics engines.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from typing import Dict, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from enum import Enum

from .matchers import validate_label_name
from .routes import validate_duration


DESC_UNIQUE_IDENTIFIER = "Unique identifier"
DESC_RULE_NAME = "Rule name"
DESC_RULE_EXPRESSION = "Prometheus expression for the alert rule"
DESC_RULE_SEVERITY = "Severity level of the alert rule"
DESC_RULE_DESCRIPTION = "Description of the alert rule"
DESC_RULE_ENABLED = "Whether the rule is enabled"
DESC_RULE_LABELS = "Labels to add to alerts from this rule"
DESC_RULE_ANNOTATIONS = "Annotations to add to alerts from this rule"
DESC_RULE_FOR_DURATION = "Duration to wait before firing the alert"
DESC_RULE_GROUP_NAME = "Name of the rule group this rule belongs to"


class RuleSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def _check_labels(value: Dict[str, str]) -> Dict[str, str]:
    for key in value:
        validate_label_name(key)
    return value


class AlertingRule(BaseModel):
    id: str = Field(..., min_length=1, description=DESC_UNIQUE_IDENTIFIER)
    name: str = Field(..., min_length=1, max_length=100, description=DESC_RULE_NAME)
    expr: str = Field(..., min_length=1, alias="expression", description=DESC_RULE_EXPRESSION)
    severity: RuleSeverity = Field(RuleSeverity.WARNING, description=DESC_RULE_SEVERITY)
    description: Optional[str] = Field(None, description=DESC_RULE_DESCRIPTION)
    enabled: bool = Field(True, description=DESC_RULE_ENABLED)
    labels: Dict[str, str] = Field(default_factory=dict, description=DESC_RULE_LABELS)
    annotations: Dict[str, str] = Field(default_factory=dict, description=DESC_RULE_ANNOTATIONS)
    duration: str = Field("5m", alias="for", description=DESC_RULE_FOR_DURATION)
    group: str = Field("default", min_length=1, alias="groupName", description=DESC_RULE_GROUP_NAME)
    model_config = ConfigDict(use_enum_values=True, populate_by_name=True, frozen=True)

    @field_validator("labels")
    @classmethod
    def validate_labels(cls, value: Dict[str, str]) -> Dict[str, str]:
        return _check_labels(value)

    @field_validator("duration")
    @classmethod
    def validate_for(cls, value: str) -> str:
        return validate_duration(value)


class AlertingRuleCreate(BaseModel):
    id: Optional[str] = Field(None, description=DESC_UNIQUE_IDENTIFIER)
    name: str = Field(..., min_length=1, max_length=100, description=DESC_RULE_NAME)
    expr: str = Field(..., min_length=1, alias="expression", description=DESC_RULE_EXPRESSION)
    severity: RuleSeverity = Field(RuleSeverity.WARNING, description=DESC_RULE_SEVERITY)
    description: Optional[str] = Field(None, description=DESC_RULE_DESCRIPTION)
    enabled: bool = Field(True, description=DESC_RULE_ENABLED)
    labels: Dict[str, str] = Field(default_factory=dict, description=DESC_RULE_LABELS)
    annotations: Dict[str, str] = Field(default_factory=dict, description=DESC_RULE_ANNOTATIONS)
    duration: str = Field("5m", alias="for", description=DESC_RULE_FOR_DURATION)
    group: str = Field("default", min_length=1, alias="groupName", description=DESC_RULE_GROUP_NAME)
    model_config = ConfigDict(use_enum_values=True, populate_by_name=True)
