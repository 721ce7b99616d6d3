"""
Module defines Pydantic models for inhibition rules.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .matchers import LabelMatcher, validate_label_name

DESC_UNIQUE_IDENTIFIER = "Unique identifier"
DESC_INHIBIT_NAME = "Inhibition rule name"
DESC_INHIBIT_DESCRIPTION = "Description of the inhibition rule"
DESC_INHIBIT_SOURCE_MATCH = "Matchers selecting the alerts that inhibit"
DESC_INHIBIT_TARGET_MATCH = "Matchers selecting the alerts that get inhibited"
DESC_INHIBIT_EQUAL = "Labels whose values must be equal on source and target alerts"
DESC_INHIBIT_ENABLED = "Whether the inhibition rule is enabled"


class InhibitRule(BaseModel):
    id: str = Field(..., min_length=1, description=DESC_UNIQUE_IDENTIFIER)
    name: str = Field(..., min_length=1, max_length=100, description=DESC_INHIBIT_NAME)
    description: Optional[str] = Field(None, description=DESC_INHIBIT_DESCRIPTION)
    source_match: List[LabelMatcher] = Field(..., min_length=1, alias="sourceMatch", description=DESC_INHIBIT_SOURCE_MATCH)
    target_match: List[LabelMatcher] = Field(..., min_length=1, alias="targetMatch", description=DESC_INHIBIT_TARGET_MATCH)
    equal: List[str] = Field(default_factory=list, description=DESC_INHIBIT_EQUAL)
    enabled: bool = Field(True, description=DESC_INHIBIT_ENABLED)
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("equal")
    @classmethod
    def _check_equal(cls, value: List[str]) -> List[str]:
        for label in value:
            validate_label_name(label)
        return value


class InhibitRuleCreate(BaseModel):
    id: Optional[str] = Field(None, description=DESC_UNIQUE_IDENTIFIER)
    name: str = Field(..., min_length=1, max_length=100, description=DESC_INHIBIT_NAME)
    description: Optional[str] = Field(None, description=DESC_INHIBIT_DESCRIPTION)
    source_match: List[LabelMatcher] = Field(..., min_length=1, alias="sourceMatch", description=DESC_INHIBIT_SOURCE_MATCH)
    target_match: List[LabelMatcher] = Field(..., min_length=1, alias="targetMatch", description=DESC_INHIBIT_TARGET_MATCH)
    equal: List[str] = Field(default_factory=list, description=DESC_INHIBIT_EQUAL)
    enabled: bool = Field(True, description=DESC_INHIBIT_ENABLED)
    model_config = ConfigDict(populate_by_name=True)
