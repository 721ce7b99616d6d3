"""
Module defines Pydantic models for silences. A silence's status is derived from its time window and is never stored.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from .matchers import LabelMatcher

# Description constants
DESC_UNIQUE_IDENTIFIER_SILENCE = "Unique identifier for the silence"
DESC_MATCHERS_DEFINE_SILENCE = "Matchers that define which alerts to silence"
DESC_TIME_SILENCE_STARTS = "Time when the silence starts"
DESC_TIME_SILENCE_ENDS = "Time when the silence ends"
DESC_USER_CREATED_SILENCE = "User who created the silence"
DESC_COMMENT_EXPLAINING_SILENCE = "Comment explaining the silence"


class SilenceState(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    EXPIRED = "expired"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Silence(BaseModel):
    id: str = Field(..., min_length=1, description=DESC_UNIQUE_IDENTIFIER_SILENCE)
    comment: str = Field(..., description=DESC_COMMENT_EXPLAINING_SILENCE)
    matchers: List[LabelMatcher] = Field(..., min_length=1, description=DESC_MATCHERS_DEFINE_SILENCE)
    starts_at: datetime = Field(..., alias="startsAt", description=DESC_TIME_SILENCE_STARTS)
    ends_at: datetime = Field(..., alias="endsAt", description=DESC_TIME_SILENCE_ENDS)
    created_by: str = Field(..., alias="createdBy", description=DESC_USER_CREATED_SILENCE)
    model_config = ConfigDict(populate_by_name=True, frozen=True, use_enum_values=True)

    @field_validator("starts_at", "ends_at")
    @classmethod
    def _normalize_tz(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @model_validator(mode="after")
    def _check_window(self) -> "Silence":
        if self.ends_at <= self.starts_at:
            raise ValueError("Silence endsAt must be after startsAt")
        return self

    def state_at(self, now: datetime) -> SilenceState:
        now = _as_utc(now)
        if now < self.starts_at:
            return SilenceState.PENDING
        if now < self.ends_at:
            return SilenceState.ACTIVE
        return SilenceState.EXPIRED

    @computed_field  # type: ignore[prop-decorator]
    @property
    def status(self) -> str:
        return self.state_at(datetime.now(timezone.utc)).value


class SilenceCreate(BaseModel):
    id: Optional[str] = Field(None, description=DESC_UNIQUE_IDENTIFIER_SILENCE)
    comment: str = Field(..., description=DESC_COMMENT_EXPLAINING_SILENCE)
    matchers: List[LabelMatcher] = Field(..., min_length=1, description=DESC_MATCHERS_DEFINE_SILENCE)
    starts_at: datetime = Field(..., alias="startsAt", description=DESC_TIME_SILENCE_STARTS)
    ends_at: datetime = Field(..., alias="endsAt", description=DESC_TIME_SILENCE_ENDS)
    created_by: str = Field(..., alias="createdBy", description=DESC_USER_CREATED_SILENCE)
    model_config = ConfigDict(populate_by_name=True)
