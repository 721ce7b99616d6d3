"""
Module defines the label matcher model shared by routes, inhibition rules and silences, together with the parser for route match values.

Route match values use `|` to separate literal alternatives. A backslash escapes the next character, so `\\|` is a literal pipe and `\\\\` a literal backslash; any other escape, a trailing backslash, or an empty alternative is rejected. Alternatives are always compared against the whole label value.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import re
from typing import List, Optional, Pattern

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator, model_validator

DESC_LABEL_NAME_MATCH = "Label name to match"
DESC_VALUE_MATCH_AGAINST = "Value to match against"
DESC_VALUE_IS_REGEX = "Whether the value is a regular expression"

_LABEL_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
_ESCAPABLE = {"|", "\\"}


def validate_label_name(name: str) -> str:
    if not _LABEL_NAME_RE.match(name or ""):
        raise ValueError(f"Invalid label name '{name}'")
    return name


class LabelMatcher(BaseModel):
    name: str = Field(..., description=DESC_LABEL_NAME_MATCH)
    value: str = Field(..., description=DESC_VALUE_MATCH_AGAINST)
    is_regex: bool = Field(False, alias="isRegex", description=DESC_VALUE_IS_REGEX)
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    _pattern: Optional[Pattern[str]] = PrivateAttr(default=None)

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return validate_label_name(value)

    @model_validator(mode="after")
    def _check_regex(self) -> "LabelMatcher":
        if self.is_regex:
            try:
                self._pattern = re.compile(self.value)
            except re.error as exc:
                raise ValueError(f"Invalid regular expression '{self.value}': {exc}") from exc
        return self

    def matches_value(self, candidate: Optional[str]) -> bool:
        if candidate is None:
            return False
        if self.is_regex:
            pattern = self._pattern or re.compile(self.value)
            return pattern.fullmatch(candidate) is not None
        return candidate == self.value


def split_alternatives(pattern: str) -> List[str]:
    if pattern is None or pattern == "":
        raise ValueError("Match value cannot be empty")

    alternatives: List[str] = []
    current: List[str] = []
    escaped = False
    for char in pattern:
        if escaped:
            if char not in _ESCAPABLE:
                raise ValueError(f"Unsupported escape '\\{char}' in match value '{pattern}'")
            current.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == "|":
            alternatives.append("".join(current))
            current = []
        else:
            current.append(char)
    if escaped:
        raise ValueError(f"Trailing backslash in match value '{pattern}'")
    alternatives.append("".join(current))

    if any(alt == "" for alt in alternatives):
        raise ValueError(f"Empty alternative in match value '{pattern}'")
    return alternatives


def matcher_from_pattern(name: str, pattern: str) -> LabelMatcher:
    alternatives = split_alternatives(pattern)
    if len(alternatives) == 1:
        return LabelMatcher(name=name, value=alternatives[0], isRegex=False)
    regex = "|".join(re.escape(alt) for alt in alternatives)
    return LabelMatcher(name=name, value=regex, isRegex=True)
