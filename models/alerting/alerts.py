"""
Module defines Pydantic models for alerts submitted for evaluation and the routing decision returned for them.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

DESC_KEY_VALUE_PAIRS_IDENTIFY_ALERT = "Key-value pairs that identify the alert"
DESC_ADDITIONAL_INFO_ALERT = "Additional information about the alert"
DESC_TIME_ALERT_STARTED_FIRING = "Time when the alert started firing"
DESC_TIME_ALERT_STOPPED_FIRING = "Time when the alert stopped firing"
DESC_UNIQUE_IDENTIFIER_ALERT = "Unique identifier for the alert"
DESC_ROUTE_SELECTED = "Identifier of the route selected for the alert"
DESC_RECEIVER_HANDLE_ALERT = "Name of the receiver that handles the alert"
DESC_LIST_SILENCES_SILENCE_ALERT = "List of silences that silence this alert"
DESC_LIST_RULES_INHIBIT_ALERT = "List of inhibition rules that suppress this alert"
DESC_ALERT_NOTIFY = "Whether a notification is sent for the alert"
DESC_ALERT_DEGRADED = "Whether routing fell back to the system default receiver"


class Alert(BaseModel):
    labels: Dict[str, str] = Field(..., description=DESC_KEY_VALUE_PAIRS_IDENTIFY_ALERT)
    annotations: Dict[str, str] = Field(default_factory=dict, description=DESC_ADDITIONAL_INFO_ALERT)
    starts_at: Optional[datetime] = Field(None, alias="startsAt", description=DESC_TIME_ALERT_STARTED_FIRING)
    ends_at: Optional[datetime] = Field(None, alias="endsAt", description=DESC_TIME_ALERT_STOPPED_FIRING)
    fingerprint: Optional[str] = Field(None, description=DESC_UNIQUE_IDENTIFIER_ALERT)

    model_config = ConfigDict(populate_by_name=True)

    def is_same_alert(self, other: "Alert") -> bool:
        if self.fingerprint and other.fingerprint:
            return self.fingerprint == other.fingerprint
        return self.labels == other.labels


class AlertDecision(BaseModel):
    route: Optional[str] = Field(None, description=DESC_ROUTE_SELECTED)
    receiver: str = Field(..., description=DESC_RECEIVER_HANDLE_ALERT)
    silenced_by: List[str] = Field(default_factory=list, alias="silencedBy", description=DESC_LIST_SILENCES_SILENCE_ALERT)
    inhibited_by: List[str] = Field(default_factory=list, alias="inhibitedBy", description=DESC_LIST_RULES_INHIBIT_ALERT)
    notify: bool = Field(..., description=DESC_ALERT_NOTIFY)
    degraded: bool = Field(False, description=DESC_ALERT_DEGRADED)

    model_config = ConfigDict(populate_by_name=True)
