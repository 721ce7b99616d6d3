"""
Silence operations: status projection and matching of alerts against the silences active at a point in time.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from models.alerting.alerts import Alert
from models.alerting.silences import Silence, SilenceState

from .matcher_engine import matches


def silence_states(silences: Iterable[Silence], now: datetime) -> Dict[str, str]:
    return {silence.id: silence.state_at(now).value for silence in silences}


def active_silences(silences: Iterable[Silence], now: datetime) -> List[Silence]:
    return [silence for silence in silences if silence.state_at(now) == SilenceState.ACTIVE]


def silencing_ids(alert: Alert, silences: Iterable[Silence], now: datetime) -> List[str]:
    return [silence.id for silence in active_silences(silences, now) if matches(silence.matchers, alert.labels)]


def is_silenced(alert: Alert, silences: Iterable[Silence], now: datetime) -> bool:
    return bool(silencing_ids(alert, silences, now))


def filter_silences(
    silences: Iterable[Silence],
    now: datetime,
    state: Optional[str] = None,
) -> List[Silence]:
    if not state:
        return list(silences)
    return [silence for silence in silences if silence.state_at(now).value == state]
