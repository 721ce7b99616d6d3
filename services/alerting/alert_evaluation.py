"""
Per-notification decision for a single alert: route and receiver selection, silences and inhibition.

A silenced alert still counts as an inhibition source. Silences only stop notifications for the alerts they match; they do not change which alerts are active.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from config import config
from models.alerting.alerts import Alert, AlertDecision

from .inhibition import inhibiting_rules
from .route_resolver import SYSTEM_DEFAULT_ROUTE_ID, resolve_or_default
from .rule_model import RuleModelSnapshot
from .silences_ops import silencing_ids

logger = logging.getLogger(__name__)


def evaluate(
    alert: Alert,
    active_alerts: Iterable[Alert],
    snapshot: RuleModelSnapshot,
    now: Optional[datetime] = None,
) -> AlertDecision:
    now = now or datetime.now(timezone.utc)
    route = resolve_or_default(alert.labels, snapshot.routes)
    degraded = route.id == SYSTEM_DEFAULT_ROUTE_ID

    receiver_name = config.DEFAULT_RECEIVER
    if not degraded:
        receiver = next((item for item in snapshot.receivers if item.id == route.receiver), None)
        if receiver is None or not receiver.enabled:
            logger.warning(
                "Route %s references unavailable receiver %s; using system receiver %s",
                route.id,
                route.receiver,
                config.DEFAULT_RECEIVER,
            )
            degraded = True
        else:
            receiver_name = receiver.name

    silenced_by = silencing_ids(alert, snapshot.silences, now)
    inhibited_by = inhibiting_rules(alert, active_alerts, snapshot.inhibit_rules)
    return AlertDecision(
        route=None if route.id == SYSTEM_DEFAULT_ROUTE_ID else route.id,
        receiver=receiver_name,
        silencedBy=silenced_by,
        inhibitedBy=inhibited_by,
        notify=not silenced_by and not inhibited_by,
        degraded=degraded,
    )
