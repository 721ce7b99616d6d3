"""
Inhibition evaluation. Evaluated per notification attempt against the current set of active alerts; results are never cached.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from typing import Iterable, List, Sequence

from models.alerting.alerts import Alert
from models.alerting.inhibitions import InhibitRule

from .matcher_engine import labels_equal, matches


def _rule_inhibits(rule: InhibitRule, candidate: Alert, active_alerts: Sequence[Alert]) -> bool:
    if not rule.enabled or not matches(rule.target_match, candidate.labels):
        return False
    for source in active_alerts:
        if source.is_same_alert(candidate):
            continue
        if matches(rule.source_match, source.labels) and labels_equal(source.labels, candidate.labels, rule.equal):
            return True
    return False


def is_inhibited(candidate: Alert, active_alerts: Iterable[Alert], rules: Iterable[InhibitRule]) -> bool:
    alerts = list(active_alerts)
    if not alerts:
        return False
    return any(_rule_inhibits(rule, candidate, alerts) for rule in rules)


def inhibiting_rules(candidate: Alert, active_alerts: Iterable[Alert], rules: Iterable[InhibitRule]) -> List[str]:
    alerts = list(active_alerts)
    return [rule.id for rule in rules if _rule_inhibits(rule, candidate, alerts)]
