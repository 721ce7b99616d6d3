"""
Label matching shared by routes, inhibition rules and silences. A matcher list is a conjunction; a matcher whose label is absent from the label set fails.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from typing import Iterable, Mapping

from models.alerting.matchers import LabelMatcher


def matches(matchers: Iterable[LabelMatcher], labels: Mapping[str, str]) -> bool:
    for matcher in matchers:
        if not matcher.matches_value(labels.get(matcher.name)):
            return False
    return True


def labels_equal(left: Mapping[str, str], right: Mapping[str, str], names: Iterable[str]) -> bool:
    # a label missing on both sides counts as equal, like Alertmanager's empty-string comparison
    for name in names:
        if left.get(name, "") != right.get(name, ""):
            return False
    return True
