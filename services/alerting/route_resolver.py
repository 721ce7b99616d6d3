"""
Route resolution: picks the enabled route with the lowest priority whose match is satisfied, breaking ties by declaration order. The default route matches everything, so it competes on priority like any other route.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import logging
from typing import Iterable, Mapping, Optional

from config import config
from models.alerting.routes import Route

from .errors import NoRouteMatched
from .matcher_engine import matches

logger = logging.getLogger(__name__)

SYSTEM_DEFAULT_ROUTE_ID = "__system_default__"


def resolve(labels: Mapping[str, str], routes: Iterable[Route]) -> Route:
    best: Optional[Route] = None
    for route in routes:
        if not route.enabled:
            continue
        # the default route has no matchers and is satisfied by any label set
        if not route.is_default and not matches(route.matchers, labels):
            continue
        # strict comparison keeps the first declared route on equal priority
        if best is None or route.priority < best.priority:
            best = route
    if best is not None:
        return best
    raise NoRouteMatched(f"No route matches labels {dict(labels)}")


def system_default_route() -> Route:
    return Route(
        id=SYSTEM_DEFAULT_ROUTE_ID,
        name="System default",
        receiver=config.DEFAULT_RECEIVER,
        groupBy=list(config.DEFAULT_GROUP_BY),
        groupWait=config.DEFAULT_GROUP_WAIT,
        groupInterval=config.DEFAULT_GROUP_INTERVAL,
        repeatInterval=config.DEFAULT_REPEAT_INTERVAL,
    )


def resolve_or_default(labels: Mapping[str, str], routes: Iterable[Route]) -> Route:
    try:
        return resolve(labels, routes)
    except NoRouteMatched:
        logger.warning(
            "No route matched labels %s and no default route is configured; using system receiver %s",
            dict(labels),
            config.DEFAULT_RECEIVER,
        )
        return system_default_route()
