"""
In-memory rule model owning routes, receivers, inhibition rules, alerting rules and silences. All mutation goes through the command methods, which validate the whole change before applying it; consumers read through projections or an immutable snapshot.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from models.alerting.inhibitions import InhibitRule
from models.alerting.receivers import Receiver
from models.alerting.routes import Route
from models.alerting.rules import AlertingRule
from models.alerting.silences import Silence, SilenceState

from .errors import EntityNotFound, RuleValidationError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)
Payload = Union[BaseModel, Mapping[str, Any]]


@dataclass(frozen=True)
class RuleModelSnapshot:
    routes: Tuple[Route, ...]
    receivers: Tuple[Receiver, ...]
    inhibit_rules: Tuple[InhibitRule, ...]
    alerting_rules: Tuple[AlertingRule, ...]
    silences: Tuple[Silence, ...]
    revision: int

    def to_document(self) -> Dict[str, Any]:
        return {
            "routes": [route.model_dump(mode="json", by_alias=True) for route in self.routes],
            "receivers": [receiver.model_dump(mode="json", by_alias=True) for receiver in self.receivers],
            "inhibitRules": [rule.model_dump(mode="json", by_alias=True) for rule in self.inhibit_rules],
            "alertingRules": [rule.model_dump(mode="json", by_alias=True) for rule in self.alerting_rules],
        }


def _format_errors(exc: ValidationError) -> List[str]:
    errors = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        errors.append(f"{location}: {message}" if location else message)
    return errors


def build_entity(model_cls: Type[M], payload: Payload, **overrides: Any) -> M:
    data = payload.model_dump() if isinstance(payload, BaseModel) else dict(payload)
    data.update(overrides)
    try:
        return model_cls.model_validate(data)
    except ValidationError as exc:
        errors = _format_errors(exc)
        raise RuleValidationError(f"Invalid {model_cls.__name__}: {'; '.join(errors)}", errors) from exc


def _new_id(payload: Payload) -> str:
    value = payload.get("id") if isinstance(payload, Mapping) else getattr(payload, "id", None)
    return str(value) if value else str(uuid.uuid4())


class RuleModel:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._routes: Dict[str, Route] = {}
        self._receivers: Dict[str, Receiver] = {}
        self._inhibit_rules: Dict[str, InhibitRule] = {}
        self._alerting_rules: Dict[str, AlertingRule] = {}
        self._silences: Dict[str, Silence] = {}
        self._revision = 0

    @property
    def revision(self) -> int:
        return self._revision

    def _touch(self) -> None:
        self._revision += 1

    @staticmethod
    def _check_default_routes(routes: Mapping[str, Route]) -> None:
        defaults = [route.id for route in routes.values() if route.enabled and route.is_default]
        if len(defaults) > 1:
            raise RuleValidationError(
                f"Only one enabled default route is allowed, found {len(defaults)}: {', '.join(defaults)}"
            )

    @staticmethod
    def _check_receiver_names(receivers: Mapping[str, Receiver]) -> None:
        seen: Dict[str, str] = {}
        for receiver in receivers.values():
            other = seen.get(receiver.name)
            if other is not None:
                raise RuleValidationError(
                    f"Receiver name '{receiver.name}' is used by both '{other}' and '{receiver.id}'"
                )
            seen[receiver.name] = receiver.id

    @staticmethod
    def _require(store: Mapping[str, M], entity_id: str, kind: str) -> M:
        entity = store.get(entity_id)
        if entity is None:
            raise EntityNotFound(f"{kind} '{entity_id}' not found")
        return entity

    # Routes

    def add_route(self, payload: Payload) -> Route:
        with self._lock:
            route_id = _new_id(payload)
            if route_id in self._routes:
                raise RuleValidationError(f"Duplicate route id '{route_id}'")
            route = build_entity(Route, payload, id=route_id)
            candidate = {**self._routes, route.id: route}
            self._check_default_routes(candidate)
            self._routes = candidate
            self._touch()
            logger.info("Added route %s (%s)", route.id, route.name)
            return route

    def update_route(self, route_id: str, payload: Payload) -> Route:
        with self._lock:
            self._require(self._routes, route_id, "Route")
            route = build_entity(Route, payload, id=route_id)
            candidate = dict(self._routes)
            candidate[route_id] = route
            self._check_default_routes(candidate)
            self._routes = candidate
            self._touch()
            return route

    def toggle_route(self, route_id: str, enabled: bool) -> Route:
        with self._lock:
            route = self._require(self._routes, route_id, "Route").model_copy(update={"enabled": enabled})
            candidate = dict(self._routes)
            candidate[route_id] = route
            self._check_default_routes(candidate)
            self._routes = candidate
            self._touch()
            return route

    def remove_route(self, route_id: str) -> None:
        with self._lock:
            self._require(self._routes, route_id, "Route")
            self._routes = {key: value for key, value in self._routes.items() if key != route_id}
            self._touch()
            logger.info("Removed route %s", route_id)

    def get_route(self, route_id: str) -> Route:
        with self._lock:
            return self._require(self._routes, route_id, "Route")

    def routes(self) -> List[Route]:
        with self._lock:
            return list(self._routes.values())

    # Receivers

    def add_receiver(self, payload: Payload) -> Receiver:
        with self._lock:
            receiver_id = _new_id(payload)
            if receiver_id in self._receivers:
                raise RuleValidationError(f"Duplicate receiver id '{receiver_id}'")
            receiver = build_entity(Receiver, payload, id=receiver_id)
            candidate = {**self._receivers, receiver.id: receiver}
            self._check_receiver_names(candidate)
            self._receivers = candidate
            self._touch()
            logger.info("Added receiver %s (%s)", receiver.id, receiver.name)
            return receiver

    def update_receiver(self, receiver_id: str, payload: Payload) -> Receiver:
        with self._lock:
            self._require(self._receivers, receiver_id, "Receiver")
            receiver = build_entity(Receiver, payload, id=receiver_id)
            candidate = dict(self._receivers)
            candidate[receiver_id] = receiver
            self._check_receiver_names(candidate)
            self._receivers = candidate
            self._touch()
            return receiver

    def toggle_receiver(self, receiver_id: str, enabled: bool) -> Receiver:
        with self._lock:
            receiver = self._require(self._receivers, receiver_id, "Receiver").model_copy(update={"enabled": enabled})
            self._receivers = {**self._receivers, receiver_id: receiver}
            self._touch()
            return receiver

    def remove_receiver(self, receiver_id: str) -> None:
        with self._lock:
            self._require(self._receivers, receiver_id, "Receiver")
            self._receivers = {key: value for key, value in self._receivers.items() if key != receiver_id}
            self._touch()
            logger.info("Removed receiver %s", receiver_id)

    def get_receiver(self, receiver_id: str) -> Receiver:
        with self._lock:
            return self._require(self._receivers, receiver_id, "Receiver")

    def receivers(self) -> List[Receiver]:
        with self._lock:
            return list(self._receivers.values())

    # Inhibition rules

    def add_inhibit_rule(self, payload: Payload) -> InhibitRule:
        with self._lock:
            rule_id = _new_id(payload)
            if rule_id in self._inhibit_rules:
                raise RuleValidationError(f"Duplicate inhibition rule id '{rule_id}'")
            rule = build_entity(InhibitRule, payload, id=rule_id)
            self._inhibit_rules = {**self._inhibit_rules, rule.id: rule}
            self._touch()
            return rule

    def update_inhibit_rule(self, rule_id: str, payload: Payload) -> InhibitRule:
        with self._lock:
            self._require(self._inhibit_rules, rule_id, "Inhibition rule")
            rule = build_entity(InhibitRule, payload, id=rule_id)
            self._inhibit_rules = {**self._inhibit_rules, rule_id: rule}
            self._touch()
            return rule

    def toggle_inhibit_rule(self, rule_id: str, enabled: bool) -> InhibitRule:
        with self._lock:
            rule = self._require(self._inhibit_rules, rule_id, "Inhibition rule").model_copy(update={"enabled": enabled})
            self._inhibit_rules = {**self._inhibit_rules, rule_id: rule}
            self._touch()
            return rule

    def remove_inhibit_rule(self, rule_id: str) -> None:
        with self._lock:
            self._require(self._inhibit_rules, rule_id, "Inhibition rule")
            self._inhibit_rules = {key: value for key, value in self._inhibit_rules.items() if key != rule_id}
            self._touch()

    def inhibit_rules(self) -> List[InhibitRule]:
        with self._lock:
            return list(self._inhibit_rules.values())

    # Alerting rules

    def add_alerting_rule(self, payload: Payload) -> AlertingRule:
        with self._lock:
            rule_id = _new_id(payload)
            if rule_id in self._alerting_rules:
                raise RuleValidationError(f"Duplicate alerting rule id '{rule_id}'")
            rule = build_entity(AlertingRule, payload, id=rule_id)
            self._alerting_rules = {**self._alerting_rules, rule.id: rule}
            self._touch()
            return rule

    def update_alerting_rule(self, rule_id: str, payload: Payload) -> AlertingRule:
        with self._lock:
            self._require(self._alerting_rules, rule_id, "Alerting rule")
            rule = build_entity(AlertingRule, payload, id=rule_id)
            self._alerting_rules = {**self._alerting_rules, rule_id: rule}
            self._touch()
            return rule

    def toggle_alerting_rule(self, rule_id: str, enabled: bool) -> AlertingRule:
        with self._lock:
            rule = self._require(self._alerting_rules, rule_id, "Alerting rule").model_copy(update={"enabled": enabled})
            self._alerting_rules = {**self._alerting_rules, rule_id: rule}
            self._touch()
            return rule

    def remove_alerting_rule(self, rule_id: str) -> None:
        with self._lock:
            self._require(self._alerting_rules, rule_id, "Alerting rule")
            self._alerting_rules = {key: value for key, value in self._alerting_rules.items() if key != rule_id}
            self._touch()

    def alerting_rules(self) -> List[AlertingRule]:
        with self._lock:
            return list(self._alerting_rules.values())

    # Silences

    def add_silence(self, payload: Payload) -> Silence:
        with self._lock:
            silence_id = _new_id(payload)
            if silence_id in self._silences:
                raise RuleValidationError(f"Duplicate silence id '{silence_id}'")
            silence = build_entity(Silence, payload, id=silence_id)
            self._silences = {**self._silences, silence.id: silence}
            self._touch()
            logger.info("Added silence %s by %s", silence.id, silence.created_by)
            return silence

    def expire_silence(self, silence_id: str, now: Optional[datetime] = None) -> Silence:
        now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
        with self._lock:
            silence = self._require(self._silences, silence_id, "Silence")
            if silence.state_at(now) == SilenceState.EXPIRED:
                return silence
            expired = silence.model_copy(update={"starts_at": min(silence.starts_at, now), "ends_at": now})
            self._silences = {**self._silences, silence_id: expired}
            self._touch()
            logger.info("Expired silence %s", silence_id)
            return expired

    def remove_silence(self, silence_id: str) -> None:
        with self._lock:
            self._require(self._silences, silence_id, "Silence")
            self._silences = {key: value for key, value in self._silences.items() if key != silence_id}
            self._touch()

    def silences(self) -> List[Silence]:
        with self._lock:
            return list(self._silences.values())

    # Bulk

    def load(self, document: Mapping[str, Any]) -> None:
        """Replace the model from a document. Nothing is applied unless every entity validates.

        Silences are replaced only when the document has a `silences` key, so restoring a
        configuration document leaves operational silences in place.
        """
        sections = {
            "routes": (Route, "route"),
            "receivers": (Receiver, "receiver"),
            "inhibitRules": (InhibitRule, "inhibition rule"),
            "alertingRules": (AlertingRule, "alerting rule"),
            "silences": (Silence, "silence"),
        }
        built: Dict[str, Dict[str, Any]] = {}
        errors: List[str] = []
        for section, (model_cls, kind) in sections.items():
            entries: Dict[str, Any] = {}
            for index, payload in enumerate(document.get(section) or []):
                entity_id = _new_id(payload)
                if entity_id in entries:
                    errors.append(f"{section}[{index}]: duplicate {kind} id '{entity_id}'")
                    continue
                try:
                    entries[entity_id] = build_entity(model_cls, payload, id=entity_id)
                except RuleValidationError as exc:
                    errors.extend(f"{section}[{index}]: {error}" for error in exc.errors)
            built[section] = entries

        if not errors:
            try:
                self._check_default_routes(built["routes"])
                self._check_receiver_names(built["receivers"])
            except RuleValidationError as exc:
                errors.extend(exc.errors)
        if errors:
            raise RuleValidationError(f"Rule model document rejected with {len(errors)} error(s)", errors)

        with self._lock:
            self._routes = built["routes"]
            self._receivers = built["receivers"]
            self._inhibit_rules = built["inhibitRules"]
            self._alerting_rules = built["alertingRules"]
            if "silences" in document:
                self._silences = built["silences"]
            self._touch()
        logger.info(
            "Loaded rule model: %d routes, %d receivers, %d inhibition rules, %d alerting rules, %d silences",
            len(self._routes),
            len(self._receivers),
            len(self._inhibit_rules),
            len(self._alerting_rules),
            len(self._silences),
        )

    def snapshot(self) -> RuleModelSnapshot:
        with self._lock:
            return RuleModelSnapshot(
                routes=tuple(self._routes.values()),
                receivers=tuple(self._receivers.values()),
                inhibit_rules=tuple(self._inhibit_rules.values()),
                alerting_rules=tuple(self._alerting_rules.values()),
                silences=tuple(self._silences.values()),
                revision=self._revision,
            )
