"""
Compiles the rule model into the configuration document pushed to monitoring targets.

The document has five sections: `global`, `route`, `receivers`, `inhibit_rules` and `groups`. Only enabled entities are emitted. Identical models always produce byte-identical canonical content, and the SHA-256 of that content is the configuration hash used for no-op detection in commits and syncs.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import hashlib
import json
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlencode

from config import config
from models.alerting.inhibitions import InhibitRule
from models.alerting.matchers import LabelMatcher, matcher_from_pattern
from models.alerting.receivers import ChatWebhookChannel, EmailChannel, Receiver, SmsChannel, WebhookChannel
from models.alerting.routes import Route
from models.alerting.rules import AlertingRule
from models.alerting.versions import CompiledConfig

from .errors import CompilationError
from .rule_model import RuleModel, RuleModelSnapshot
from .ruler_yaml import yaml_quote

logger = logging.getLogger(__name__)

KIND_ROUTE = "route"
KIND_RECEIVER = "receiver"
KIND_INHIBIT_RULE = "inhibit_rule"
KIND_ALERTING_RULE = "alerting_rule"

# chat and sms payload details carried on webhook entries
WEBHOOK_EXTENSION_KEYS = ("platform", "message")


def canonical_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def content_hash(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def rule_key(kind: str, entity_id: str) -> str:
    return f"{kind}:{entity_id}"


def _entity_hash(entity: Any) -> str:
    return content_hash(canonical_json(entity.model_dump(mode="json", by_alias=True)))


def matcher_expression(matcher: LabelMatcher) -> str:
    operator = "=~" if matcher.is_regex else "="
    return f"{matcher.name}{operator}{yaml_quote(matcher.value)}"


def _matcher_list(matchers: Sequence[LabelMatcher]) -> List[str]:
    return [matcher_expression(matcher) for matcher in matchers]


def _compile_channels(receiver: Receiver) -> Dict[str, List[Dict[str, Any]]]:
    email_configs: List[Dict[str, Any]] = []
    webhook_configs: List[Dict[str, Any]] = []
    for channel in receiver.channels:
        if isinstance(channel, EmailChannel):
            entry: Dict[str, Any] = {"to": ", ".join(channel.to), "send_resolved": channel.send_resolved}
            if channel.subject:
                entry["headers"] = {"Subject": channel.subject}
            if channel.template:
                entry["html"] = channel.template
            email_configs.append(entry)
        elif isinstance(channel, WebhookChannel):
            webhook_configs.append({"url": channel.url, "send_resolved": channel.send_resolved})
        elif isinstance(channel, ChatWebhookChannel):
            entry = {"url": channel.url, "send_resolved": channel.send_resolved, "platform": channel.platform}
            if channel.secret:
                entry["http_config"] = {"authorization": {"type": "Bearer", "credentials": channel.secret}}
            if channel.template:
                entry["message"] = channel.template
            webhook_configs.append(entry)
        elif isinstance(channel, SmsChannel):
            separator = "&" if "?" in channel.gateway_url else "?"
            query = urlencode({"to": ",".join(channel.phones)})
            entry = {"url": f"{channel.gateway_url}{separator}{query}", "send_resolved": channel.send_resolved}
            if channel.template:
                entry["message"] = channel.template
            webhook_configs.append(entry)
        else:
            raise CompilationError(
                f"Receiver '{receiver.name}' has unsupported channel type '{getattr(channel, 'type', channel)}'"
            )

    compiled: Dict[str, List[Dict[str, Any]]] = {}
    if email_configs:
        compiled["email_configs"] = email_configs
    if webhook_configs:
        compiled["webhook_configs"] = webhook_configs
    return compiled


def _compile_route(route: Route, receiver_name: str) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "receiver": receiver_name,
        "group_wait": route.group_wait,
        "group_interval": route.group_interval,
        "repeat_interval": route.repeat_interval,
        "continue": False,
    }
    if route.matchers:
        entry["matchers"] = _matcher_list(route.matchers)
    if route.group_by:
        entry["group_by"] = list(route.group_by)
    return entry


def _compile_inhibit_rule(rule: InhibitRule) -> Dict[str, Any]:
    return {
        "source_matchers": _matcher_list(rule.source_match),
        "target_matchers": _matcher_list(rule.target_match),
        "equal": list(rule.equal),
    }


def _compile_groups(rules: Sequence[AlertingRule]) -> List[Dict[str, Any]]:
    grouped: Dict[str, List[AlertingRule]] = {}
    for rule in rules:
        grouped.setdefault(rule.group, []).append(rule)

    groups = []
    for group_name in sorted(grouped):
        compiled_rules = []
        for rule in sorted(grouped[group_name], key=lambda entry: (entry.name, entry.id)):
            labels = dict(rule.labels)
            labels["severity"] = rule.severity
            compiled_rules.append(
                {
                    "alert": rule.name,
                    "expr": rule.expr,
                    "for": rule.duration,
                    "labels": labels,
                    "annotations": dict(rule.annotations),
                }
            )
        groups.append({"name": group_name, "rules": compiled_rules})
    return groups


def _revalidate_matchers(routes: Sequence[Route], errors: List[str]) -> None:
    for route in routes:
        for label, pattern in route.match.items():
            try:
                matcher_from_pattern(label, pattern)
            except ValueError as exc:
                errors.append(f"Route '{route.id}' has an invalid matcher for '{label}': {exc}")


def _global_section() -> Dict[str, Any]:
    return {
        "resolve_timeout": config.RESOLVE_TIMEOUT,
        "smtp_smarthost": config.SMTP_SMARTHOST,
        "smtp_from": config.SMTP_FROM,
    }


def _ordered_routes(routes: Sequence[Route]) -> Tuple[List[Route], Optional[Route]]:
    enabled = [route for route in routes if route.enabled]
    default = next((route for route in enabled if route.is_default), None)
    # sorted() is stable, so equal priorities keep declaration order
    children = sorted((route for route in enabled if not route.is_default), key=lambda route: route.priority)
    return children, default


def compile_snapshot(snapshot: RuleModelSnapshot) -> CompiledConfig:
    errors: List[str] = []
    receivers_by_id = {receiver.id: receiver for receiver in snapshot.receivers}
    children, default_route = _ordered_routes(snapshot.routes)
    ordered = children + ([default_route] if default_route is not None else [])

    _revalidate_matchers(ordered, errors)
    for route in ordered:
        receiver = receivers_by_id.get(route.receiver)
        if receiver is None:
            errors.append(f"Route '{route.id}' references missing receiver '{route.receiver}'")
        elif not receiver.enabled:
            errors.append(f"Route '{route.id}' references disabled receiver '{route.receiver}'")
    if errors:
        raise CompilationError(f"Compilation failed with {len(errors)} error(s)", errors)

    rule_index: Dict[str, str] = {}
    compiled_routes = []
    for route in ordered:
        compiled_routes.append(_compile_route(route, receivers_by_id[route.receiver].name))
        rule_index[rule_key(KIND_ROUTE, route.id)] = _entity_hash(route)

    root_receiver = receivers_by_id[default_route.receiver].name if default_route else config.DEFAULT_RECEIVER
    root_group_by = list(default_route.group_by) if default_route and default_route.group_by else list(config.DEFAULT_GROUP_BY)

    receivers = []
    for receiver in sorted((item for item in snapshot.receivers if item.enabled), key=lambda item: item.name):
        receivers.append({"name": receiver.name, **_compile_channels(receiver)})
        rule_index[rule_key(KIND_RECEIVER, receiver.id)] = _entity_hash(receiver)
    if not any(entry["name"] == root_receiver for entry in receivers):
        # root route needs a resolvable receiver even when nothing routes to it explicitly
        receivers.append({"name": root_receiver})
        receivers.sort(key=lambda entry: entry["name"])

    inhibit_rules = []
    for rule in snapshot.inhibit_rules:
        if not rule.enabled:
            continue
        inhibit_rules.append(_compile_inhibit_rule(rule))
        rule_index[rule_key(KIND_INHIBIT_RULE, rule.id)] = _entity_hash(rule)

    alerting_rules = [rule for rule in snapshot.alerting_rules if rule.enabled]
    for rule in alerting_rules:
        rule_index[rule_key(KIND_ALERTING_RULE, rule.id)] = _entity_hash(rule)

    document = {
        "global": _global_section(),
        "route": {
            "receiver": root_receiver,
            "group_by": root_group_by,
            "group_wait": config.DEFAULT_GROUP_WAIT,
            "group_interval": config.DEFAULT_GROUP_INTERVAL,
            "repeat_interval": config.DEFAULT_REPEAT_INTERVAL,
            "routes": compiled_routes,
        },
        "receivers": receivers,
        "inhibit_rules": inhibit_rules,
        "groups": _compile_groups(alerting_rules),
    }
    content = canonical_json(document)
    compiled = CompiledConfig(
        document=document,
        content=content,
        configHash=content_hash(content),
        ruleIndex=rule_index,
        ruleCount=len(rule_index),
    )
    logger.debug("Compiled configuration %s with %d entities", compiled.config_hash[:12], compiled.rule_count)
    return compiled


def compile_model(model: RuleModel) -> CompiledConfig:
    return compile_snapshot(model.snapshot())
