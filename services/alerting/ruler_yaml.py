"""
YAML helpers for the ruler API of metrics engines: quoting, rendering one compiled rule group, and reading group names back from a namespace listing.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import logging
from typing import Any, Dict, List

import yaml

logger = logging.getLogger(__name__)


def yaml_quote(value: object) -> str:
    text = str(value)
    escaped = text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'


def build_ruler_group_yaml(group: Dict[str, Any]) -> str:
    lines = [f"name: {yaml_quote(group['name'])}", "rules:"]
    for rule in group.get("rules") or []:
        lines.append(f"  - alert: {yaml_quote(rule['alert'])}")
        lines.append(f"    expr: {yaml_quote(rule['expr'])}")
        lines.append(f"    for: {yaml_quote(rule['for'])}")

        labels = rule.get("labels") or {}
        if labels:
            lines.append("    labels:")
            for key in sorted(labels.keys()):
                lines.append(f"      {key}: {yaml_quote(labels[key])}")

        annotations = rule.get("annotations") or {}
        if annotations:
            lines.append("    annotations:")
            for key in sorted(annotations.keys()):
                lines.append(f"      {key}: {yaml_quote(annotations[key])}")

    return "\n".join(lines) + "\n"


def extract_group_names(namespace_yaml: str) -> List[str]:
    if not namespace_yaml or not namespace_yaml.strip():
        return []

    try:
        parsed = yaml.safe_load(namespace_yaml)
    except yaml.YAMLError as exc:
        logger.warning("Could not parse ruler namespace listing: %s", exc)
        return []

    # a namespace GET returns either {namespace: [groups]} or a bare list of groups
    if isinstance(parsed, dict):
        groups: List[Any] = []
        for value in parsed.values():
            if isinstance(value, list):
                groups.extend(value)
    elif isinstance(parsed, list):
        groups = parsed
    else:
        return []

    names: List[str] = []
    for group in groups:
        if isinstance(group, dict) and group.get("name"):
            names.append(str(group["name"]))
    return names
