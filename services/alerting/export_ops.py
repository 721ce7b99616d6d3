"""
Serialization of a committed version's compiled document for download. Pure: no network or store side effects.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import json

import yaml

from models.alerting.versions import ConfigVersion

EXPORT_MEDIA_TYPES = {
    "yaml": "application/yaml",
    "json": "application/json",
}


def export_config(version: ConfigVersion, export_format: str = "yaml") -> bytes:
    document = json.loads(version.compiled.content)
    if export_format == "json":
        return (json.dumps(document, sort_keys=True, indent=2, ensure_ascii=False) + "\n").encode("utf-8")
    if export_format == "yaml":
        return yaml.safe_dump(document, sort_keys=True, allow_unicode=True, default_flow_style=False).encode("utf-8")
    raise ValueError(f"Unsupported export format '{export_format}'. Allowed values: {sorted(EXPORT_MEDIA_TYPES)}")
