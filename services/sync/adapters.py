"""
Target adapters translating a committed configuration version into the API calls of each kind of monitoring backend.

Alert dispatchers (Alertmanager compatible) receive the routing document as an alertmanager_config YAML upload. Metrics engines (Prometheus ruler compatible) receive the alerting rule groups, one group per request, with groups no longer desired pruned from the namespace. Other targets receive the full compiled document as JSON.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import json
import logging
from typing import Any, Callable, Dict, List, Optional, Type
from urllib.parse import quote

import httpx
import yaml

from config import config
from models.alerting.sync import SyncTarget, TargetType
from models.alerting.versions import ConfigVersion
from services.alerting.config_compiler import WEBHOOK_EXTENSION_KEYS
from services.alerting.errors import TargetError
from services.alerting.ruler_yaml import build_ruler_group_yaml, extract_group_names
from services.common.url_utils import join_url

from .transport import check_response

logger = logging.getLogger(__name__)

_OK_STATUSES = {200, 201, 202, 204}
_DELETE_OK_STATUSES = {200, 202, 204, 404}

ALERTMANAGER_STATUS_PATH = "/api/v2/status"
BUILDINFO_PATH = "/api/v1/status/buildinfo"


def _json_or_none(response: httpx.Response) -> Optional[Any]:
    try:
        return response.json()
    except ValueError:
        return None


def _dispatcher_receiver(receiver: Dict[str, Any]) -> Dict[str, Any]:
    # Alertmanager webhook_configs accept no extra fields
    webhooks = receiver.get("webhook_configs")
    if not webhooks:
        return receiver
    stripped = [{key: value for key, value in entry.items() if key not in WEBHOOK_EXTENSION_KEYS} for entry in webhooks]
    return {**receiver, "webhook_configs": stripped}


class TargetAdapter:
    """Base adapter. Subclasses implement probe and push for one target type."""

    def __init__(self, target: SyncTarget, client: httpx.AsyncClient) -> None:
        self.target = target
        self.client = client

    def url(self, path: str) -> str:
        return join_url(self.target.endpoint, path)

    def headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        tenant = self.target.tenant_id or config.DEFAULT_ORG_ID
        if tenant:
            headers["X-Scope-OrgID"] = tenant
        headers.update(extra or {})
        return headers

    async def probe(self) -> Optional[str]:
        raise NotImplementedError

    async def push(self, version: ConfigVersion) -> None:
        raise NotImplementedError


class AlertDispatcherAdapter(TargetAdapter):
    async def probe(self) -> Optional[str]:
        response = await self.client.get(self.url(ALERTMANAGER_STATUS_PATH), headers=self.headers())
        check_response(response, {200}, f"Probe of {self.target.name}")
        payload = _json_or_none(response) or {}
        version_info = payload.get("versionInfo") if isinstance(payload, dict) else None
        return (version_info or {}).get("version")

    @staticmethod
    def render(version: ConfigVersion) -> str:
        document = {key: value for key, value in version.compiled.document.items() if key != "groups"}
        document["receivers"] = [_dispatcher_receiver(receiver) for receiver in document.get("receivers", [])]
        alertmanager_config = yaml.safe_dump(document, sort_keys=True, default_flow_style=False, allow_unicode=True)
        return yaml.safe_dump(
            {"alertmanager_config": alertmanager_config, "template_files": {}},
            sort_keys=True,
            default_flow_style=False,
            allow_unicode=True,
        )

    async def push(self, version: ConfigVersion) -> None:
        response = await self.client.post(
            self.url(config.ALERTMANAGER_CONFIG_PATH),
            content=self.render(version),
            headers=self.headers({"Content-Type": "application/yaml"}),
        )
        check_response(response, _OK_STATUSES, f"Alertmanager config upload to {self.target.name}")


class MetricsEngineAdapter(TargetAdapter):
    def namespace_url(self) -> str:
        namespace = quote(config.RULER_NAMESPACE, safe="")
        return self.url(f"{config.RULER_CONFIG_BASEPATH}/{namespace}")

    async def probe(self) -> Optional[str]:
        response = await self.client.get(self.url(BUILDINFO_PATH), headers=self.headers())
        check_response(response, {200}, f"Probe of {self.target.name}")
        payload = _json_or_none(response) or {}
        data = payload.get("data") if isinstance(payload, dict) else None
        return (data or {}).get("version")

    async def _existing_group_names(self, namespace_url: str) -> List[str]:
        try:
            response = await self.client.get(namespace_url, headers=self.headers())
        except httpx.HTTPError as exc:
            logger.warning("HTTP error listing ruler groups on %s: %s; stale groups will not be pruned", self.target.name, exc)
            return []
        if response.status_code == 200:
            return extract_group_names(response.text)
        if response.status_code != 404:
            logger.warning(
                "Failed to list ruler groups on %s (status %s); stale groups will not be pruned",
                self.target.name,
                response.status_code,
            )
        return []

    async def push(self, version: ConfigVersion) -> None:
        groups: List[Dict[str, Any]] = version.compiled.document.get("groups") or []
        desired = {group["name"] for group in groups}
        namespace_url = self.namespace_url()

        for group_name in await self._existing_group_names(namespace_url):
            if group_name in desired:
                continue
            response = await self.client.delete(
                f"{namespace_url}/{quote(group_name, safe='')}",
                headers=self.headers(),
            )
            check_response(response, _DELETE_OK_STATUSES, f"Ruler group delete '{group_name}' on {self.target.name}")
            logger.info("Pruned stale ruler group %s on %s", group_name, self.target.name)

        for group in groups:
            response = await self.client.post(
                namespace_url,
                content=build_ruler_group_yaml(group),
                headers=self.headers({"Content-Type": "application/yaml"}),
            )
            check_response(response, _OK_STATUSES, f"Ruler group upsert '{group['name']}' on {self.target.name}")


class GenericWebhookAdapter(TargetAdapter):
    async def probe(self) -> Optional[str]:
        response = await self.client.get(self.target.endpoint, headers=self.headers())
        if response.status_code >= 400:
            check_response(response, set(), f"Probe of {self.target.name}")
        return response.headers.get("X-Backend-Version")

    async def push(self, version: ConfigVersion) -> None:
        payload = {
            "versionId": version.id,
            "version": version.version,
            "configHash": version.config_hash,
            "config": json.loads(version.compiled.content),
        }
        response = await self.client.post(self.target.endpoint, json=payload, headers=self.headers())
        check_response(response, _OK_STATUSES, f"Configuration push to {self.target.name}")


ADAPTERS: Dict[str, Type[TargetAdapter]] = {
    TargetType.ALERT_DISPATCHER.value: AlertDispatcherAdapter,
    TargetType.METRICS_ENGINE.value: MetricsEngineAdapter,
    TargetType.OTHER.value: GenericWebhookAdapter,
}

AdapterFactory = Callable[[SyncTarget], TargetAdapter]


def adapter_factory(client: httpx.AsyncClient) -> AdapterFactory:
    def build(target: SyncTarget) -> TargetAdapter:
        adapter_cls = ADAPTERS.get(str(target.type))
        if adapter_cls is None:
            raise TargetError(f"No adapter for target type '{target.type}'")
        return adapter_cls(target, client)

    return build
