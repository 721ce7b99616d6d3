"""
Router for the alert configuration API: rule model commands and projections, compile preview, routing decisions, version history with diff, rollback and export, sync targets, synchronization and auto-sync settings.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response, status

from config import constants
from middleware.error_handlers import handle_route_errors
from models.alerting.alerts import AlertDecision
from models.alerting.inhibitions import InhibitRule, InhibitRuleCreate
from models.alerting.receivers import Receiver, ReceiverCreate
from models.alerting.requests import (
    AutoSyncSettingsRequest,
    CommitRequest,
    EvaluateRequest,
    ResolveRequest,
    RollbackRequest,
    SyncRequest,
    ToggleRequest,
)
from models.alerting.routes import Route, RouteCreate
from models.alerting.rules import AlertingRule, AlertingRuleCreate
from models.alerting.silences import Silence, SilenceCreate
from models.alerting.sync import SyncRecord, SyncTarget, SyncTargetCreate, SyncTargetUpdate
from models.alerting.versions import ConfigDiff, ConfigVersion
from services.alert_config_service import AlertConfigService
from services.alerting.errors import CompilationError, NoOpCommit, RuleValidationError, TargetBusy
from services.alerting.export_ops import EXPORT_MEDIA_TYPES
from services.alerting.silences_ops import filter_silences

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/alert-config", tags=["alert-config"])

alert_config_service = AlertConfigService()


def get_service() -> AlertConfigService:
    return alert_config_service


def _validation_detail(exc: ValueError) -> Dict[str, Any]:
    errors = getattr(exc, "errors", None)
    return {"message": str(exc), "errors": list(errors) if isinstance(errors, list) else [str(exc)]}


def _raise_validation(exc: ValueError) -> None:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=_validation_detail(exc)) from exc


def _version_payload(version: ConfigVersion) -> Dict[str, Any]:
    return version.model_dump(mode="json", by_alias=True)


def _deleted(kind: str, entity_id: str) -> Dict[str, str]:
    return {"status": constants.STATUS_SUCCESS, "message": f"{kind} {entity_id} deleted"}


# Routes


@router.get("/routes", response_model=List[Route])
async def list_routes(service: AlertConfigService = Depends(get_service)):
    return service.model.routes()


@router.post("/routes", response_model=Route, status_code=status.HTTP_201_CREATED)
@handle_route_errors()
async def create_route(payload: RouteCreate = Body(...), service: AlertConfigService = Depends(get_service)):
    try:
        return service.model.add_route(payload)
    except RuleValidationError as exc:
        _raise_validation(exc)


@router.put("/routes/{route_id}", response_model=Route)
@handle_route_errors()
async def update_route(route_id: str, payload: RouteCreate = Body(...), service: AlertConfigService = Depends(get_service)):
    try:
        return service.model.update_route(route_id, payload)
    except RuleValidationError as exc:
        _raise_validation(exc)


@router.patch("/routes/{route_id}/enabled", response_model=Route)
@handle_route_errors()
async def toggle_route(route_id: str, payload: ToggleRequest = Body(...), service: AlertConfigService = Depends(get_service)):
    try:
        return service.model.toggle_route(route_id, payload.enabled)
    except RuleValidationError as exc:
        _raise_validation(exc)


@router.delete("/routes/{route_id}")
@handle_route_errors()
async def delete_route(route_id: str, service: AlertConfigService = Depends(get_service)):
    service.model.remove_route(route_id)
    return _deleted("Route", route_id)


# Receivers


@router.get("/receivers", response_model=List[Receiver])
async def list_receivers(service: AlertConfigService = Depends(get_service)):
    return service.model.receivers()


@router.post("/receivers", response_model=Receiver, status_code=status.HTTP_201_CREATED)
@handle_route_errors()
async def create_receiver(payload: ReceiverCreate = Body(...), service: AlertConfigService = Depends(get_service)):
    try:
        return service.model.add_receiver(payload)
    except RuleValidationError as exc:
        _raise_validation(exc)


@router.put("/receivers/{receiver_id}", response_model=Receiver)
@handle_route_errors()
async def update_receiver(
    receiver_id: str, payload: ReceiverCreate = Body(...), service: AlertConfigService = Depends(get_service)
):
    try:
        return service.model.update_receiver(receiver_id, payload)
    except RuleValidationError as exc:
        _raise_validation(exc)


@router.patch("/receivers/{receiver_id}/enabled", response_model=Receiver)
@handle_route_errors()
async def toggle_receiver(
    receiver_id: str, payload: ToggleRequest = Body(...), service: AlertConfigService = Depends(get_service)
):
    return service.model.toggle_receiver(receiver_id, payload.enabled)


@router.delete("/receivers/{receiver_id}")
@handle_route_errors()
async def delete_receiver(receiver_id: str, service: AlertConfigService = Depends(get_service)):
    service.model.remove_receiver(receiver_id)
    return _deleted("Receiver", receiver_id)


# Inhibition rules


@router.get("/inhibit-rules", response_model=List[InhibitRule])
async def list_inhibit_rules(service: AlertConfigService = Depends(get_service)):
    return service.model.inhibit_rules()


@router.post("/inhibit-rules", response_model=InhibitRule, status_code=status.HTTP_201_CREATED)
@handle_route_errors()
async def create_inhibit_rule(payload: InhibitRuleCreate = Body(...), service: AlertConfigService = Depends(get_service)):
    try:
        return service.model.add_inhibit_rule(payload)
    except RuleValidationError as exc:
        _raise_validation(exc)


@router.put("/inhibit-rules/{rule_id}", response_model=InhibitRule)
@handle_route_errors()
async def update_inhibit_rule(
    rule_id: str, payload: InhibitRuleCreate = Body(...), service: AlertConfigService = Depends(get_service)
):
    try:
        return service.model.update_inhibit_rule(rule_id, payload)
    except RuleValidationError as exc:
        _raise_validation(exc)


@router.patch("/inhibit-rules/{rule_id}/enabled", response_model=InhibitRule)
@handle_route_errors()
async def toggle_inhibit_rule(rule_id: str, payload: ToggleRequest = Body(...), service: AlertConfigService = Depends(get_service)):
    return service.model.toggle_inhibit_rule(rule_id, payload.enabled)


@router.delete("/inhibit-rules/{rule_id}")
@handle_route_errors()
async def delete_inhibit_rule(rule_id: str, service: AlertConfigService = Depends(get_service)):
    service.model.remove_inhibit_rule(rule_id)
    return _deleted("Inhibition rule", rule_id)


# Alerting rules


@router.get("/alerting-rules", response_model=List[AlertingRule])
async def list_alerting_rules(service: AlertConfigService = Depends(get_service)):
    return service.model.alerting_rules()


@router.post("/alerting-rules", response_model=AlertingRule, status_code=status.HTTP_201_CREATED)
@handle_route_errors()
async def create_alerting_rule(payload: AlertingRuleCreate = Body(...), service: AlertConfigService = Depends(get_service)):
    try:
        return service.model.add_alerting_rule(payload)
    except RuleValidationError as exc:
        _raise_validation(exc)


@router.put("/alerting-rules/{rule_id}", response_model=AlertingRule)
@handle_route_errors()
async def update_alerting_rule(
    rule_id: str, payload: AlertingRuleCreate = Body(...), service: AlertConfigService = Depends(get_service)
):
    try:
        return service.model.update_alerting_rule(rule_id, payload)
    except RuleValidationError as exc:
        _raise_validation(exc)


@router.patch("/alerting-rules/{rule_id}/enabled", response_model=AlertingRule)
@handle_route_errors()
async def toggle_alerting_rule(rule_id: str, payload: ToggleRequest = Body(...), service: AlertConfigService = Depends(get_service)):
    return service.model.toggle_alerting_rule(rule_id, payload.enabled)


@router.delete("/alerting-rules/{rule_id}")
@handle_route_errors()
async def delete_alerting_rule(rule_id: str, service: AlertConfigService = Depends(get_service)):
    service.model.remove_alerting_rule(rule_id)
    return _deleted("Alerting rule", rule_id)


# Silences


@router.get("/silences", response_model=List[Silence])
@handle_route_errors()
async def list_silences(
    state: Optional[str] = Query(None, pattern="^(pending|active|expired)$"),
    service: AlertConfigService = Depends(get_service),
):
    return filter_silences(service.model.silences(), datetime.now(timezone.utc), state)


@router.post("/silences", response_model=Silence, status_code=status.HTTP_201_CREATED)
@handle_route_errors()
async def create_silence(payload: SilenceCreate = Body(...), service: AlertConfigService = Depends(get_service)):
    try:
        return service.model.add_silence(payload)
    except RuleValidationError as exc:
        _raise_validation(exc)


@router.post("/silences/{silence_id}/expire", response_model=Silence)
@handle_route_errors()
async def expire_silence(silence_id: str, service: AlertConfigService = Depends(get_service)):
    return service.model.expire_silence(silence_id)


@router.delete("/silences/{silence_id}")
@handle_route_errors()
async def delete_silence(silence_id: str, service: AlertConfigService = Depends(get_service)):
    service.model.remove_silence(silence_id)
    return _deleted("Silence", silence_id)


# Model, compile and routing decisions


@router.put("/model")
@handle_route_errors()
async def load_model(document: Dict[str, Any] = Body(...), service: AlertConfigService = Depends(get_service)):
    try:
        service.model.load(document)
    except RuleValidationError as exc:
        _raise_validation(exc)
    snapshot = service.model.snapshot()
    return {
        "status": constants.STATUS_SUCCESS,
        "routes": len(snapshot.routes),
        "receivers": len(snapshot.receivers),
        "inhibitRules": len(snapshot.inhibit_rules),
        "alertingRules": len(snapshot.alerting_rules),
        "silences": len(snapshot.silences),
    }


@router.get("/compile")
@handle_route_errors()
async def compile_preview(service: AlertConfigService = Depends(get_service)):
    try:
        compiled = service.compile()
    except CompilationError as exc:
        _raise_validation(exc)
    return {"configHash": compiled.config_hash, "ruleCount": compiled.rule_count, "document": compiled.document}


@router.post("/resolve")
@handle_route_errors()
async def resolve_route(payload: ResolveRequest = Body(...), service: AlertConfigService = Depends(get_service)):
    return service.resolve(payload.labels)


@router.post("/evaluate", response_model=AlertDecision)
@handle_route_errors()
async def evaluate_alert(payload: EvaluateRequest = Body(...), service: AlertConfigService = Depends(get_service)):
    return service.evaluate(payload.alert, payload.active_alerts, payload.now)


# Versions


@router.get("/versions")
async def list_versions(
    limit: Optional[int] = Query(None, ge=1, le=1000),
    service: AlertConfigService = Depends(get_service),
):
    return [_version_payload(version) for version in service.list_versions(limit)]


@router.post("/versions")
@handle_route_errors()
async def commit_version(payload: CommitRequest = Body(...), service: AlertConfigService = Depends(get_service)):
    try:
        version = service.commit(payload.author, payload.description, force=payload.force)
    except CompilationError as exc:
        _raise_validation(exc)
    except NoOpCommit as exc:
        return {
            "status": constants.STATUS_SKIPPED.lower(),
            "message": str(exc),
            "configHash": exc.config_hash,
            "currentVersionId": exc.current_version_id,
        }
    return _version_payload(version)


@router.get("/versions/current")
@handle_route_errors()
async def current_version(service: AlertConfigService = Depends(get_service)):
    return _version_payload(service.get_version())


@router.get("/versions/{version_id}")
@handle_route_errors()
async def get_version(version_id: str, service: AlertConfigService = Depends(get_service)):
    return _version_payload(service.get_version(version_id))


@router.get("/versions/{from_version_id}/diff/{to_version_id}", response_model=ConfigDiff)
@handle_route_errors()
async def diff_versions(from_version_id: str, to_version_id: str, service: AlertConfigService = Depends(get_service)):
    return service.diff(from_version_id, to_version_id)


@router.post("/versions/{version_id}/rollback")
@handle_route_errors()
async def rollback_version(
    version_id: str, payload: RollbackRequest = Body(...), service: AlertConfigService = Depends(get_service)
):
    try:
        version = service.rollback(version_id, payload.author, payload.description)
    except NoOpCommit as exc:
        return {"status": constants.STATUS_SKIPPED.lower(), "message": str(exc), "currentVersionId": exc.current_version_id}
    return _version_payload(version)


@router.get("/versions/{version_id}/export")
@handle_route_errors()
async def export_version(
    version_id: str,
    export_format: str = Query("yaml", alias="format", pattern="^(yaml|json)$"),
    service: AlertConfigService = Depends(get_service),
):
    version = service.get_version(version_id)
    content = service.export(version.id, export_format)
    filename = f"alert-config-v{version.version}.{'yml' if export_format == 'yaml' else 'json'}"
    return Response(
        content=content,
        media_type=EXPORT_MEDIA_TYPES[export_format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# Targets


@router.get("/targets", response_model=List[SyncTarget])
async def list_targets(service: AlertConfigService = Depends(get_service)):
    return service.list_targets()


@router.post("/targets", response_model=SyncTarget, status_code=status.HTTP_201_CREATED)
@handle_route_errors()
async def create_target(payload: SyncTargetCreate = Body(...), service: AlertConfigService = Depends(get_service)):
    return service.register_target(payload)


@router.get("/targets/{target_id}", response_model=SyncTarget)
@handle_route_errors()
async def get_target(target_id: str, service: AlertConfigService = Depends(get_service)):
    return service.get_target(target_id)


@router.put("/targets/{target_id}", response_model=SyncTarget)
@handle_route_errors()
async def update_target(
    target_id: str, payload: SyncTargetUpdate = Body(...), service: AlertConfigService = Depends(get_service)
):
    try:
        return service.update_target(target_id, payload)
    except TargetBusy as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc


@router.patch("/targets/{target_id}/enabled", response_model=SyncTarget)
@handle_route_errors()
async def toggle_target(target_id: str, payload: ToggleRequest = Body(...), service: AlertConfigService = Depends(get_service)):
    return service.set_target_enabled(target_id, payload.enabled)


@router.delete("/targets/{target_id}")
@handle_route_errors()
async def delete_target(target_id: str, service: AlertConfigService = Depends(get_service)):
    try:
        service.remove_target(target_id)
    except TargetBusy as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return _deleted("Target", target_id)


@router.post("/targets/{target_id}/probe", response_model=SyncTarget)
@handle_route_errors()
async def probe_target(target_id: str, service: AlertConfigService = Depends(get_service)):
    return await service.probe_target(target_id)


# Sync


@router.post("/sync", response_model=SyncRecord)
@handle_route_errors()
async def trigger_sync(
    payload: Optional[SyncRequest] = Body(None),
    service: AlertConfigService = Depends(get_service),
):
    payload = payload or SyncRequest()
    handle = service.start_sync(payload.target_ids, payload.version_id, payload.force)
    return await handle.wait()


@router.post("/sync/cancel")
async def cancel_sync(service: AlertConfigService = Depends(get_service)):
    cancelled = service.cancel_sync()
    return {"status": constants.STATUS_SUCCESS, "cancelled": cancelled}


@router.get("/sync/history", response_model=List[SyncRecord])
async def sync_history(
    limit: Optional[int] = Query(None, ge=1, le=1000),
    service: AlertConfigService = Depends(get_service),
):
    return service.sync_history(limit)


@router.get("/auto-sync")
async def get_auto_sync(service: AlertConfigService = Depends(get_service)):
    return service.auto_sync_settings()


@router.put("/auto-sync")
@handle_route_errors()
async def put_auto_sync(payload: AutoSyncSettingsRequest = Body(...), service: AlertConfigService = Depends(get_service)):
    return service.configure_auto_sync(enabled=payload.enabled, interval_seconds=payload.interval_seconds)
