"""
Entrypoint for the alert configuration service.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

import uvloop
from fastapi import FastAPI, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config import config
from middleware.error_handlers import general_exception_handler, validation_exception_handler
from routers.alerting import alert_config_router, alert_config_service

asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("alertconfig")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    await alert_config_service.startup()
    logger.info("Alert configuration service started with %d target(s)", len(alert_config_service.list_targets()))
    try:
        yield
    finally:
        await alert_config_service.shutdown()
        logger.info("Alert configuration service stopped")


app = FastAPI(
    title="Alert Config",
    description="Alert routing configuration, versioning and target synchronization",
    version="1.0.0",
    docs_url="/docs" if config.ENABLE_API_DOCS else None,
    redoc_url="/redoc" if config.ENABLE_API_DOCS else None,
    openapi_url="/openapi.json" if config.ENABLE_API_DOCS else None,
    lifespan=lifespan,
)

app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

app.include_router(alert_config_router)


@app.get("/health")
async def health() -> dict:
    return {"status": "healthy", "service": "alert-config"}


@app.get("/ready")
async def ready():
    scheduler = alert_config_service.scheduler
    checks = {"autoSync": (not scheduler.enabled) or scheduler.running}
    ok = all(checks.values())
    payload = {"status": "ready" if ok else "not_ready", "checks": checks}
    if not ok:
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=payload)
    return payload


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=config.HOST, port=config.PORT, loop="uvloop", log_level=config.LOG_LEVEL)
