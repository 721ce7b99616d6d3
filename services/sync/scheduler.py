"""
Recurring auto-sync of the current configuration to connected targets. Failures are logged and recorded in sync history; they never propagate out of the loop.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional

from config import config

from .orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)


class AutoSyncScheduler:
    def __init__(
        self,
        orchestrator: SyncOrchestrator,
        *,
        interval_seconds: float = config.AUTO_SYNC_INTERVAL_SECONDS,
        enabled: bool = config.AUTO_SYNC_ENABLED,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("Auto-sync interval must be greater than 0")
        self._orchestrator = orchestrator
        self._interval = float(interval_seconds)
        self._enabled = enabled
        self._task: Optional[asyncio.Task] = None
        self._wakeup = asyncio.Event()
        self.last_run_at: Optional[float] = None

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return isinstance(self._task, asyncio.Task) and not self._task.done()

    def settings(self) -> Dict[str, Any]:
        return {"enabled": self._enabled, "intervalSeconds": self._interval, "running": self.running}

    def configure(self, *, enabled: Optional[bool] = None, interval_seconds: Optional[float] = None) -> Dict[str, Any]:
        if interval_seconds is not None:
            if interval_seconds <= 0:
                raise ValueError("Auto-sync interval must be greater than 0")
            self._interval = float(interval_seconds)
            self._wakeup.set()
        if enabled is not None:
            self._enabled = enabled
            if enabled:
                self.ensure_started()
            else:
                self._wakeup.set()
        logger.info("Auto-sync settings: enabled=%s interval=%ss", self._enabled, self._interval)
        return self.settings()

    def ensure_started(self) -> None:
        if not self._enabled or self.running:
            return
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def run_once(self) -> None:
        self.last_run_at = time.time()
        try:
            await self._orchestrator.auto_sync()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Auto-sync run failed")

    async def _sleep(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._wakeup.wait(), timeout=max(0.0, seconds))
        except asyncio.TimeoutError:
            return
        # a wakeup set during run_once stays pending until this point
        self._wakeup.clear()

    async def _loop(self) -> None:
        logger.info("Starting auto-sync loop (interval=%ss)", self._interval)
        try:
            await self._orchestrator.probe_all()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Initial target probe failed")
        while self._enabled:
            start = time.monotonic()
            await self.run_once()
            elapsed = time.monotonic() - start
            await self._sleep(self._interval - elapsed)
        logger.info("Auto-sync loop stopped")
