"""
Routers for the alert configuration API: rule model, versions, sync targets and synchronization.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from .alert_config_router import alert_config_service, router as alert_config_router

__all__ = [
    "alert_config_router",
    "alert_config_service",
]
