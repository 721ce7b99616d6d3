"""
Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import os

_TEST_ENV = {
    "APP_ENV": "test",
    "LOG_LEVEL": "warning",
    "AUTO_SYNC_ENABLED": "false",
    "AUTO_SYNC_INTERVAL_SECONDS": "300",
    "SYNC_PROBE_TIMEOUT": "1.0",
    "SYNC_PUSH_TIMEOUT": "1.0",
    "SYNC_MAX_ATTEMPTS": "3",
    "SYNC_RETRY_BACKOFF": "0",
    "SYNC_RETRY_MAX_BACKOFF": "0",
    "DEFAULT_RECEIVER": "default",
    "TARGETS": "",
}


def ensure_test_env() -> None:
    for key, value in _TEST_ENV.items():
        os.environ.setdefault(key, value)
