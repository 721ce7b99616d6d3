"""
Exceptions raised by the alert configuration subsystem. Validation and lookup failures subclass ValueError and LookupError so the route error handlers can map them without knowing each type.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from typing import List, Optional


class RuleValidationError(ValueError):
    def __init__(self, message: str, errors: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.errors = list(errors or [message])


class CompilationError(ValueError):
    def __init__(self, message: str, errors: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.errors = list(errors or [message])


class NoRouteMatched(LookupError):
    pass


class EntityNotFound(LookupError):
    pass


class VersionNotFound(EntityNotFound):
    pass


class TargetNotFound(EntityNotFound):
    pass


class TargetBusy(ValueError):
    pass


class NoOpCommit(Exception):
    """Raised when a commit would not change the current configuration."""

    def __init__(self, config_hash: str, current_version_id: Optional[str] = None) -> None:
        super().__init__(f"Configuration unchanged (hash {config_hash[:12]})")
        self.config_hash = config_hash
        self.current_version_id = current_version_id


class TargetError(Exception):
    """Failure talking to one sync target. Transient failures may be retried."""

    def __init__(self, message: str, *, transient: bool = False, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.transient = transient
        self.status_code = status_code


class TargetTimeout(TargetError):
    def __init__(self, message: str) -> None:
        super().__init__(message, transient=True)
