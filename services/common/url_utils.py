"""
Utilities for checking that URLs used in channel configurations and sync target endpoints are well formed HTTP(S) URLs. Private and loopback hosts are accepted by default because monitoring backends usually live on internal networks; callers that hand URLs to third parties can require public hosts instead.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import ipaddress
from urllib.parse import urlparse

_ALLOWED_SCHEMES = frozenset({"http", "https"})
_MAX_URL_LENGTH = 2048


def is_http_url(value: str | None, *, allow_private: bool = True) -> bool:
    if not value or not isinstance(value, str):
        return False

    if len(value) > _MAX_URL_LENGTH:
        return False

    try:
        parsed = urlparse(value.strip())
        port = parsed.port
    except ValueError:
        return False

    if parsed.scheme not in _ALLOWED_SCHEMES:
        return False

    hostname = parsed.hostname
    if not hostname or not parsed.netloc:
        return False
    if port is not None and not (1 <= port <= 65535):
        return False

    if allow_private:
        return True

    if hostname in ("localhost",) or hostname.endswith(".local"):
        return False

    try:
        ip = ipaddress.ip_address(hostname)
        if ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_reserved:
            return False
    except ValueError:
        pass

    return "." in hostname


def join_url(base: str, path: str) -> str:
    return f"{base.rstrip('/')}/{path.lstrip('/')}"
