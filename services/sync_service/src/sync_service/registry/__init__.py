from __future__ import annotations

__all__ = [
    "NOT_FOUND",
    "NotFound",
    "RateLimitedClient",
    "registry_filter",
]

from sync_service.registry.http_client import NOT_FOUND, NotFound, RateLimitedClient
from sync_service.registry.jurisdiction import registry_filter
