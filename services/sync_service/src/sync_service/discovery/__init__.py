from __future__ import annotations

__all__ = [
    "DiscoverResult",
    "DiscoveryCursor",
    "EntityDiscovery",
]

from sync_service.discovery.discover import DiscoverResult, DiscoveryCursor, EntityDiscovery
