"""Data synchronization: resource cache, progress events and the sync pipeline."""

from .cache import ResourceCache, cache_key
from .orchestrator import DashboardState, DataSyncOrchestrator, SyncResult
from .progress import ProgressBus, SyncProgress

__all__ = [
    "DashboardState",
    "DataSyncOrchestrator",
    "ProgressBus",
    "ResourceCache",
    "SyncProgress",
    "SyncResult",
    "cache_key",
]
