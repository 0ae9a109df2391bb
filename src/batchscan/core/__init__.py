# src/batchscan/core/__init__.py
"""Core infrastructure: Store, Configuration, Events, Logging."""

from batchscan.core.config import (
    MAX_IN_CLAUSE_SIZE,
    BatchscanSettings,
    BatchSettings,
    LoggingSettings,
    StoreSettings,
    load_settings,
)
from batchscan.core.events import (
    EventBus,
    EventBusProtocol,
    NullEventBus,
)
from batchscan.core.logging import (
    bind_run_context,
    configure_from_settings,
    configure_logging,
    get_logger,
)
from batchscan.core.store import StoreDB, StoreSession

__all__ = [
    "MAX_IN_CLAUSE_SIZE",
    "BatchSettings",
    "BatchscanSettings",
    "EventBus",
    "EventBusProtocol",
    "LoggingSettings",
    "NullEventBus",
    "StoreDB",
    "StoreSession",
    "StoreSettings",
    "bind_run_context",
    "configure_from_settings",
    "configure_logging",
    "get_logger",
    "load_settings",
]
