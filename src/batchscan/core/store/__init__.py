# src/batchscan/core/store/__init__.py
"""Store: SQLAlchemy-backed persistent store sessions.

Primary API:
    StoreDB - Engine and session factory management
    StoreSession - StoreSessionProtocol implementation over an ORM Session
"""

from batchscan.core.store.database import StoreDB
from batchscan.core.store.session import (
    IdentifierResultStream,
    StoreSession,
    field_attribute,
    identifier_attribute,
)

__all__ = [
    "IdentifierResultStream",
    "StoreDB",
    "StoreSession",
    "field_attribute",
    "identifier_attribute",
]
