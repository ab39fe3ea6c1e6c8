"""
Storage Services Package

Provides the abstract audit storage interface and its implementations.
Currently implements an in-memory store and an append-only JSON-lines file.
"""

from debt_ledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    StorageError,
)
from debt_ledger.services.storage.jsonl import JsonlAuditStorage
from debt_ledger.services.storage.memory import InMemoryAuditStorage

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    # Exceptions
    "ConnectionError",
    "StorageError",
    # Implementations
    "InMemoryAuditStorage",
    "JsonlAuditStorage",
]
