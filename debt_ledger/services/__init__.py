"""Services package."""

from debt_ledger.services.fhe import (
    BackendError,
    DecryptionProofVerifier,
    HomomorphicBackend,
    LocalDecryptionCommittee,
    LocalFheBackend,
    LocalProofVerifier,
    ProofRejectedError,
)
from debt_ledger.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    InMemoryAuditStorage,
    JsonlAuditStorage,
    StorageError,
)

__all__ = [
    # Encryption backend
    "BackendError",
    "DecryptionProofVerifier",
    "HomomorphicBackend",
    "LocalDecryptionCommittee",
    "LocalFheBackend",
    "LocalProofVerifier",
    "ProofRejectedError",
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "InMemoryAuditStorage",
    "JsonlAuditStorage",
    "StorageError",
]
