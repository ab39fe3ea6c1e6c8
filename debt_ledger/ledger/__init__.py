"""Ledger core: ingress, registry, verification and amortization."""

from debt_ledger.ledger.amortization import AmortizationEngine, fixed_point_terms
from debt_ledger.ledger.errors import (
    AlreadyVerified,
    DuplicateRecord,
    InvalidCiphertextProof,
    InvalidDecryptionProof,
    InvalidRecordTerms,
    LedgerError,
    NumericOverflow,
    RecordNotFound,
    RecordNotVerified,
)
from debt_ledger.ledger.ingress import CiphertextIngress
from debt_ledger.ledger.notifications import (
    AmountDisclosed,
    Notification,
    NotificationLog,
    RecordCreated,
)
from debt_ledger.ledger.registry import DebtRecordRegistry
from debt_ledger.ledger.verifier import DecryptionVerifier

__all__ = [
    # Components
    "AmortizationEngine",
    "CiphertextIngress",
    "DebtRecordRegistry",
    "DecryptionVerifier",
    "fixed_point_terms",
    # Notifications
    "AmountDisclosed",
    "Notification",
    "NotificationLog",
    "RecordCreated",
    # Errors
    "AlreadyVerified",
    "DuplicateRecord",
    "InvalidCiphertextProof",
    "InvalidDecryptionProof",
    "InvalidRecordTerms",
    "LedgerError",
    "NumericOverflow",
    "RecordNotFound",
    "RecordNotVerified",
]
