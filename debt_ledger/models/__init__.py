"""
Data Models Package

This package contains all Pydantic models used in the Encrypted Debt Ledger.
All data flowing through the system must conform to these schemas.
"""

from debt_ledger.models.debt import (
    AdmissionContext,
    DebtRecord,
    DebtRecordView,
    DecryptionProof,
    EncryptedValue,
    Handle,
    RepaymentPlan,
    ValidationIssue,
    ValidationResult,
)
from debt_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Debt models
    "AdmissionContext",
    "DebtRecord",
    "DebtRecordView",
    "DecryptionProof",
    "EncryptedValue",
    "Handle",
    "RepaymentPlan",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
