"""
Ledger Errors

Every failure is synchronous and typed. A call that raises one of these
has not changed any ledger state and has not emitted a notification.
"""

from typing import Optional


class LedgerError(Exception):
    """Base exception for ledger operations."""

    error_code = "ledger_error"

    def __init__(self, message: str, record_id: Optional[str] = None):
        self.record_id = record_id
        super().__init__(message)


class DuplicateRecord(LedgerError):
    """A record with this id already exists."""

    error_code = "duplicate_record"


class RecordNotFound(LedgerError):
    """No record with this id exists."""

    error_code = "record_not_found"


class InvalidCiphertextProof(LedgerError):
    """The ciphertext or its admission proof was rejected."""

    error_code = "invalid_ciphertext_proof"


class AlreadyVerified(LedgerError):
    """The record's amount has already been disclosed."""

    error_code = "already_verified"


class InvalidDecryptionProof(LedgerError):
    """The decryption proof does not open the record's handle to this value."""

    error_code = "invalid_decryption_proof"


class NumericOverflow(LedgerError):
    """Fixed-point scaling of public terms exceeds the representable range."""

    error_code = "numeric_overflow"


class InvalidRecordTerms(LedgerError):
    """Public terms (id, rate, term, metadata) are malformed."""

    error_code = "invalid_record_terms"


class RecordNotVerified(LedgerError):
    """A plaintext figure was requested before the amount was disclosed."""

    error_code = "record_not_verified"
