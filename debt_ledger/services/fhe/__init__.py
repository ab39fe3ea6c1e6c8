"""Encryption backend package."""

from debt_ledger.services.fhe.interface import (
    CLEAR_VALUE_WORD_SIZE,
    BackendError,
    DecryptionProofVerifier,
    HomomorphicBackend,
    ProofRejectedError,
    decode_clear_value,
    encode_clear_value,
)
from debt_ledger.services.fhe.local import (
    LocalDecryptionCommittee,
    LocalFheBackend,
    LocalProofVerifier,
)

__all__ = [
    "CLEAR_VALUE_WORD_SIZE",
    "BackendError",
    "DecryptionProofVerifier",
    "HomomorphicBackend",
    "LocalDecryptionCommittee",
    "LocalFheBackend",
    "LocalProofVerifier",
    "ProofRejectedError",
    "decode_clear_value",
    "encode_clear_value",
]
