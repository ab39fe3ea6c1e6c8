"""
Decryption Verifier

Phase 2 of the disclosure protocol. The committee decrypts a publicly
decryptable handle off-ledger and hands back (clear_value, proof); this
component checks the proof and commits the cleartext into the record,
exactly once.

Check order inside the record lock:
1. AlreadyVerified - this is what makes the commit at-most-once
2. InvalidDecryptionProof - committee proof against (handle, clear_value)
3. Decode the cleartext at the record's width
Then the verified snapshot is swapped in and AmountDisclosed is emitted.
"""

import structlog

from debt_ledger.ledger.errors import AlreadyVerified, InvalidDecryptionProof
from debt_ledger.ledger.registry import DebtRecordRegistry
from debt_ledger.models.debt import DebtRecord, DecryptionProof
from debt_ledger.services.fhe import DecryptionProofVerifier, decode_clear_value


class DecryptionVerifier:
    """Validates committee decryption proofs and commits disclosures."""

    def __init__(
        self,
        registry: DebtRecordRegistry,
        proof_verifier: DecryptionProofVerifier,
    ):
        self._registry = registry
        self._proof_verifier = proof_verifier
        self._logger = structlog.get_logger()

    def verify(
        self,
        record_id: str,
        clear_value: bytes,
        proof: DecryptionProof,
    ) -> DebtRecord:
        """
        Commit a verified cleartext into the record.

        Args:
            record_id: Record whose amount is being disclosed
            clear_value: 32-byte big-endian cleartext word
            proof: Committee proof for (record handle, clear_value)

        Returns:
            The verified record snapshot

        Raises:
            RecordNotFound: If no record has this id
            AlreadyVerified: If the amount was already disclosed
            InvalidDecryptionProof: If the proof or the cleartext is invalid
        """

        def disclose(record: DebtRecord) -> DebtRecord:
            if record.verified:
                raise AlreadyVerified(
                    f"Amount already disclosed for {record.id}",
                    record_id=record.id,
                )

            handle = record.encrypted_amount
            if not self._proof_verifier.verify(handle, clear_value, proof):
                raise InvalidDecryptionProof(
                    f"Decryption proof rejected for {record.id}",
                    record_id=record.id,
                )

            try:
                amount = decode_clear_value(clear_value, handle.bit_width)
            except ValueError as e:
                raise InvalidDecryptionProof(str(e), record_id=record.id) from e

            return record.with_disclosure(amount)

        def announce(record: DebtRecord) -> None:
            self._registry.notifications.amount_disclosed(
                record.id, record.decrypted_amount
            )

        try:
            record = self._registry.update(record_id, disclose, on_commit=announce)
        except (AlreadyVerified, InvalidDecryptionProof) as e:
            self._logger.warning(
                "disclosure_rejected",
                record_id=record_id,
                error_code=e.error_code,
            )
            raise

        self._logger.info("amount_disclosed", record_id=record.id)
        return record
