"""
Ciphertext Ingress

Admits externally supplied ciphertexts into the ledger. This is phase 1
of the disclosure protocol: an admitted handle is immediately, and
irrevocably, authorized for committee decryption. Phase 2 is
DecryptionVerifier.verify.
"""

import structlog

from debt_ledger.ledger.errors import InvalidCiphertextProof
from debt_ledger.models.debt import AdmissionContext, Handle
from debt_ledger.services.fhe import HomomorphicBackend, ProofRejectedError


class CiphertextIngress:
    """
    Validates (ciphertext, admission proof, context) and yields a handle.

    Admission never deduplicates: the same ciphertext admitted twice gives
    two independent handles.
    """

    def __init__(self, backend: HomomorphicBackend, bit_width: int = 32):
        self._backend = backend
        self._bit_width = bit_width
        self._logger = structlog.get_logger()

    @property
    def bit_width(self) -> int:
        return self._bit_width

    def admit(
        self,
        raw_ciphertext: bytes,
        admission_proof: bytes,
        context: AdmissionContext,
    ) -> Handle:
        """
        Admit a ciphertext bound to `context`.

        Returns:
            A handle already marked publicly decryptable

        Raises:
            InvalidCiphertextProof: If the backend rejects the proof or the
                ciphertext is not an encrypted integer of the expected width
        """
        try:
            handle = self._backend.verify_input(
                raw_ciphertext,
                admission_proof,
                context,
                self._bit_width,
            )
        except ProofRejectedError as e:
            self._logger.warning(
                "ciphertext_rejected",
                caller=context.caller,
                reason=str(e),
            )
            raise InvalidCiphertextProof(str(e)) from e

        handle = self._backend.make_publicly_decryptable(handle)
        self._logger.debug(
            "ciphertext_admitted",
            caller=context.caller,
            handle_id=handle.handle_id,
        )
        return handle
