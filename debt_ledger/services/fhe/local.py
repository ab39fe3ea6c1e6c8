"""
Local Reference Backend

An in-process stand-in for the homomorphic-encryption coprocessor and the
threshold decryption committee, used for development and tests.

CRITICAL: This is NOT cryptography. Values are kept in a backend-owned
table and merely masked on the wire. It honours the same contracts as a
real backend (opaque handles, context-bound admission proofs, irrevocable
public-decryption grants, threshold proofs) so the ledger can be exercised
end to end without one.

Wire formats:
- raw ciphertext: width byte | 8-byte nonce | masked big-endian value
- admission proof: HMAC-SHA256(key, "admit" | raw ciphertext | context binding)
- decryption proof: one HMAC-SHA256 per signer over (handle, width, clear word)
"""

import hashlib
import hmac
import secrets
import threading
from typing import Optional

import structlog

from debt_ledger.models.debt import AdmissionContext, DecryptionProof, Handle
from debt_ledger.services.fhe.interface import (
    BackendError,
    DecryptionProofVerifier,
    HomomorphicBackend,
    ProofRejectedError,
    encode_clear_value,
)


NONCE_SIZE = 8


def _mac(key: bytes, *parts: bytes) -> bytes:
    return hmac.new(key, b"|".join(parts), hashlib.sha256).digest()


class LocalFheBackend(HomomorphicBackend):
    """
    Plaintext-simulated homomorphic backend.

    Handles index into `_values`; arithmetic wraps modulo 2**width the way
    fixed-width encrypted integers do.
    """

    def __init__(self, key: Optional[bytes] = None):
        self._key = key or secrets.token_bytes(32)
        self._values: list[int] = []
        self._widths: list[int] = []
        self._public: set[int] = set()
        self._lock = threading.Lock()
        self._logger = structlog.get_logger()

    # -------------------------------------------------------------------------
    # Client side
    # -------------------------------------------------------------------------

    def encrypt(
        self,
        value: int,
        context: AdmissionContext,
        bit_width: int = 32,
    ) -> tuple[bytes, bytes]:
        """
        Produce (raw_ciphertext, admission_proof) for `value` in `context`.

        This is what a wallet-side SDK does before calling the ledger.
        """
        if value < 0 or value >> bit_width:
            raise ValueError(f"Value does not fit in {bit_width} bits")

        nonce = secrets.token_bytes(NONCE_SIZE)
        size = bit_width // 8
        masked = value ^ int.from_bytes(self._keystream(nonce, size), "big")
        raw = bytes([bit_width]) + nonce + masked.to_bytes(size, "big")
        proof = _mac(self._key, b"admit", raw, context.binding())
        return raw, proof

    def _keystream(self, nonce: bytes, size: int) -> bytes:
        return _mac(self._key, b"mask", nonce)[:size]

    # -------------------------------------------------------------------------
    # Handle store
    # -------------------------------------------------------------------------

    def _store(self, value: int, bit_width: int) -> Handle:
        with self._lock:
            self._values.append(value & ((1 << bit_width) - 1))
            self._widths.append(bit_width)
            handle_id = len(self._values) - 1
        return Handle(handle_id=handle_id, bit_width=bit_width)

    def _value(self, handle: Handle) -> int:
        try:
            return self._values[handle.handle_id]
        except IndexError:
            raise BackendError(f"Unknown handle: {handle!r}")

    def reveal(self, handle: Handle) -> int:
        """
        Decryption oracle.

        Only the committee and tests hold a reference to the backend;
        the ledger never calls this.
        """
        return self._value(handle)

    # -------------------------------------------------------------------------
    # HomomorphicBackend
    # -------------------------------------------------------------------------

    def verify_input(
        self,
        raw_ciphertext: bytes,
        admission_proof: bytes,
        context: AdmissionContext,
        bit_width: int,
    ) -> Handle:
        expected_size = 1 + NONCE_SIZE + bit_width // 8
        if len(raw_ciphertext) != expected_size or raw_ciphertext[0] != bit_width:
            raise ProofRejectedError(
                f"Ciphertext is not a {bit_width}-bit encrypted integer"
            )

        expected = _mac(self._key, b"admit", raw_ciphertext, context.binding())
        if not hmac.compare_digest(expected, admission_proof):
            raise ProofRejectedError(
                "Admission proof does not match ciphertext and context"
            )

        nonce = raw_ciphertext[1:1 + NONCE_SIZE]
        size = bit_width // 8
        masked = int.from_bytes(raw_ciphertext[1 + NONCE_SIZE:], "big")
        value = masked ^ int.from_bytes(self._keystream(nonce, size), "big")
        return self._store(value, bit_width)

    def make_publicly_decryptable(self, handle: Handle) -> Handle:
        self._value(handle)
        with self._lock:
            self._public.add(handle.handle_id)
        self._logger.debug("public_decryption_granted", handle_id=handle.handle_id)
        return handle.model_copy(update={"publicly_decryptable": True})

    def is_publicly_decryptable(self, handle: Handle) -> bool:
        return handle.handle_id in self._public

    def as_encrypted(self, value: int, bit_width: int) -> Handle:
        if value < 0:
            raise BackendError("Encrypted integers are unsigned")
        return self._store(value, bit_width)

    def _binary(self, a: Handle, b: Handle, op) -> Handle:
        width = max(a.bit_width, b.bit_width)
        return self._store(op(self._value(a), self._value(b)), width)

    def add(self, a: Handle, b: Handle) -> Handle:
        return self._binary(a, b, lambda x, y: x + y)

    def sub(self, a: Handle, b: Handle) -> Handle:
        # Negative results wrap, as unsigned ciphertext arithmetic does
        return self._binary(a, b, lambda x, y: x - y)

    def mul(self, a: Handle, b: Handle) -> Handle:
        return self._binary(a, b, lambda x, y: x * y)

    def div(self, a: Handle, b: Handle) -> Handle:
        if self._value(b) == 0:
            raise BackendError("Division by an encrypted zero")
        return self._binary(a, b, lambda x, y: x // y)

    def pow_fixed(self, base: Handle, exponent: int, scale: int) -> Handle:
        if exponent < 0:
            raise BackendError("Negative exponents are not defined for unsigned ciphertexts")
        if scale <= 0:
            raise BackendError("Fixed-point scale must be positive")

        mask = (1 << base.bit_width) - 1
        b = self._value(base)
        acc = scale
        for _ in range(exponent):
            acc = ((acc * b) & mask) // scale
        return self._store(acc, base.bit_width)

    def cast(self, handle: Handle, bit_width: int) -> Handle:
        return self._store(self._value(handle), bit_width)

    def is_available(self) -> bool:
        return True


class LocalProofVerifier(DecryptionProofVerifier):
    """
    Verifies threshold proofs produced by LocalDecryptionCommittee.

    Holds the committee's key material; a proof is valid when at least
    `threshold` distinct signers attested the same (handle, cleartext).
    """

    def __init__(self, signer_keys: list[bytes], threshold: int):
        if not 1 <= threshold <= len(signer_keys):
            raise ValueError("Threshold must be between 1 and the number of signers")
        self._signer_keys = list(signer_keys)
        self._threshold = threshold

    @staticmethod
    def _payload(handle: Handle, clear_value: bytes) -> tuple[bytes, ...]:
        return (
            b"decrypt",
            str(handle.handle_id).encode(),
            str(handle.bit_width).encode(),
            clear_value,
        )

    def verify(
        self,
        handle: Handle,
        clear_value: bytes,
        proof: DecryptionProof,
    ) -> bool:
        payload = self._payload(handle, clear_value)
        signers = set()
        for index, key in enumerate(self._signer_keys):
            expected = _mac(key, *payload)
            if any(hmac.compare_digest(expected, sig) for sig in proof.signatures):
                signers.add(index)
        return len(signers) >= self._threshold


class LocalDecryptionCommittee:
    """
    Off-ledger decryption committee.

    Given a publicly decryptable handle, produces (clear_value, proof).
    The ledger never calls this; callers take its output to `verify_amount`.
    """

    def __init__(
        self,
        backend: LocalFheBackend,
        signer_count: int = 1,
        threshold: int = 1,
    ):
        self._backend = backend
        self._signer_keys = [secrets.token_bytes(32) for _ in range(signer_count)]
        self._threshold = threshold
        self._verifier = LocalProofVerifier(self._signer_keys, threshold)

    @property
    def verifier(self) -> LocalProofVerifier:
        return self._verifier

    def attest(
        self,
        handle: Handle,
        clear_value: bytes,
        signers: Optional[int] = None,
    ) -> DecryptionProof:
        """Sign a (handle, cleartext) pair with the first `signers` keys."""
        count = self._threshold if signers is None else signers
        payload = LocalProofVerifier._payload(handle, clear_value)
        return DecryptionProof(
            signatures=tuple(_mac(key, *payload) for key in self._signer_keys[:count])
        )

    def decrypt(self, handle: Handle) -> tuple[bytes, DecryptionProof]:
        """
        Open a handle and prove the opening.

        Raises:
            BackendError: If the handle was never made publicly decryptable
        """
        if not self._backend.is_publicly_decryptable(handle):
            raise BackendError(f"Handle is not publicly decryptable: {handle!r}")

        clear_value = encode_clear_value(self._backend.reveal(handle))
        return clear_value, self.attest(handle, clear_value)
