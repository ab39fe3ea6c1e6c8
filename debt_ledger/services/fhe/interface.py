"""
Encryption Backend Interfaces

DESIGN DECISION: The ledger does not implement cryptography. It talks to
two external collaborators through these interfaces:
1. HomomorphicBackend - admits ciphertexts, issues handles, computes on them
2. DecryptionProofVerifier - checks a committee's proof that a cleartext
   opens a handle

Anything that satisfies these contracts (a real FHE coprocessor, a remote
service, or the local reference backend) can be plugged in.
"""

from abc import ABC, abstractmethod

from debt_ledger.models.debt import AdmissionContext, DecryptionProof, Handle


# Cleartexts travel as one 32-byte big-endian word, like an ABI-encoded uint256.
CLEAR_VALUE_WORD_SIZE = 32


class BackendError(Exception):
    """Base exception for encryption backend failures."""
    pass


class ProofRejectedError(BackendError):
    """The backend refused a ciphertext or its admission proof."""
    pass


def encode_clear_value(value: int) -> bytes:
    """Encode a cleartext as a 32-byte big-endian word."""
    if value < 0:
        raise ValueError("Clear values are unsigned")
    return value.to_bytes(CLEAR_VALUE_WORD_SIZE, "big")


def decode_clear_value(data: bytes, bit_width: int) -> int:
    """
    Decode a 32-byte word as an unsigned integer of `bit_width` bits.

    Raises:
        ValueError: If the word is malformed or the value does not fit
    """
    if len(data) != CLEAR_VALUE_WORD_SIZE:
        raise ValueError(
            f"Clear value must be {CLEAR_VALUE_WORD_SIZE} bytes, got {len(data)}"
        )
    value = int.from_bytes(data, "big")
    if value >> bit_width:
        raise ValueError(f"Clear value does not fit in {bit_width} bits")
    return value


class HomomorphicBackend(ABC):
    """
    Abstract interface for the homomorphic-encryption backend.

    Handles returned by this interface are opaque; only the backend can
    relate them to ciphertexts. Arithmetic results take the wider of the
    operand widths and wrap modulo 2**width.
    """

    @abstractmethod
    def verify_input(
        self,
        raw_ciphertext: bytes,
        admission_proof: bytes,
        context: AdmissionContext,
        bit_width: int,
    ) -> Handle:
        """
        Validate an externally produced ciphertext and issue a handle.

        Raises:
            ProofRejectedError: If the proof is invalid, bound to another
                context, or the ciphertext is not `bit_width` wide
        """
        pass

    @abstractmethod
    def make_publicly_decryptable(self, handle: Handle) -> Handle:
        """
        Authorize the decryption committee to open this handle.

        The grant is irrevocable. Returns the handle with the flag set.
        """
        pass

    @abstractmethod
    def is_publicly_decryptable(self, handle: Handle) -> bool:
        pass

    @abstractmethod
    def as_encrypted(self, value: int, bit_width: int) -> Handle:
        """Trivially encrypt a public constant."""
        pass

    @abstractmethod
    def add(self, a: Handle, b: Handle) -> Handle:
        pass

    @abstractmethod
    def sub(self, a: Handle, b: Handle) -> Handle:
        pass

    @abstractmethod
    def mul(self, a: Handle, b: Handle) -> Handle:
        pass

    @abstractmethod
    def div(self, a: Handle, b: Handle) -> Handle:
        """Floor division of two encrypted values."""
        pass

    @abstractmethod
    def pow_fixed(self, base: Handle, exponent: int, scale: int) -> Handle:
        """
        Fixed-point power: `base` is scaled by `scale`, result is too.

        Each multiplication is rescaled with floor division. Only
        non-negative public exponents are defined.
        """
        pass

    @abstractmethod
    def cast(self, handle: Handle, bit_width: int) -> Handle:
        """Re-encrypt a value at another width."""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Liveness check."""
        pass


class DecryptionProofVerifier(ABC):
    """
    Abstract interface for the decryption committee's verification procedure.
    """

    @abstractmethod
    def verify(
        self,
        handle: Handle,
        clear_value: bytes,
        proof: DecryptionProof,
    ) -> bool:
        """
        Check that `clear_value` is the committee-attested opening of `handle`.

        Returns:
            True if the proof is valid
        """
        pass
