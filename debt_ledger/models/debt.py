"""
Core Data Models for the Encrypted Debt Ledger

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Never carry plaintext amounts until a disclosure is verified
3. Be immutable, so a reader always sees one complete snapshot
4. Support the audit trail

DESIGN DECISION: Records are frozen Pydantic v2 models. The only state
transition (verification) produces a new snapshot instead of mutating
fields in place.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# ENCRYPTION BOUNDARY MODELS
# =============================================================================

class Handle(BaseModel):
    """
    Opaque reference to a ciphertext held by the encryption backend.

    CRITICAL: A handle is a capability token, an index into the backend's
    store. It never contains ciphertext bytes or plaintext.

    `publicly_decryptable` is granted once, when the backend issues the
    handle at admission, and can never be changed afterwards.
    """
    model_config = ConfigDict(frozen=True)

    handle_id: int = Field(
        ...,
        ge=0,
        description="Index into the backend-owned ciphertext store"
    )
    bit_width: int = Field(
        ...,
        gt=0,
        description="Numeric width of the encrypted value"
    )
    publicly_decryptable: bool = Field(
        default=False,
        description="Committee may produce a decryption proof for this handle"
    )

    def __repr__(self) -> str:
        flag = ", public" if self.publicly_decryptable else ""
        return f"Handle(#{self.handle_id}, u{self.bit_width}{flag})"

    __str__ = __repr__


# Results of homomorphic computation are handles too; the alias names intent.
EncryptedValue = Handle


class AdmissionContext(BaseModel):
    """
    What an admitted ciphertext is bound to.

    An admission proof minted for one (caller, ledger) pair does not
    validate in any other context.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    caller: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Identity of the principal submitting the ciphertext"
    )
    ledger_address: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Identifier of the ledger the ciphertext is meant for"
    )

    def binding(self) -> bytes:
        """Canonical byte encoding used by admission proofs."""
        return f"{self.caller}|{self.ledger_address}".encode("utf-8")


class DecryptionProof(BaseModel):
    """
    Committee attestation that a cleartext opens a specific handle.

    Opaque to the ledger beyond passing it to the verifier.
    """
    model_config = ConfigDict(frozen=True)

    signatures: tuple[bytes, ...] = Field(
        default=(),
        description="Signer attestations over (handle, cleartext)"
    )


# =============================================================================
# CORE DEBT RECORD
# =============================================================================

class DebtRecord(BaseModel):
    """
    A debt whose amount stays encrypted until a verified disclosure.

    CRITICAL: `verified` and `decrypted_amount` change together, once.
    Everything else is fixed at creation.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    # Identity
    id: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Externally chosen record identifier"
    )
    owner: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Principal that created the record"
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the record was created"
    )

    # Encrypted principal
    encrypted_amount: Handle = Field(
        ...,
        description="Handle of the encrypted debt amount"
    )

    # Public terms
    interest_rate_annual: int = Field(
        ...,
        ge=0,
        description="Annual interest rate in percent"
    )
    term_months: int = Field(
        ...,
        ge=1,
        description="Repayment term in months"
    )

    # Public metadata
    name: str = Field(
        default="",
        max_length=100,
        description="Short label for the debt"
    )
    description: str = Field(
        default="",
        max_length=500,
        description="Free-text note"
    )

    # Disclosure state
    verified: bool = Field(
        default=False,
        description="Has the amount been disclosed with a valid proof?"
    )
    decrypted_amount: Optional[int] = Field(
        default=None,
        ge=0,
        description="Disclosed cleartext amount"
    )

    @field_validator('id', 'owner', mode='before')
    @classmethod
    def validate_identifier(cls, v):
        """Identifiers are stored exactly as given; padded ones are refused."""
        if isinstance(v, str) and v != v.strip():
            raise ValueError("Identifier must not have leading or trailing whitespace")
        return v

    @model_validator(mode='after')
    def validate_disclosure_state(self) -> 'DebtRecord':
        """Disclosure fields are set together or not at all."""
        if self.verified != (self.decrypted_amount is not None):
            raise ValueError("verified and decrypted_amount must change together")

        if not self.encrypted_amount.publicly_decryptable:
            raise ValueError("Encrypted amount must be an admitted handle")

        return self

    def with_disclosure(self, clear_value: int) -> 'DebtRecord':
        """Return the verified snapshot of this record."""
        if self.verified:
            raise ValueError(f"Record {self.id} is already verified")
        return self.model_copy(update={
            "verified": True,
            "decrypted_amount": clear_value,
        })


class DebtRecordView(BaseModel):
    """
    Public projection of a record.

    This is what callers receive. It never includes ciphertext handles.
    """

    id: str
    name: str
    description: str
    interest_rate_annual: int
    term_months: int
    owner: str
    created_at: datetime
    verified: bool
    decrypted_amount: Optional[int] = None

    @classmethod
    def from_record(cls, record: DebtRecord) -> 'DebtRecordView':
        return cls(
            id=record.id,
            name=record.name,
            description=record.description,
            interest_rate_annual=record.interest_rate_annual,
            term_months=record.term_months,
            owner=record.owner,
            created_at=record.created_at,
            verified=record.verified,
            decrypted_amount=record.decrypted_amount,
        )


# =============================================================================
# REPAYMENT MODELS
# =============================================================================

class RepaymentPlan(BaseModel):
    """
    Plaintext repayment figures for a disclosed debt.

    Only ever built from `decrypted_amount`, after verification.
    """

    record_id: str
    principal: int = Field(ge=0)
    monthly_payment: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
        description="Payment due each month"
    )
    total_payment: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
        description="Sum of all monthly payments"
    )
    total_interest: Decimal = Field(
        ...,
        decimal_places=2,
        description="Total paid above the principal"
    )


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'out_of_range', 'overflow')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation of public record terms.

    Stage 1: Schema validation (types, required fields, lengths)
    Stage 2: Semantic validation (configured limits, fixed-point range)
    """

    record_id: str
    validated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    schema_valid: bool
    semantic_valid: bool
    is_valid: bool

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def has_overflow(self) -> bool:
        return any(issue.issue_type == "overflow" for issue in self.issues)
