"""
Main Orchestrator for the Encrypted Debt Ledger

This module ties together all the components and defines the
end-to-end operations callers use:
1. Create (terms → validate → admit ciphertext → insert → notify)
2. Verify (committee output → check proof → commit once → notify)
3. Compute (encrypted monthly payment, no decryption)
4. Read (record views, ids, handles, disclosed repayment plan)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No record exists without an admitted, publicly decryptable handle
- No amount is disclosed without a valid committee proof, and only once
- Every state change and every rejection is audited

Ledger errors propagate to the caller unchanged; audit failures never do.
"""

from datetime import datetime, timezone
from typing import Callable, Optional
from uuid import UUID

import structlog

from debt_ledger.audit import AuditLogger, create_correlation_id
from debt_ledger.config import LedgerSettings, get_settings
from debt_ledger.ledger import (
    AlreadyVerified,
    AmortizationEngine,
    CiphertextIngress,
    DebtRecordRegistry,
    DecryptionVerifier,
    DuplicateRecord,
    InvalidCiphertextProof,
    InvalidDecryptionProof,
    InvalidRecordTerms,
    NotificationLog,
    NumericOverflow,
    RecordNotFound,
)
from debt_ledger.models.debt import (
    AdmissionContext,
    DebtRecordView,
    DecryptionProof,
    EncryptedValue,
    Handle,
    RepaymentPlan,
)
from debt_ledger.queries import RecordQueryExecutor
from debt_ledger.services.fhe import (
    BackendError,
    DecryptionProofVerifier,
    HomomorphicBackend,
    LocalDecryptionCommittee,
    LocalFheBackend,
)
from debt_ledger.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    JsonlAuditStorage,
)
from debt_ledger.validation import RecordTermsValidator


class DebtLedgerService:
    """
    Caller-facing ledger operations.

    Flow of a debt:
    1. create_record   → amount admitted encrypted, granted for committee decryption
    2. monthly_payment → any number of times, encrypted result
    3. (off-ledger)    → committee decrypts the handle, returns (clear_value, proof)
    4. verify_amount   → exactly one success per record

    Step 4 is the ONLY point where a plaintext amount enters the ledger.
    """

    def __init__(
        self,
        backend: HomomorphicBackend,
        proof_verifier: DecryptionProofVerifier,
        settings: Optional[LedgerSettings] = None,
        registry: Optional[DebtRecordRegistry] = None,
        validator: Optional[RecordTermsValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._settings = settings or get_settings().ledger
        self._backend = backend
        self._registry = registry if registry is not None else DebtRecordRegistry(backend=backend)
        self._ingress = CiphertextIngress(backend, self._settings.value_bit_width)
        self._verifier = DecryptionVerifier(self._registry, proof_verifier)
        self._engine = AmortizationEngine(
            self._registry,
            backend,
            scale=self._settings.fixed_point_scale,
            value_bit_width=self._settings.value_bit_width,
            compute_bit_width=self._settings.compute_bit_width,
        )
        self._queries = RecordQueryExecutor(self._registry)
        self._validator = validator or RecordTermsValidator(self._settings)
        self._audit_logger = audit_logger
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._logger = structlog.get_logger()

    @property
    def notifications(self) -> NotificationLog:
        return self._registry.notifications

    @property
    def ledger_address(self) -> str:
        return self._settings.ledger_address

    def admission_context(self, caller: str) -> AdmissionContext:
        """The context a caller's ciphertexts must be bound to."""
        return AdmissionContext(caller=caller, ledger_address=self.ledger_address)

    async def create_record(
        self,
        caller: str,
        record_id: str,
        raw_ciphertext: bytes,
        admission_proof: bytes,
        interest_rate_annual: int,
        term_months: int,
        name: str = "",
        description: str = "",
        correlation_id: Optional[UUID] = None,
    ) -> DebtRecordView:
        """
        Register an encrypted debt owned by `caller`.

        Raises:
            InvalidRecordTerms: If the public terms are malformed
            NumericOverflow: If the terms cannot be represented in fixed point
            DuplicateRecord: If `record_id` is taken
            InvalidCiphertextProof: If the ciphertext is not admitted
        """
        correlation_id = correlation_id or create_correlation_id()

        # Step 1: Public terms
        result = self._validator.validate(
            record_id, interest_rate_annual, term_months, name, description,
            caller=caller or "",
        )
        try:
            self._validator.ensure_valid(result)
        except (InvalidRecordTerms, NumericOverflow) as e:
            if self._audit_logger:
                await self._audit_logger.log_terms_rejected(
                    record_id=record_id,
                    caller=caller,
                    error_code=e.error_code,
                    reason=str(e),
                    correlation_id=correlation_id,
                )
            raise

        # Fast reject; the registry's compare-and-insert stays authoritative
        if record_id in self._registry:
            await self._audit_duplicate(record_id, caller, correlation_id)
            raise DuplicateRecord(f"Record already exists: {record_id}", record_id=record_id)

        # Step 2: Admit the ciphertext (grants committee decryption)
        try:
            handle = self._ingress.admit(
                raw_ciphertext,
                admission_proof,
                self.admission_context(caller),
            )
        except InvalidCiphertextProof as e:
            e.record_id = record_id
            if self._audit_logger:
                await self._audit_logger.log_admission_rejected(
                    record_id=record_id,
                    caller=caller,
                    reason=str(e),
                    correlation_id=correlation_id,
                )
            raise

        # Step 3: Insert
        try:
            record = self._registry.create(
                record_id,
                handle,
                interest_rate_annual,
                term_months,
                owner=caller,
                now=self._clock(),
                name=name,
                description=description,
            )
        except DuplicateRecord:
            await self._audit_duplicate(record_id, caller, correlation_id)
            raise
        except InvalidCiphertextProof as e:
            if self._audit_logger:
                await self._audit_logger.log_admission_rejected(
                    record_id=record_id,
                    caller=caller,
                    reason=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_record_created(
                record_id=record.id,
                owner=record.owner,
                interest_rate_annual=record.interest_rate_annual,
                term_months=record.term_months,
                correlation_id=correlation_id,
            )

        return DebtRecordView.from_record(record)

    async def _audit_duplicate(
        self,
        record_id: str,
        caller: str,
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_duplicate_rejected(
                record_id=record_id,
                caller=caller,
                correlation_id=correlation_id,
            )

    async def verify_amount(
        self,
        record_id: str,
        clear_value: bytes,
        decryption_proof: DecryptionProof,
        correlation_id: Optional[UUID] = None,
    ) -> DebtRecordView:
        """
        Commit the committee's cleartext for a record.

        Raises:
            RecordNotFound: If no record has this id
            AlreadyVerified: If the amount was already disclosed
            InvalidDecryptionProof: If the proof does not check out
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            record = self._verifier.verify(record_id, clear_value, decryption_proof)
        except (RecordNotFound, AlreadyVerified, InvalidDecryptionProof) as e:
            if self._audit_logger:
                await self._audit_logger.log_disclosure_rejected(
                    record_id=record_id,
                    error_code=e.error_code,
                    reason=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_amount_disclosed(
                record_id=record.id,
                clear_value=record.decrypted_amount,
                correlation_id=correlation_id,
            )

        return DebtRecordView.from_record(record)

    async def monthly_payment(
        self,
        record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> EncryptedValue:
        """
        Encrypted monthly payment of a record.

        Raises:
            RecordNotFound: If no record has this id
            NumericOverflow: If the terms overflow the compute width
        """
        payment = self._engine.monthly_payment(record_id)

        if self._audit_logger:
            await self._audit_logger.log_payment_computed(
                record_id=record_id,
                result_handle_id=payment.handle_id,
                correlation_id=correlation_id,
            )

        return payment

    async def get_record(self, record_id: str) -> DebtRecordView:
        return self._queries.get_record(record_id)

    async def get_encrypted_amount(self, record_id: str) -> Handle:
        return self._queries.get_encrypted_amount(record_id)

    async def list_ids(self) -> list[str]:
        return self._queries.list_ids()

    async def list_records(self) -> list[DebtRecordView]:
        return self._queries.list_records()

    async def repayment_plan(self, record_id: str) -> RepaymentPlan:
        return self._queries.repayment_plan(record_id)

    async def is_available(self) -> bool:
        """Liveness check: is the encryption backend reachable?"""
        try:
            return self._backend.is_available()
        except BackendError as e:
            self._logger.warning("backend_unavailable", error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type="backend_unavailable",
                    error_message=str(e),
                    details={"backend": type(self._backend).__name__},
                )
            return False


def create_app_components(
    use_storage: bool = True,
) -> tuple[DebtLedgerService, LocalDecryptionCommittee, AuditStorageInterface]:
    """
    Factory function to create a ledger wired to the local reference backend.

    Args:
        use_storage: Whether to write the audit trail to the configured
                    JSON-lines file. Falls back to in-memory storage when
                    False or when no path is configured.

    Returns:
        (service, committee, audit_storage)
    """
    settings = get_settings()
    logger = structlog.get_logger()

    backend = LocalFheBackend()
    committee = LocalDecryptionCommittee(
        backend,
        signer_count=settings.committee.signer_count,
        threshold=settings.committee.threshold,
    )

    audit_storage: AuditStorageInterface = InMemoryAuditStorage()
    if use_storage and settings.audit.log_path:
        audit_storage = JsonlAuditStorage(settings.audit.log_path)
    elif use_storage:
        logger.warning("audit_storage_not_configured", fallback="memory")

    service = DebtLedgerService(
        backend=backend,
        proof_verifier=committee.verifier,
        settings=settings.ledger,
        audit_logger=AuditLogger(audit_storage),
    )

    return service, committee, audit_storage
