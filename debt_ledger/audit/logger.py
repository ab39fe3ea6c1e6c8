"""
Audit Logger

DESIGN DECISION: Every significant action in the ledger is logged.
This provides:
1. Complete traceability of creations and disclosures
2. Debugging capability when proofs are rejected
3. Accountability per principal
4. Compliance readiness

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the ledger if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from debt_ledger.models.audit import AuditEvent, AuditEventBuilder
from debt_ledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and external review)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger()

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_record_created(
        self,
        record_id: str,
        owner: str,
        interest_rate_annual: int,
        term_months: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log record creation."""
        event = AuditEventBuilder.record_created(
            record_id=record_id,
            owner=owner,
            interest_rate_annual=interest_rate_annual,
            term_months=term_months,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_admission_rejected(
        self,
        record_id: str,
        caller: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a rejected ciphertext admission."""
        event = AuditEventBuilder.admission_rejected(
            record_id=record_id,
            caller=caller,
            reason=reason,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_duplicate_rejected(
        self,
        record_id: str,
        caller: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a duplicate record id."""
        event = AuditEventBuilder.duplicate_rejected(
            record_id=record_id,
            caller=caller,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_terms_rejected(
        self,
        record_id: str,
        caller: str,
        error_code: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log rejected public terms."""
        event = AuditEventBuilder.terms_rejected(
            record_id=record_id,
            caller=caller,
            error_code=error_code,
            reason=reason,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_amount_disclosed(
        self,
        record_id: str,
        clear_value: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a verified disclosure."""
        event = AuditEventBuilder.amount_disclosed(
            record_id=record_id,
            clear_value=clear_value,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_disclosure_rejected(
        self,
        record_id: str,
        error_code: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a rejected disclosure."""
        event = AuditEventBuilder.disclosure_rejected(
            record_id=record_id,
            error_code=error_code,
            reason=reason,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_payment_computed(
        self,
        record_id: str,
        result_handle_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an encrypted payment computation."""
        event = AuditEventBuilder.payment_computed(
            record_id=record_id,
            result_handle_id=result_handle_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a caller request and pass it through
    all subsequent operations.
    """
    return uuid4()
