"""
Audit Models for the Encrypted Debt Ledger

Every significant action in the system is logged for audit purposes.
This provides:
1. Complete traceability of record creation and disclosure
2. Debugging information when proofs are rejected
3. Accountability for who created which record
4. Ability to reconstruct history

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
Audit events never contain ciphertext bytes; disclosed amounts appear only
after a successful verification.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every step of the record lifecycle has its own event type.
    """
    # Admission and creation
    RECORD_CREATED = "record_created"
    ADMISSION_REJECTED = "admission_rejected"
    DUPLICATE_REJECTED = "duplicate_rejected"
    TERMS_REJECTED = "terms_rejected"

    # Disclosure
    AMOUNT_DISCLOSED = "amount_disclosed"
    DISCLOSURE_REJECTED = "disclosure_rejected"

    # Computation
    PAYMENT_COMPUTED = "payment_computed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'debt_record')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one caller request)"
    )

    # Event details
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    # Who triggered it
    actor: Optional[str] = Field(
        default=None,
        description="Principal that triggered the event, if known"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "actor": self.actor,
        }

    def to_json_line(self) -> str:
        """Serialize as one line of the append-only audit file."""
        return json.dumps(self.model_dump(mode="json"), sort_keys=True)


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_created(record_id, owner, correlation_id)
        event = AuditEventBuilder.amount_disclosed(record_id, 1000, correlation_id)
    """

    @staticmethod
    def record_created(
        record_id: str,
        owner: str,
        interest_rate_annual: int,
        term_months: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            entity_type="debt_record",
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Encrypted debt record created: {record_id}",
            details={
                "interest_rate_annual": interest_rate_annual,
                "term_months": term_months,
            },
            actor=owner,
        )

    @staticmethod
    def admission_rejected(
        record_id: str,
        caller: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADMISSION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="debt_record",
            entity_id=record_id,
            correlation_id=correlation_id,
            description="Ciphertext admission rejected",
            error_code="invalid_ciphertext_proof",
            error_message=reason,
            actor=caller,
        )

    @staticmethod
    def duplicate_rejected(
        record_id: str,
        caller: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DUPLICATE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="debt_record",
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Record id already taken: {record_id}",
            error_code="duplicate_record",
            actor=caller,
        )

    @staticmethod
    def terms_rejected(
        record_id: str,
        caller: str,
        error_code: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TERMS_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="debt_record",
            entity_id=record_id,
            correlation_id=correlation_id,
            description="Public debt terms rejected",
            error_code=error_code,
            error_message=reason,
            actor=caller,
        )

    @staticmethod
    def amount_disclosed(
        record_id: str,
        clear_value: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AMOUNT_DISCLOSED,
            entity_type="debt_record",
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Amount disclosed for {record_id}",
            details={
                "clear_value": clear_value,
            },
        )

    @staticmethod
    def disclosure_rejected(
        record_id: str,
        error_code: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DISCLOSURE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="debt_record",
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Disclosure rejected for {record_id}",
            error_code=error_code,
            error_message=reason,
        )

    @staticmethod
    def payment_computed(
        record_id: str,
        result_handle_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_COMPUTED,
            severity=AuditSeverity.DEBUG,
            entity_type="debt_record",
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Encrypted monthly payment computed for {record_id}",
            details={
                "result_handle_id": result_handle_id,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
