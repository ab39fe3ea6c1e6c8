"""
Debt Record Registry

Owns the id -> DebtRecord table and the insertion-ordered id list.

CONCURRENCY MODEL:
- One registry lock guards the table and the id list. `create` does its
  uniqueness check and insertion under it, as one compare-and-insert.
- Each record has its own lock. `update` runs a transition and swaps the
  stored snapshot under it, so writers on different ids never contend.
- Records are frozen, so readers (`get`, `list_ids`) always see a whole
  snapshot: either before a transition or after it, never in between.

Records are never deleted here.
"""

import threading
from datetime import datetime
from typing import Callable, Optional

import structlog
from pydantic import ValidationError

from debt_ledger.ledger.errors import (
    DuplicateRecord,
    InvalidCiphertextProof,
    InvalidRecordTerms,
    RecordNotFound,
)
from debt_ledger.ledger.notifications import NotificationLog
from debt_ledger.models.debt import DebtRecord, Handle
from debt_ledger.services.fhe import HomomorphicBackend


# Fields a transition is allowed to change
MUTABLE_FIELDS = {"verified", "decrypted_amount"}


class _Slot:
    """A stored record snapshot plus the lock that serializes its writers."""

    __slots__ = ("record", "lock")

    def __init__(self, record: DebtRecord):
        self.record = record
        self.lock = threading.Lock()


class DebtRecordRegistry:
    """
    Process-wide table of debt records.

    Starts empty; there is no teardown within the ledger's lifetime.
    """

    def __init__(
        self,
        notifications: Optional[NotificationLog] = None,
        backend: Optional[HomomorphicBackend] = None,
    ):
        """
        Args:
            notifications: Log that receives RecordCreated events
            backend: If given, every handle must be confirmed by it as
                    granted for public decryption before a record wraps it
        """
        self._backend = backend
        self._slots: dict[str, _Slot] = {}
        self._order: list[str] = []
        self._lock = threading.RLock()
        self._notifications = notifications if notifications is not None else NotificationLog()
        self._logger = structlog.get_logger()

    @property
    def notifications(self) -> NotificationLog:
        return self._notifications

    def create(
        self,
        record_id: str,
        handle: Handle,
        interest_rate_annual: int,
        term_months: int,
        owner: str,
        now: datetime,
        name: str = "",
        description: str = "",
    ) -> DebtRecord:
        """
        Insert a new unverified record.

        Raises:
            DuplicateRecord: If `record_id` is already present
            InvalidRecordTerms: If the fields do not form a valid record
            InvalidCiphertextProof: If the backend never granted the handle
        """
        try:
            record = DebtRecord(
                id=record_id,
                owner=owner,
                created_at=now,
                encrypted_amount=handle,
                interest_rate_annual=interest_rate_annual,
                term_months=term_months,
                name=name,
                description=description,
            )
        except ValidationError as e:
            raise InvalidRecordTerms(str(e), record_id=record_id) from e

        # The handle's own flag is only a claim; the backend is the authority
        if self._backend is not None and not self._backend.is_publicly_decryptable(handle):
            raise InvalidCiphertextProof(
                f"Handle was not admitted by the backend: {handle!r}",
                record_id=record_id,
            )

        with self._lock:
            if record.id in self._slots:
                raise DuplicateRecord(
                    f"Record already exists: {record.id}",
                    record_id=record.id,
                )
            self._slots[record.id] = _Slot(record)
            self._order.append(record.id)
            self._notifications.record_created(record.id, record.owner)

        self._logger.info("record_created", record_id=record.id, owner=record.owner)
        return record

    def _slot(self, record_id: str) -> _Slot:
        slot = self._slots.get(record_id)
        if slot is None:
            raise RecordNotFound(f"Record not found: {record_id}", record_id=record_id)
        return slot

    def get(self, record_id: str) -> DebtRecord:
        """
        Current snapshot of a record.

        Raises:
            RecordNotFound: If no record has this id
        """
        return self._slot(record_id).record

    def list_ids(self) -> list[str]:
        """Ids in insertion order, as a fresh list."""
        with self._lock:
            return list(self._order)

    def update(
        self,
        record_id: str,
        transition: Callable[[DebtRecord], DebtRecord],
        on_commit: Optional[Callable[[DebtRecord], None]] = None,
    ) -> DebtRecord:
        """
        Atomically replace a record with `transition(record)`.

        The transition runs under the record's lock. If it raises, the
        stored record is untouched and the exception propagates.
        `on_commit` runs under the same lock right after the swap.

        Raises:
            RecordNotFound: If no record has this id
            ValueError: If the transition touches an immutable field
        """
        slot = self._slot(record_id)
        with slot.lock:
            current = slot.record
            updated = transition(current)

            frozen_before = current.model_dump(exclude=MUTABLE_FIELDS)
            frozen_after = updated.model_dump(exclude=MUTABLE_FIELDS)
            if frozen_before != frozen_after:
                raise ValueError(f"Transition changed immutable fields of {record_id}")
            if current.verified and not updated.verified:
                raise ValueError(f"Transition reverted verification of {record_id}")

            slot.record = updated
            if on_commit is not None:
                on_commit(updated)

        return updated

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._slots

    def __len__(self) -> int:
        return len(self._slots)
