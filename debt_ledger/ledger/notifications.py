"""
One-shot Ledger Notifications

External watchers learn about state changes from these, not from the
absence of an exception: a record exists iff a RecordCreated was emitted
for it, and an amount is disclosed iff an AmountDisclosed was emitted.

Notifications are emitted inside the same critical section as the state
change they describe, so their order matches the order of commits.
"""

import threading
from datetime import datetime, timezone
from typing import Callable, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field


class RecordCreated(BaseModel):
    """Emitted exactly once per successful record creation."""
    model_config = ConfigDict(frozen=True)

    sequence: int = Field(ge=0)
    emitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    record_id: str
    owner: str


class AmountDisclosed(BaseModel):
    """Emitted exactly once per successful verification."""
    model_config = ConfigDict(frozen=True)

    sequence: int = Field(ge=0)
    emitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    record_id: str
    clear_value: int = Field(ge=0)


Notification = Union[RecordCreated, AmountDisclosed]
Subscriber = Callable[[Notification], None]


class NotificationLog:
    """
    Append-only log of notifications with synchronous subscribers.

    A failing subscriber is logged and skipped; it cannot undo the state
    change that was already committed.
    """

    def __init__(self):
        self._events: list[Notification] = []
        self._subscribers: list[Subscriber] = []
        self._lock = threading.RLock()
        self._logger = structlog.get_logger()

    def subscribe(self, callback: Subscriber) -> None:
        with self._lock:
            self._subscribers.append(callback)

    def record_created(self, record_id: str, owner: str) -> RecordCreated:
        with self._lock:
            event = RecordCreated(
                sequence=len(self._events),
                record_id=record_id,
                owner=owner,
            )
            self._publish(event)
        return event

    def amount_disclosed(self, record_id: str, clear_value: int) -> AmountDisclosed:
        with self._lock:
            event = AmountDisclosed(
                sequence=len(self._events),
                record_id=record_id,
                clear_value=clear_value,
            )
            self._publish(event)
        return event

    def _publish(self, event: Notification) -> None:
        self._events.append(event)
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as e:
                self._logger.error(
                    "notification_subscriber_failed",
                    notification=type(event).__name__,
                    record_id=event.record_id,
                    error=str(e),
                )

    def events(self) -> list[Notification]:
        """All notifications in emission order (a fresh list)."""
        with self._lock:
            return list(self._events)

    def events_for(self, record_id: str) -> list[Notification]:
        with self._lock:
            return [e for e in self._events if e.record_id == record_id]

    def __len__(self) -> int:
        return len(self._events)
