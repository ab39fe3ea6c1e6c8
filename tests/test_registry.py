"""Tests for the record registry and its notifications."""

import threading

import pytest

from debt_ledger.ledger import (
    AmountDisclosed,
    DebtRecordRegistry,
    DuplicateRecord,
    InvalidCiphertextProof,
    InvalidRecordTerms,
    NotificationLog,
    RecordCreated,
    RecordNotFound,
)
from debt_ledger.models.debt import Handle
from tests.conftest import NOW, OWNER


class TestRegistryCreate:
    """Tests for DebtRecordRegistry.create."""

    def test_create_inserts_unverified_record(self, registry, make_record):
        record = make_record("d1")

        assert registry.get("d1") == record
        assert record.owner == OWNER
        assert record.created_at == NOW
        assert record.verified is False
        assert record.decrypted_amount is None

    def test_duplicate_id_rejected(self, registry, make_record):
        """Test that the second create keeps exactly one record."""
        original = make_record("d1", amount=1000)

        with pytest.raises(DuplicateRecord) as exc_info:
            make_record("d1", amount=5)

        assert exc_info.value.record_id == "d1"
        assert len(registry) == 1
        assert registry.list_ids() == ["d1"]
        assert registry.get("d1").encrypted_amount == original.encrypted_amount

    def test_invalid_terms_rejected(self, registry, admit):
        with pytest.raises(InvalidRecordTerms):
            registry.create("d1", admit(1000), -1, 24, owner=OWNER, now=NOW)
        assert "d1" not in registry

    def test_unadmitted_handle_rejected(self, registry, backend):
        """Test that a record can only wrap a handle granted for decryption."""
        private = backend.as_encrypted(1000, 32)

        with pytest.raises(InvalidRecordTerms):
            registry.create("d1", private, 12, 24, owner=OWNER, now=NOW)
        assert len(registry.notifications) == 0

    def test_forged_decryptable_flag_rejected(self, registry, backend):
        """Test that claiming the grant on a handle is not enough."""
        private = backend.as_encrypted(1000, 32)
        forged = private.model_copy(update={"publicly_decryptable": True})
        unknown = Handle(handle_id=999, bit_width=32, publicly_decryptable=True)

        for handle in (forged, unknown):
            with pytest.raises(InvalidCiphertextProof) as exc_info:
                registry.create("d1", handle, 12, 24, owner=OWNER, now=NOW)
            assert exc_info.value.record_id == "d1"

        assert len(registry) == 0
        assert len(registry.notifications) == 0

    def test_grant_not_checked_without_backend(self):
        registry = DebtRecordRegistry()
        handle = Handle(handle_id=999, bit_width=32, publicly_decryptable=True)

        registry.create("d1", handle, 12, 24, owner=OWNER, now=NOW)

        assert registry.list_ids() == ["d1"]

    @pytest.mark.parametrize("record_id", [" d1", "d1 ", "\td1"])
    def test_padded_id_rejected(self, registry, admit, record_id):
        """Test that an id is never rewritten on the way in."""
        with pytest.raises(InvalidRecordTerms):
            registry.create(record_id, admit(1000), 12, 24, owner=OWNER, now=NOW)

        assert registry.list_ids() == []
        assert len(registry.notifications) == 0
        with pytest.raises(RecordNotFound):
            registry.get(record_id)

    def test_id_stored_as_given(self, registry, admit):
        registry.create("d1", admit(1000), 12, 24, owner=OWNER, now=NOW)

        assert registry.get("d1").id == "d1"
        assert "d1 " not in registry

    def test_get_unknown_raises(self, registry):
        with pytest.raises(RecordNotFound):
            registry.get("missing")

    def test_concurrent_create_same_id(self, registry, admit):
        """Test that racing creates resolve to exactly one winner."""
        handles = [admit(i) for i in range(16)]
        barrier = threading.Barrier(len(handles))
        outcomes = []
        outcomes_lock = threading.Lock()

        def worker(handle):
            barrier.wait()
            try:
                registry.create("race", handle, 12, 24, owner=OWNER, now=NOW)
                result = "ok"
            except DuplicateRecord:
                result = "duplicate"
            with outcomes_lock:
                outcomes.append(result)

        threads = [threading.Thread(target=worker, args=(h,)) for h in handles]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("ok") == 1
        assert outcomes.count("duplicate") == len(handles) - 1
        assert registry.list_ids() == ["race"]
        assert len(registry.notifications.events_for("race")) == 1


class TestRegistryListing:
    """Tests for insertion-ordered enumeration."""

    def test_list_ids_in_insertion_order(self, registry, make_record):
        for record_id in ("a", "b", "c"):
            make_record(record_id)
        assert registry.list_ids() == ["a", "b", "c"]

    def test_list_ids_is_fresh(self, registry, make_record):
        """Test that the returned list is a copy, not a live cursor."""
        make_record("a")
        ids = registry.list_ids()
        ids.append("tampered")
        make_record("b")

        assert ids == ["a", "tampered"]
        assert registry.list_ids() == ["a", "b"]

    def test_empty_registry(self):
        registry = DebtRecordRegistry()
        assert registry.list_ids() == []
        assert len(registry) == 0


class TestRegistryUpdate:
    """Tests for the per-record compare-and-swap."""

    def test_update_swaps_snapshot(self, registry, make_record):
        make_record("d1")
        updated = registry.update("d1", lambda r: r.with_disclosure(1000))

        assert updated.verified is True
        assert registry.get("d1") == updated

    def test_failed_transition_leaves_record(self, registry, make_record):
        original = make_record("d1")

        def boom(record):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            registry.update("d1", boom)
        assert registry.get("d1") == original

    def test_immutable_fields_protected(self, registry, make_record):
        """Test that a transition cannot rewrite the amount handle or terms."""
        make_record("d1")

        with pytest.raises(ValueError, match="immutable"):
            registry.update("d1", lambda r: r.model_copy(update={"term_months": 36}))
        assert registry.get("d1").term_months == 24

    def test_verification_cannot_revert(self, registry, make_record):
        make_record("d1")
        registry.update("d1", lambda r: r.with_disclosure(1000))

        with pytest.raises(ValueError, match="reverted"):
            registry.update(
                "d1",
                lambda r: r.model_copy(update={"verified": False, "decrypted_amount": None}),
            )
        assert registry.get("d1").decrypted_amount == 1000

    def test_on_commit_runs_after_swap(self, registry, make_record):
        make_record("d1")
        seen = []

        registry.update(
            "d1",
            lambda r: r.with_disclosure(1000),
            on_commit=lambda r: seen.append(registry.get(r.id).verified),
        )
        assert seen == [True]

    def test_update_unknown_raises(self, registry):
        with pytest.raises(RecordNotFound):
            registry.update("missing", lambda r: r)


class TestNotificationLog:
    """Tests for one-shot notifications."""

    def test_record_created_emitted_once(self, registry, make_record):
        make_record("d1")

        events = registry.notifications.events()
        assert len(events) == 1
        assert isinstance(events[0], RecordCreated)
        assert events[0].record_id == "d1"
        assert events[0].owner == OWNER
        assert events[0].sequence == 0

    def test_failed_create_emits_nothing(self, registry, make_record):
        make_record("d1")
        with pytest.raises(DuplicateRecord):
            make_record("d1")
        assert len(registry.notifications) == 1

    def test_subscriber_receives_events(self):
        log = NotificationLog()
        received = []
        log.subscribe(received.append)

        log.record_created("d1", OWNER)
        log.amount_disclosed("d1", 1000)

        assert [type(e) for e in received] == [RecordCreated, AmountDisclosed]
        assert [e.sequence for e in received] == [0, 1]

    def test_failing_subscriber_does_not_block(self):
        """Test that one broken watcher neither raises nor starves others."""
        log = NotificationLog()
        received = []

        def broken(event):
            raise RuntimeError("watcher down")

        log.subscribe(broken)
        log.subscribe(received.append)
        log.record_created("d1", OWNER)

        assert len(received) == 1
        assert len(log) == 1

    def test_events_for_filters_by_id(self):
        log = NotificationLog()
        log.record_created("a", OWNER)
        log.record_created("b", OWNER)
        log.amount_disclosed("a", 5)

        assert [type(e) for e in log.events_for("a")] == [RecordCreated, AmountDisclosed]
        assert len(log.events_for("b")) == 1
