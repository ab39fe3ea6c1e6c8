"""Tests for verified, at-most-once disclosure."""

import threading

import pytest

from debt_ledger.ledger import (
    AlreadyVerified,
    AmountDisclosed,
    DecryptionVerifier,
    InvalidDecryptionProof,
    RecordCreated,
    RecordNotFound,
)
from debt_ledger.models.debt import DecryptionProof
from debt_ledger.services.fhe import LocalDecryptionCommittee, encode_clear_value


class TestDecryptionVerifier:
    """Tests for DecryptionVerifier.verify."""

    def test_round_trip(self, registry, committee, verifier, make_record):
        """Test create, committee decryption and verification end to end."""
        record = make_record("d1", amount=1000, rate=12, term=24)
        clear_value, proof = committee.decrypt(record.encrypted_amount)

        verified = verifier.verify("d1", clear_value, proof)

        assert verified.verified is True
        assert verified.decrypted_amount == 1000
        stored = registry.get("d1")
        assert stored.verified is True
        assert stored.decrypted_amount == 1000
        assert stored.interest_rate_annual == 12
        assert stored.term_months == 24

    def test_unknown_record(self, committee, verifier, make_record):
        record = make_record("d1")
        clear_value, proof = committee.decrypt(record.encrypted_amount)

        with pytest.raises(RecordNotFound):
            verifier.verify("nope", clear_value, proof)

    def test_second_verify_fails_already_verified(self, registry, committee, verifier, make_record):
        """Test that the first disclosure sticks, whatever is presented next."""
        record = make_record("d1", amount=1000)
        clear_value, proof = committee.decrypt(record.encrypted_amount)
        verifier.verify("d1", clear_value, proof)

        with pytest.raises(AlreadyVerified):
            verifier.verify("d1", clear_value, proof)

        other_value = encode_clear_value(5)
        with pytest.raises(AlreadyVerified):
            verifier.verify("d1", other_value, committee.attest(record.encrypted_amount, other_value))

        assert registry.get("d1").decrypted_amount == 1000

    def test_already_verified_checked_before_proof(self, committee, verifier, make_record):
        """Test that garbage after a disclosure reports AlreadyVerified."""
        record = make_record("d1")
        verifier.verify("d1", *committee.decrypt(record.encrypted_amount))

        with pytest.raises(AlreadyVerified):
            verifier.verify("d1", b"junk", DecryptionProof())

    def test_wrong_cleartext_rejected(self, registry, committee, verifier, make_record):
        record = make_record("d1", amount=1000)
        _, proof = committee.decrypt(record.encrypted_amount)

        with pytest.raises(InvalidDecryptionProof):
            verifier.verify("d1", encode_clear_value(999), proof)
        assert registry.get("d1").verified is False

    def test_proof_for_other_handle_rejected(self, committee, verifier, make_record):
        """Test that a valid proof cannot be replayed onto another record."""
        make_record("d1", amount=1000)
        other = make_record("d2", amount=1000)
        clear_value, proof = committee.decrypt(other.encrypted_amount)

        with pytest.raises(InvalidDecryptionProof):
            verifier.verify("d1", clear_value, proof)

    def test_empty_proof_rejected(self, verifier, make_record):
        make_record("d1")
        with pytest.raises(InvalidDecryptionProof):
            verifier.verify("d1", encode_clear_value(1000), DecryptionProof())

    def test_foreign_committee_rejected(self, backend, registry, verifier, make_record):
        record = make_record("d1")
        impostor = LocalDecryptionCommittee(backend)
        clear_value, proof = impostor.decrypt(record.encrypted_amount)

        with pytest.raises(InvalidDecryptionProof):
            verifier.verify("d1", clear_value, proof)

    def test_malformed_cleartext_rejected(self, registry, committee, verifier, make_record):
        """Test that an attested but undecodable word is still refused."""
        record = make_record("d1")
        short = (1000).to_bytes(4, "big")
        too_wide = encode_clear_value(1 << 40)

        for clear_value in (short, too_wide):
            proof = committee.attest(record.encrypted_amount, clear_value)
            with pytest.raises(InvalidDecryptionProof):
                verifier.verify("d1", clear_value, proof)

        assert registry.get("d1").verified is False
        assert [type(e) for e in registry.notifications.events_for("d1")] == [RecordCreated]

    def test_disclosure_notification_once(self, registry, committee, verifier, make_record):
        record = make_record("d1", amount=1000)
        clear_value, proof = committee.decrypt(record.encrypted_amount)
        verifier.verify("d1", clear_value, proof)
        with pytest.raises(AlreadyVerified):
            verifier.verify("d1", clear_value, proof)

        disclosed = [
            e for e in registry.notifications.events_for("d1")
            if isinstance(e, AmountDisclosed)
        ]
        assert len(disclosed) == 1
        assert disclosed[0].clear_value == 1000

    def test_concurrent_verify(self, registry, committee, verifier, make_record):
        """Test that racing verifications resolve to exactly one success."""
        record = make_record("d1", amount=1000)
        clear_value, proof = committee.decrypt(record.encrypted_amount)
        workers = 16
        barrier = threading.Barrier(workers)
        outcomes = []
        outcomes_lock = threading.Lock()

        def worker():
            barrier.wait()
            try:
                verifier.verify("d1", clear_value, proof)
                result = "ok"
            except AlreadyVerified:
                result = "already"
            with outcomes_lock:
                outcomes.append(result)

        threads = [threading.Thread(target=worker) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("ok") == 1
        assert outcomes.count("already") == workers - 1
        assert sum(
            isinstance(e, AmountDisclosed) for e in registry.notifications.events()
        ) == 1


class TestThresholdCommittee:
    """Tests for multi-signer decryption proofs."""

    def test_threshold_met(self, backend, registry, make_record):
        committee = LocalDecryptionCommittee(backend, signer_count=3, threshold=2)
        verifier = DecryptionVerifier(registry, committee.verifier)
        record = make_record("d1", amount=42)

        clear_value, proof = committee.decrypt(record.encrypted_amount)
        assert len(proof.signatures) == 2
        assert verifier.verify("d1", clear_value, proof).decrypted_amount == 42

    def test_threshold_not_met(self, backend, registry, make_record):
        committee = LocalDecryptionCommittee(backend, signer_count=3, threshold=2)
        verifier = DecryptionVerifier(registry, committee.verifier)
        record = make_record("d1", amount=42)

        clear_value = encode_clear_value(42)
        proof = committee.attest(record.encrypted_amount, clear_value, signers=1)
        with pytest.raises(InvalidDecryptionProof):
            verifier.verify("d1", clear_value, proof)

    def test_repeated_signature_counts_once(self, backend, registry, make_record):
        committee = LocalDecryptionCommittee(backend, signer_count=3, threshold=2)
        verifier = DecryptionVerifier(registry, committee.verifier)
        record = make_record("d1", amount=42)

        clear_value = encode_clear_value(42)
        single = committee.attest(record.encrypted_amount, clear_value, signers=1)
        doubled = DecryptionProof(signatures=single.signatures * 2)
        with pytest.raises(InvalidDecryptionProof):
            verifier.verify("d1", clear_value, doubled)
