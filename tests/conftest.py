"""
Shared fixtures.

Every test runs against the local reference backend and committee;
nothing reaches an external service.
"""

from datetime import datetime, timezone

import pytest

from debt_ledger.audit import AuditLogger
from debt_ledger.config import LedgerSettings
from debt_ledger.ledger import (
    AmortizationEngine,
    CiphertextIngress,
    DebtRecordRegistry,
    DecryptionVerifier,
)
from debt_ledger.models.debt import AdmissionContext
from debt_ledger.orchestrator import DebtLedgerService
from debt_ledger.services.fhe import LocalDecryptionCommittee, LocalFheBackend
from debt_ledger.services.storage import InMemoryAuditStorage


OWNER = "0xA11CE"
NOW = datetime(2024, 12, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings():
    return LedgerSettings(ledger_address="debt-ledger-test")


@pytest.fixture
def context(settings):
    return AdmissionContext(caller=OWNER, ledger_address=settings.ledger_address)


@pytest.fixture
def backend():
    return LocalFheBackend(key=b"k" * 32)


@pytest.fixture
def committee(backend):
    return LocalDecryptionCommittee(backend)


@pytest.fixture
def registry(backend):
    return DebtRecordRegistry(backend=backend)


@pytest.fixture
def ingress(backend):
    return CiphertextIngress(backend)


@pytest.fixture
def verifier(registry, committee):
    return DecryptionVerifier(registry, committee.verifier)


@pytest.fixture
def engine(registry, backend):
    return AmortizationEngine(registry, backend)


@pytest.fixture
def admit(backend, ingress, context):
    """Encrypt and admit an amount, returning its handle."""

    def _admit(amount: int):
        raw, proof = backend.encrypt(amount, context)
        return ingress.admit(raw, proof, context)

    return _admit


@pytest.fixture
def make_record(registry, admit):
    """Create a record with an admitted encrypted amount."""

    def _make(record_id: str, amount: int = 1000, rate: int = 12, term: int = 24):
        return registry.create(
            record_id,
            admit(amount),
            rate,
            term,
            owner=OWNER,
            now=NOW,
        )

    return _make


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def service(backend, committee, settings, audit_storage):
    return DebtLedgerService(
        backend=backend,
        proof_verifier=committee.verifier,
        settings=settings,
        audit_logger=AuditLogger(audit_storage),
        clock=lambda: NOW,
    )
