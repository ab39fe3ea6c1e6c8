"""
Record Query Execution

DESIGN DECISION: Read paths are DETERMINISTIC and never reach past the
encryption boundary. Callers get public views of records; the only
plaintext amount they ever see is one that was already disclosed through
a verified decryption proof.

GUARANTEES:
- Views never contain ciphertext handles
- Repayment figures are computed only from `decrypted_amount`
- A record that is not yet verified yields RecordNotVerified, never an estimate
"""

from decimal import ROUND_HALF_UP, Decimal

from debt_ledger.ledger.errors import RecordNotVerified
from debt_ledger.ledger.registry import DebtRecordRegistry
from debt_ledger.models.debt import DebtRecordView, Handle, RepaymentPlan


CENTS = Decimal("0.01")


class RecordQueryExecutor:
    """
    Read-only queries over the registry.

    Each call reads one consistent snapshot per record.
    """

    def __init__(self, registry: DebtRecordRegistry):
        self._registry = registry

    def get_record(self, record_id: str) -> DebtRecordView:
        """Public view of one record."""
        return DebtRecordView.from_record(self._registry.get(record_id))

    def list_ids(self) -> list[str]:
        return self._registry.list_ids()

    def list_records(self) -> list[DebtRecordView]:
        """Views of all records, in insertion order."""
        return [self.get_record(record_id) for record_id in self._registry.list_ids()]

    def get_encrypted_amount(self, record_id: str) -> Handle:
        """
        Handle of the encrypted amount, for handing to the committee.
        """
        return self._registry.get(record_id).encrypted_amount

    def repayment_plan(self, record_id: str) -> RepaymentPlan:
        """
        Plaintext repayment figures for a disclosed record.

        Raises:
            RecordNotFound: If no record has this id
            RecordNotVerified: If the amount has not been disclosed yet
        """
        record = self._registry.get(record_id)
        if not record.verified:
            raise RecordNotVerified(
                f"Amount not disclosed yet for {record_id}",
                record_id=record_id,
            )

        principal = Decimal(record.decrypted_amount)
        months = record.term_months
        monthly_rate = Decimal(record.interest_rate_annual) / Decimal(100) / Decimal(12)

        if monthly_rate == 0:
            monthly = principal / months
        else:
            growth = (1 + monthly_rate) ** months
            monthly = principal * monthly_rate * growth / (growth - 1)

        # Totals use the unrounded payment, then everything is rounded to cents
        total = monthly * months
        return RepaymentPlan(
            record_id=record.id,
            principal=record.decrypted_amount,
            monthly_payment=monthly.quantize(CENTS, rounding=ROUND_HALF_UP),
            total_payment=total.quantize(CENTS, rounding=ROUND_HALF_UP),
            total_interest=(total - principal).quantize(CENTS, rounding=ROUND_HALF_UP),
        )
