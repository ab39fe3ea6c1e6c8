"""
Tests for the homomorphic monthly payment.

The computation uses the positive-power annuity form,
P * f * (1+f)**n / ((1+f)**n - 1), with one homomorphic division;
the backend's oracle is used to read results back.
"""

import pytest

from debt_ledger.ledger import (
    AmortizationEngine,
    NumericOverflow,
    RecordNotFound,
    fixed_point_terms,
)


MAX_U32 = (1 << 32) - 1


def _annuity(principal, rate_annual, months):
    f = rate_annual / 100 / 12
    growth = (1 + f) ** months
    return principal * f * growth / (growth - 1)


class TestFixedPointTerms:
    """Tests for scaling public terms."""

    def test_scales_rate_and_term(self):
        assert fixed_point_terms(12, 24, 1000, MAX_U32) == (1000, 24000)

    def test_rate_rounds_half_up(self):
        """Test rounding of the monthly rate to thousandths of a percent."""
        assert fixed_point_terms(1, 1, 1000, MAX_U32)[0] == 83    # 83.33
        assert fixed_point_terms(5, 1, 1000, MAX_U32)[0] == 417   # 416.67
        assert fixed_point_terms(3, 1, 1000, MAX_U32)[0] == 250

    def test_zero_rate(self):
        assert fixed_point_terms(0, 12, 1000, MAX_U32) == (0, 12000)

    def test_rate_overflow(self):
        with pytest.raises(NumericOverflow, match="rate"):
            fixed_point_terms(10 ** 8, 12, 1000, MAX_U32)

    def test_term_overflow(self):
        with pytest.raises(NumericOverflow, match="term"):
            fixed_point_terms(12, 5_000_000, 1000, MAX_U32)


class TestMonthlyPayment:
    """Tests for AmortizationEngine.monthly_payment."""

    def test_reference_payment(self, backend, engine, make_record):
        """Test 1000 at 12% over 24 months."""
        make_record("d1", amount=1000, rate=12, term=24)

        payment = engine.monthly_payment("d1")

        assert backend.reveal(payment) == 47

    def test_zero_rate_is_straight_line(self, backend, engine, make_record):
        make_record("flat", amount=1200, rate=0, term=12)
        make_record("odd", amount=1000, rate=0, term=3)

        assert backend.reveal(engine.monthly_payment("flat")) == 100
        assert backend.reveal(engine.monthly_payment("odd")) == 333

    def test_close_to_exact_annuity(self, backend, engine, make_record):
        make_record("d1", amount=100_000, rate=6, term=12)

        result = backend.reveal(engine.monthly_payment("d1"))

        assert 8600 <= result <= 8625

    def test_largest_amount_does_not_wrap(self, backend, engine, make_record):
        make_record("big", amount=MAX_U32, rate=12, term=24)

        result = backend.reveal(engine.monthly_payment("big"))
        expected = _annuity(MAX_U32, 12, 24)

        assert abs(result - expected) / expected < 0.005

    def test_single_month(self, backend, engine, make_record):
        """Test that one month repays principal plus one month of interest."""
        make_record("d1", amount=1000, rate=12, term=1)
        assert backend.reveal(engine.monthly_payment("d1")) == 1010

    def test_result_is_fresh_private_handle(self, backend, engine, make_record):
        """Test that the result is encrypted and not granted for decryption."""
        record = make_record("d1")

        payment = engine.monthly_payment("d1")

        assert payment.handle_id != record.encrypted_amount.handle_id
        assert payment.publicly_decryptable is False
        assert not backend.is_publicly_decryptable(payment)
        assert payment.bit_width == 64

    def test_does_not_mutate_record(self, registry, engine, make_record):
        record = make_record("d1")
        engine.monthly_payment("d1")
        engine.monthly_payment("d1")
        assert registry.get("d1") == record

    def test_same_result_before_and_after_verification(
        self, backend, committee, verifier, engine, make_record
    ):
        record = make_record("d1", amount=1000, rate=12, term=24)
        before = engine.monthly_payment("d1")

        verifier.verify("d1", *committee.decrypt(record.encrypted_amount))
        after = engine.monthly_payment("d1")

        assert before.handle_id != after.handle_id
        assert backend.reveal(before) == backend.reveal(after) == 47

    def test_unknown_record(self, engine):
        with pytest.raises(RecordNotFound):
            engine.monthly_payment("missing")

    def test_long_high_rate_term_overflows(self, engine, make_record):
        """Test that terms the compute width cannot hold fail loudly."""
        make_record("d1", amount=1000, rate=100, term=600)

        with pytest.raises(NumericOverflow, match="64 bits"):
            engine.monthly_payment("d1")

    def test_narrow_compute_width_overflows(self, registry, backend, make_record):
        make_record("d1", amount=1000, rate=12, term=24)
        narrow = AmortizationEngine(registry, backend, compute_bit_width=32)

        with pytest.raises(NumericOverflow):
            narrow.monthly_payment("d1")

    def test_rate_denominator(self, engine):
        assert engine.rate_denominator == 100_000
