"""
Amortization Engine

Computes the encrypted monthly payment of a record without decrypting
its amount. Only the public terms (rate, term) are ever seen in the clear.

FORMULA (annuity, positive-power form):

    payment = P * f * (1 + f)**n / ((1 + f)**n - 1)

with f the monthly rate and n the term in months. Negative exponents are
never used: (1 + f)**n is raised homomorphically and the inversion is one
homomorphic division.

FIXED POINT:
- S = fixed-point scale (1000)
- rate_fixed = round(rate_annual_percent * S / 12), monthly rate in
  thousandths of a percent
- D = 100 * S, so f = rate_fixed / D
- growth = pow_fixed(D + rate_fixed, n, scale=D), floored at every step

    payment = P * rate_fixed * growth // ((growth - D) * D)

A zero rate degenerates to straight-line repayment, P // n.

Every intermediate is bounded from public values and the largest possible
amount before any ciphertext is touched; if one could wrap the compute
width the call fails with NumericOverflow.
"""

import structlog

from debt_ledger.ledger.errors import NumericOverflow
from debt_ledger.ledger.registry import DebtRecordRegistry
from debt_ledger.models.debt import EncryptedValue
from debt_ledger.services.fhe import HomomorphicBackend


MONTHS_PER_YEAR = 12
PERCENT = 100


def _ceil_div(a: int, b: int) -> int:
    return -(-a // b)


def fixed_point_terms(
    interest_rate_annual: int,
    term_months: int,
    scale: int,
    max_value: int,
) -> tuple[int, int]:
    """
    Scale public terms to fixed point.

    Returns:
        (rate_fixed, term_fixed)

    Raises:
        NumericOverflow: If either scaled term exceeds `max_value`
    """
    # round half up
    rate_fixed = (2 * interest_rate_annual * scale + MONTHS_PER_YEAR) // (2 * MONTHS_PER_YEAR)
    term_fixed = term_months * scale

    if rate_fixed > max_value:
        raise NumericOverflow(
            f"Scaled monthly rate {rate_fixed} exceeds {max_value}"
        )
    if term_fixed > max_value:
        raise NumericOverflow(
            f"Scaled term {term_fixed} exceeds {max_value}"
        )
    return rate_fixed, term_fixed


class AmortizationEngine:
    """
    Read-only homomorphic payment calculator.

    Never mutates a record and never touches decryption grants; results
    are fresh handles that are not publicly decryptable.
    """

    def __init__(
        self,
        registry: DebtRecordRegistry,
        backend: HomomorphicBackend,
        scale: int = 1000,
        value_bit_width: int = 32,
        compute_bit_width: int = 64,
    ):
        self._registry = registry
        self._backend = backend
        self._scale = scale
        self._value_bit_width = value_bit_width
        self._compute_bit_width = compute_bit_width
        self._logger = structlog.get_logger()

    @property
    def rate_denominator(self) -> int:
        return PERCENT * self._scale

    def _check_range(self, rate_fixed: int, months: int) -> None:
        """Bound every intermediate of the annuity computation."""
        limit = (1 << self._compute_bit_width) - 1
        max_amount = (1 << self._value_bit_width) - 1
        d = self.rate_denominator
        base = d + rate_fixed

        growth_bound = _ceil_div(base ** months, d ** (months - 1)) if months else d
        bounds = {
            "growth_step": growth_bound * base,
            "numerator": max_amount * rate_fixed * growth_bound,
            "denominator": (growth_bound - d) * d,
        }
        for name, bound in bounds.items():
            if bound > limit:
                raise NumericOverflow(
                    f"Amortization {name} may exceed {self._compute_bit_width} bits "
                    f"(rate_fixed={rate_fixed}, months={months})"
                )

    def monthly_payment(self, record_id: str) -> EncryptedValue:
        """
        Encrypted monthly payment for a record.

        Raises:
            RecordNotFound: If no record has this id
            NumericOverflow: If the public terms cannot be computed at the
                configured widths
        """
        record = self._registry.get(record_id)
        rate_fixed, term_fixed = fixed_point_terms(
            record.interest_rate_annual,
            record.term_months,
            self._scale,
            (1 << self._value_bit_width) - 1,
        )
        months = term_fixed // self._scale
        width = self._compute_bit_width

        backend = self._backend
        principal = backend.cast(record.encrypted_amount, width)

        if rate_fixed == 0:
            payment = backend.div(principal, backend.as_encrypted(months, width))
        else:
            self._check_range(rate_fixed, months)
            d = self.rate_denominator

            growth = backend.pow_fixed(
                backend.as_encrypted(d + rate_fixed, width), months, d
            )
            numerator = backend.mul(
                backend.mul(principal, backend.as_encrypted(rate_fixed, width)),
                growth,
            )
            denominator = backend.mul(
                backend.sub(growth, backend.as_encrypted(d, width)),
                backend.as_encrypted(d, width),
            )
            payment = backend.div(numerator, denominator)

        self._logger.debug(
            "monthly_payment_computed",
            record_id=record.id,
            result_handle_id=payment.handle_id,
        )
        return payment
