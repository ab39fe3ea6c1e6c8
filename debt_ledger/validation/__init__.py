"""Validation package."""

from debt_ledger.validation.validator import RecordTermsValidator

__all__ = ["RecordTermsValidator"]
