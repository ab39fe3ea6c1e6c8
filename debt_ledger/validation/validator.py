"""
Two-Stage Validation of Public Record Terms

DESIGN DECISION: Public terms are validated before any ciphertext is
admitted, in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence
- Identifier and metadata format
- Sign of rate and term

STAGE 2 - SEMANTIC VALIDATION:
- Configured rate and term limits
- Fixed-point representability (rate_fixed, term_fixed fit the value width)

WHY TWO STAGES:
1. Separation of concerns (structural vs numeric)
2. Better error messages (know exactly what kind of issue)
3. Can skip stage 2 if stage 1 fails

IMPORTANT: Validation NEVER silently fixes terms. It only reports them.
"""

import re
from typing import Optional

from debt_ledger.config import LedgerSettings, get_settings
from debt_ledger.ledger.amortization import fixed_point_terms
from debt_ledger.ledger.errors import InvalidRecordTerms, NumericOverflow
from debt_ledger.models.debt import ValidationIssue, ValidationResult


# Printable, no whitespace; covers UI-generated ids such as "debt-<ms>"
RECORD_ID_PATTERN = re.compile(r"^[A-Za-z0-9._:\-]{1,100}$")


class RecordTermsValidator:
    """
    Validates the public terms of a new record.

    Stage 1 needs nothing but the input.
    Stage 2 needs the ledger's numeric settings.
    """

    def __init__(self, settings: Optional[LedgerSettings] = None):
        self._settings = settings or get_settings().ledger

    def _validate_schema(
        self,
        record_id: str,
        interest_rate_annual: int,
        term_months: int,
        name: str,
        description: str,
        caller: Optional[str] = None,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        if not record_id:
            issues.append(ValidationIssue(
                field="record_id",
                issue_type="missing",
                message="Record id is required",
                severity="error",
            ))
        elif not isinstance(record_id, str) or not RECORD_ID_PATTERN.match(record_id):
            issues.append(ValidationIssue(
                field="record_id",
                issue_type="invalid_format",
                message="Record id must be 1-100 characters of letters, digits, '.', '_', ':' or '-'",
                severity="error",
            ))

        if caller is not None:
            if not isinstance(caller, str) or not caller.strip():
                issues.append(ValidationIssue(
                    field="caller",
                    issue_type="missing",
                    message="Caller identity is required",
                    severity="error",
                ))
            elif caller != caller.strip() or len(caller) > 100:
                issues.append(ValidationIssue(
                    field="caller",
                    issue_type="invalid_format",
                    message="Caller must be at most 100 characters without surrounding whitespace",
                    severity="error",
                ))

        if isinstance(interest_rate_annual, bool) or not isinstance(interest_rate_annual, int):
            issues.append(ValidationIssue(
                field="interest_rate_annual",
                issue_type="invalid_type",
                message="Interest rate must be a whole number of percent",
                severity="error",
            ))
        elif interest_rate_annual < 0:
            issues.append(ValidationIssue(
                field="interest_rate_annual",
                issue_type="invalid_value",
                message="Interest rate cannot be negative",
                severity="error",
            ))

        if isinstance(term_months, bool) or not isinstance(term_months, int):
            issues.append(ValidationIssue(
                field="term_months",
                issue_type="invalid_type",
                message="Term must be a whole number of months",
                severity="error",
            ))
        elif term_months < 1:
            issues.append(ValidationIssue(
                field="term_months",
                issue_type="invalid_value",
                message="Term must be at least one month",
                severity="error",
            ))

        if not isinstance(name, str):
            issues.append(ValidationIssue(
                field="name",
                issue_type="invalid_type",
                message="Name must be text",
                severity="error",
            ))
        elif len(name) > 100:
            issues.append(ValidationIssue(
                field="name",
                issue_type="too_long",
                message="Name must be at most 100 characters",
                severity="error",
            ))
        elif not name.strip():
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Record has no name",
                severity="warning",
            ))

        if not isinstance(description, str):
            issues.append(ValidationIssue(
                field="description",
                issue_type="invalid_type",
                message="Description must be text",
                severity="error",
            ))
        elif len(description) > 500:
            issues.append(ValidationIssue(
                field="description",
                issue_type="too_long",
                message="Description must be at most 500 characters",
                severity="error",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _validate_semantic(
        self,
        interest_rate_annual: int,
        term_months: int,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []
        settings = self._settings

        if interest_rate_annual > settings.max_interest_rate_annual:
            issues.append(ValidationIssue(
                field="interest_rate_annual",
                issue_type="out_of_range",
                message=f"Interest rate above {settings.max_interest_rate_annual}%",
                severity="error",
            ))

        if term_months > settings.max_term_months:
            issues.append(ValidationIssue(
                field="term_months",
                issue_type="out_of_range",
                message=f"Term longer than {settings.max_term_months} months",
                severity="error",
            ))

        try:
            fixed_point_terms(
                interest_rate_annual,
                term_months,
                settings.fixed_point_scale,
                settings.max_value,
            )
        except NumericOverflow as e:
            issues.append(ValidationIssue(
                field="terms",
                issue_type="overflow",
                message=str(e),
                severity="error",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def validate(
        self,
        record_id: str,
        interest_rate_annual: int,
        term_months: int,
        name: str = "",
        description: str = "",
        caller: Optional[str] = None,
    ) -> ValidationResult:
        """
        Run both stages. Stage 2 is skipped if stage 1 fails.

        `caller` is checked only when given.
        """
        schema_valid, issues = self._validate_schema(
            record_id, interest_rate_annual, term_months, name, description, caller
        )

        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(
                interest_rate_annual, term_months
            )
            issues.extend(semantic_issues)

        return ValidationResult(
            record_id=record_id if isinstance(record_id, str) else "",
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=issues,
        )

    def ensure_valid(self, result: ValidationResult) -> None:
        """
        Turn a failed result into the matching ledger error.

        Overflow takes precedence, since it is its own failure kind.

        Raises:
            NumericOverflow: If a term cannot be represented in fixed point
            InvalidRecordTerms: For any other error-level issue
        """
        if result.is_valid:
            return

        errors = [i for i in result.issues if i.severity == "error"]
        summary = "; ".join(f"{i.field}: {i.message}" for i in errors)
        if result.has_overflow:
            raise NumericOverflow(summary, record_id=result.record_id)
        raise InvalidRecordTerms(summary, record_id=result.record_id)
