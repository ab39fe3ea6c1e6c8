"""
Configuration Management for the Encrypted Debt Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see which numeric limits and collaborators exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Core ledger limits and fixed-point parameters."""

    model_config = SettingsConfigDict(
        env_prefix="DEBT_LEDGER_",
        extra="ignore"
    )

    ledger_address: str = Field(
        default="debt-ledger-local",
        min_length=1,
        description="Identifier of this ledger; admission proofs are bound to it"
    )
    fixed_point_scale: int = Field(
        default=1000,
        ge=1,
        description="Scale used to represent fractional rates as integers"
    )
    value_bit_width: int = Field(
        default=32,
        description="Bit width of encrypted amounts"
    )
    compute_bit_width: int = Field(
        default=64,
        description="Bit width of homomorphic intermediates"
    )

    # Public term limits
    max_interest_rate_annual: int = Field(
        default=100,
        ge=0,
        description="Maximum annual interest rate in percent"
    )
    max_term_months: int = Field(
        default=600,
        ge=1,
        description="Maximum repayment term in months"
    )

    @field_validator('value_bit_width', 'compute_bit_width')
    @classmethod
    def validate_bit_width(cls, v: int) -> int:
        """Only widths the encryption backend can represent."""
        if v not in (8, 16, 32, 64, 128):
            raise ValueError(f"Unsupported bit width: {v}")
        return v

    @model_validator(mode='after')
    def validate_widths(self) -> 'LedgerSettings':
        if self.compute_bit_width < self.value_bit_width:
            raise ValueError("Compute width cannot be narrower than value width")
        return self

    @property
    def max_value(self) -> int:
        """Largest amount an encrypted value can hold."""
        return (1 << self.value_bit_width) - 1

    @property
    def max_compute_value(self) -> int:
        """Largest intermediate a homomorphic computation can hold."""
        return (1 << self.compute_bit_width) - 1


class CommitteeSettings(BaseSettings):
    """Decryption committee parameters."""

    model_config = SettingsConfigDict(
        env_prefix="DECRYPTION_COMMITTEE_",
        extra="ignore"
    )

    signer_count: int = Field(
        default=1,
        ge=1,
        le=32,
        description="Number of committee signers"
    )
    threshold: int = Field(
        default=1,
        ge=1,
        description="Signatures required for a decryption proof to be valid"
    )

    @model_validator(mode='after')
    def validate_threshold(self) -> 'CommitteeSettings':
        if self.threshold > self.signer_count:
            raise ValueError("Threshold cannot exceed the number of signers")
        return self


class AuditSettings(BaseSettings):
    """Audit trail persistence configuration."""

    model_config = SettingsConfigDict(
        env_prefix="AUDIT_",
        extra="ignore"
    )

    log_path: Optional[str] = Field(
        default=None,
        description="Path of the JSON-lines audit file (None = in-memory only)"
    )

    @field_validator('log_path')
    @classmethod
    def validate_log_path(cls, v: Optional[str]) -> Optional[str]:
        """Warn if the parent directory doesn't exist (but don't fail - might be mounted later)."""
        if v and not Path(v).parent.exists():
            import warnings
            warnings.warn(
                f"Audit log directory not found for {v}. "
                "Make sure it exists before running the application."
            )
        return v


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def committee(self) -> CommitteeSettings:
        return CommitteeSettings()

    @property
    def audit(self) -> AuditSettings:
        return AuditSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("ledger", "committee", "audit", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
