"""Configuration management for the fee calculator."""

import logging
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

import pycountry

from feecalc.constants import TRANSACTION_TYPES

logger = logging.getLogger(__name__)


def _validate_iso_currency(code: str) -> str:
    code = code.strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise ValueError(
            f"Invalid currency code format: '{code}'. "
            f"Must be 3-letter ISO 4217 codes (e.g., USD, EUR)."
        )
    if code not in {c.alpha_3 for c in pycountry.currencies}:
        raise ValueError(
            f"Invalid ISO 4217 code: {code}. See https://en.wikipedia.org/wiki/ISO_4217"
        )
    return code


class FeeCalcConfig(BaseSettings):
    """Configuration for fee calculation and invoicing."""

    model_config = SettingsConfigDict(
        env_prefix="FEECALC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    default_currency: str = Field(
        default="USD",
        description="Currency used for new invoices and display",
    )

    supported_currencies: str = Field(
        default="USD,EUR,GBP,CAD,AUD,JPY",
        description="Comma-separated list of currency codes offered for invoices",
    )

    default_transaction_type: str = Field(
        default="domestic",
        description="Transaction type used when none is given",
    )

    invoice_prefix: str = Field(
        default="INV",
        min_length=1,
        max_length=10,
        description="Prefix for stored and ad-hoc invoice numbers",
    )

    payment_terms_days: int = Field(
        default=30,
        ge=0,
        le=365,
        description="Days between issue date and default due date",
    )

    history_limit: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Number of single calculations kept in history",
    )

    storage_path: Path = Field(
        default=Path.home() / ".feecalc" / "store.json",
        description="JSON file used by the CLI for invoices and settings",
    )

    api_host: str = Field(
        default="0.0.0.0",
        description="API host address",
    )

    api_port: int = Field(
        default=8000,
        description="API port",
    )

    rate_limit: str = Field(
        default="60/minute",
        description="Default per-client API rate limit",
    )

    batch_rate_limit: str = Field(
        default="30/minute",
        description="Per-client rate limit for batch fee requests",
    )

    @field_validator("default_currency")
    @classmethod
    def validate_default_currency(cls, v: str) -> str:
        """Validate default currency is a real ISO 4217 code."""
        return _validate_iso_currency(v)

    @field_validator("supported_currencies")
    @classmethod
    def validate_supported_currencies(cls, v: str) -> str:
        """Validate every listed currency is ISO 4217."""
        currencies = [c for c in v.split(",") if c.strip()]
        if not currencies:
            raise ValueError("SUPPORTED_CURRENCIES cannot be empty")
        for currency in currencies:
            _validate_iso_currency(currency)
        return v

    def get_supported_currencies(self) -> list[str]:
        """Parse supported currencies, preserving order."""
        seen: list[str] = []
        for code in self.supported_currencies.split(","):
            code = code.strip().upper()
            if code and code not in seen:
                seen.append(code)
        return seen

    def validate_config(self) -> None:
        """Validate configuration at startup. Raises ValueError if invalid."""
        errors = []

        if self.default_transaction_type not in TRANSACTION_TYPES:
            errors.append(
                "DEFAULT_TRANSACTION_TYPE must be one of: "
                + ", ".join(TRANSACTION_TYPES)
            )

        if self.default_currency not in self.get_supported_currencies():
            errors.append("DEFAULT_CURRENCY must be listed in SUPPORTED_CURRENCIES")

        for name, value in (
            ("RATE_LIMIT", self.rate_limit),
            ("BATCH_RATE_LIMIT", self.batch_rate_limit),
        ):
            if "/" not in value:
                errors.append(f"{name} must look like '<count>/<period>'")

        if errors:
            raise ValueError(
                "Configuration validation failed:\n"
                + "\n".join(f"  - {e}" for e in errors)
            )


_config_instance = None


def get_config() -> FeeCalcConfig:
    """Get or create global configuration instance."""
    global _config_instance
    if _config_instance is None:
        _config_instance = FeeCalcConfig()
        _config_instance.validate_config()
        logger.info("Configuration validated successfully")
    return _config_instance


def reload_config() -> FeeCalcConfig:
    """Reload configuration (useful for testing)."""
    global _config_instance
    _config_instance = FeeCalcConfig()
    return _config_instance
