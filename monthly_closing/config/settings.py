"""
Configuration Management for Monthly Closing

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheets owned by the closing engine
    closures_sheet_name: str = Field(
        default="MonthlyClosures",
        description="Name of the sheet for closure records"
    )
    closure_audit_sheet_name: str = Field(
        default="ClosureAudit",
        description="Name of the append-only sheet for closure audit entries"
    )

    # Sheets read by the providers (owned by the rest of the app)
    transactions_sheet_name: str = Field(default="Transactions")
    wallets_sheet_name: str = Field(default="Wallets")
    statement_lines_sheet_name: str = Field(default="BankStatementLines")
    goals_sheet_name: str = Field(default="CategoryGoals")
    invoices_sheet_name: str = Field(default="CreditCardInvoices")

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class ClosingSettings(BaseSettings):
    """Rules of the closing engine itself."""

    model_config = SettingsConfigDict(
        env_prefix="CLOSING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    candidate_window_months: int = Field(
        default=12,
        ge=1,
        le=120,
        description="How many months are offered for closing"
    )
    default_currency: str = Field(
        default="BRL",
        min_length=3,
        max_length=3,
        description="Currency used when a wallet record carries none"
    )
    internal_transfer_subtypes: str = Field(
        default="transfer",
        description="Comma-separated transaction subtypes excluded from totals"
    )
    cash_adjustment_subtype: str = Field(
        default="cash_adjustment",
        description="Transaction subtype counted as a cash adjustment"
    )
    cash_wallet_type: str = Field(
        default="cash",
        description="Wallet type that identifies the cash wallet"
    )
    storage_backend: Literal["google_sheets", "memory"] = Field(
        default="google_sheets",
        description="Where closures and audit entries are persisted"
    )

    @field_validator('cash_adjustment_subtype', 'cash_wallet_type')
    @classmethod
    def normalize_match_value(cls, v: str) -> str:
        """Records are compared lowercased, so the configured value must be too."""
        return v.strip().lower()

    @property
    def transfer_subtypes_set(self) -> frozenset[str]:
        """Get transfer subtypes as a set."""
        return frozenset(
            s.strip().lower()
            for s in self.internal_transfer_subtypes.split(",")
            if s.strip()
        )


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
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def closing(self) -> ClosingSettings:
        return ClosingSettings()

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

    for name in ("google_sheets", "closing", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
