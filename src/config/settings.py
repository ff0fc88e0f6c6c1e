"""
Configuration Management for Personal Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path

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

    # Sheet names within the spreadsheet
    transactions_sheet_name: str = Field(
        default="Transactions",
        description="Name of the sheet for transactions"
    )
    cards_sheet_name: str = Field(
        default="CreditCards",
        description="Name of the sheet for credit cards"
    )
    goals_sheet_name: str = Field(
        default="SavingsGoals",
        description="Name of the sheet for savings goals"
    )
    reminders_sheet_name: str = Field(
        default="BillReminders",
        description="Name of the sheet for bill reminders"
    )
    config_sheet_name: str = Field(
        default="Config",
        description="Name of the sheet holding the next-id counters"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

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


class LedgerSettings(BaseSettings):
    """Bookkeeping rules that are configurable per deployment."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        extra="ignore"
    )

    # Id prefixes
    transaction_prefix: str = Field(default="TR")
    card_prefix: str = Field(default="CARD")
    goal_prefix: str = Field(default="GOAL")
    reminder_prefix: str = Field(default="REM")

    # First value handed out when a counter row does not exist yet
    transaction_id_start: int = Field(default=1000, ge=1)
    card_id_start: int = Field(default=2000, ge=1)
    goal_id_start: int = Field(default=3000, ge=1)
    reminder_id_start: int = Field(default=4000, ge=1)

    display_date_format: str = Field(
        default="%m/%d/%Y",
        description="strftime format used when the batch job writes payment dates"
    )
    positive_message: str = Field(
        default="Great job! You're spending less than you earn. Keep it up!",
        description="Dashboard message when net income is zero or positive"
    )
    negative_message: str = Field(
        default="Heads up: your expenses are higher than your income. Time to review your budget.",
        description="Dashboard message when net income is negative"
    )
    recent_transactions_limit: int = Field(
        default=10,
        ge=0,
        le=100,
        description="How many recent transactions the dashboard shows"
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

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for the structured log"
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
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

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

    for name in ("google_sheets", "ledger", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
