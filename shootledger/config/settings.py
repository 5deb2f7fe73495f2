"""
Configuration Management for shootledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The core has no external services, so settings only cover defaults
(currency, acting user), report limits and logging behaviour.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ReportSettings(BaseSettings):
    """Limits and labels used by the analytics engine and export adapters."""

    model_config = SettingsConfigDict(
        env_prefix="REPORT_",
        extra="ignore"
    )

    top_feedback_tags: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Issue tags listed in the production day summary"
    )
    top_issue_limit: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Issue tags listed in the crew performance report"
    )
    top_delay_limit: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Delay reasons listed in the schedule adherence report"
    )
    top_departments_limit: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Default size of the top departments by spend list"
    )
    petty_cash_group_label: str = Field(
        default="Petty Cash",
        min_length=1,
        description="Row label for petty cash debits in the daily cost report"
    )
    pdf_footer_label: str = Field(
        default="Film Expense Tracker",
        description="Label printed in the footer of generated PDFs"
    )
    csv_decimal_places: int = Field(
        default=2,
        ge=0,
        le=6,
        description="Decimal places for amounts in exported CSV"
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
        description="Enable debug mode (console log rendering)"
    )

    # Domain defaults
    default_currency: str = Field(
        default="INR",
        min_length=3,
        max_length=3,
        description="Currency assigned to projects created without one"
    )
    default_user_id: str = Field(
        default="user",
        min_length=1,
        description="User id stamped on records when no identity is supplied"
    )

    # Audit
    audit_enabled: bool = Field(
        default=True,
        description="Record an audit event for every accepted mutation"
    )

    @field_validator('default_currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        """Currency codes are stored upper-case."""
        return v.strip().upper()


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

    @property
    def app(self) -> AppSettings:
        return AppSettings()

    @property
    def reports(self) -> ReportSettings:
        return ReportSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus `<name>_error`
    entries for anything that failed. Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("app", "reports"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
