"""
Tests for environment-driven settings.
"""

import pytest
from decimal import Decimal

from shootledger.config import AppSettings, ReportSettings, Settings, get_settings, validate_all_settings
from shootledger.store import ProductionStore


class TestSettings:
    """Tests for defaults and environment overrides."""

    def test_defaults(self):
        settings = Settings()
        assert settings.app.default_currency == "INR"
        assert settings.app.default_user_id == "user"
        assert settings.reports.petty_cash_group_label == "Petty Cash"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_CURRENCY", "usd")
        monkeypatch.setenv("REPORT_TOP_DEPARTMENTS_LIMIT", "3")
        assert AppSettings().default_currency == "USD"
        assert ReportSettings().top_departments_limit == 3

    def test_invalid_value_rejected(self, monkeypatch):
        monkeypatch.setenv("REPORT_TOP_ISSUE_LIMIT", "0")
        with pytest.raises(ValueError):
            ReportSettings()

    def test_store_uses_default_currency(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_CURRENCY", "EUR")
        store = ProductionStore(settings=Settings())
        project = store.add_project(title="Euro Shoot", total_budget=Decimal("1"))
        assert project.currency == "EUR"

    def test_validate_all_settings(self, monkeypatch):
        get_settings.cache_clear()
        monkeypatch.setenv("REPORT_TOP_DELAY_LIMIT", "500")
        try:
            results = validate_all_settings()
        finally:
            get_settings.cache_clear()
        assert results["app"] is True
        assert results["reports"] is False
        assert "reports_error" in results


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
