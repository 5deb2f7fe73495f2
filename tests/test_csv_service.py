"""
Tests for CSV import and export.
"""

import csv
import pytest
from decimal import Decimal
from io import StringIO

from shootledger.models.audit import AuditEventType, AuditSeverity
from shootledger.models.entities import ExpenseStatus, PaymentMethod
from shootledger.services.exports import CsvService
from shootledger.services.exports.csv_service import (
    BUDGET_VS_ACTUAL_COLUMNS,
    EXPENSE_EXPORT_COLUMNS,
    parse_amount,
)
from shootledger.services.storage import NotFoundError


EXPENSE_HEADER = (
    "Date,Department,LineItem,Vendor,Description,AmountINR,TaxRatePct,"
    "PaymentMethod,PaidBy,Reimbursable,ShootDay,AttachmentFileName\n"
)


@pytest.fixture
def csv_service(store, audit_logger):
    return CsvService(store, audit_logger)


def _rows(text: str) -> list[dict]:
    return list(csv.DictReader(StringIO(text)))


class TestParseAmount:
    def test_strips_currency_and_separators(self):
        assert parse_amount("₹15,000.50") == Decimal("15000.50")
        assert parse_amount(" 250 ") == Decimal("250")

    def test_nothing_numeric(self):
        assert parse_amount("n/a") is None
        assert parse_amount("") is None
        assert parse_amount(None) is None


class TestBudgetImport:
    """Tests for budget line import."""

    def test_import_creates_missing_departments(self, store, csv_service, project, department):
        text = (
            "Department,LineItem,BudgetAmountINR,Notes\n"
            "production,Catering,30000,\n"
            "Post-Production,Editing,\"50,000\",Offline edit\n"
        )
        result = csv_service.import_budget_csv(project.id, text)

        assert result.success is True
        assert result.imported == 2
        assert result.message == "Successfully imported 2 budget line(s)"
        names = [d.name for d in store.get_departments(project.id)]
        assert names == ["Production", "Post-Production"]
        assert store.get_budget_lines(project.id)[1].budget_amount == Decimal("50000")

    def test_bad_rows_are_reported_and_skipped(self, store, csv_service, project):
        text = (
            "Department,LineItem,BudgetAmountINR\n"
            "Production,Catering,30000\n"
            "Production,,1000\n"
            ",,\n"
            "Production,Transport,abc\n"
        )
        result = csv_service.import_budget_csv(project.id, text)

        assert result.success is False
        assert result.imported == 1
        assert result.errors == [
            "Row 3: Missing required fields (Department, LineItem, BudgetAmountINR)",
            "Row 5: Missing required fields (Department, LineItem, BudgetAmountINR)",
        ]
        assert result.message == "Successfully imported 1 budget line(s) with 2 error(s)"

    def test_invalid_line_does_not_create_department(self, store, csv_service, project):
        text = (
            "Department,LineItem,BudgetAmountINR\n"
            "Ghost,Line,-500\n"
            "Ghost," + "x" * 201 + ",100\n"
        )
        result = csv_service.import_budget_csv(project.id, text)

        assert result.imported == 0
        assert len(result.errors) == 2
        assert result.errors[0] == (
            "Row 2: Invalid budget_line: budget_amount: Input should be greater than or equal to 0"
        )
        assert result.errors[1].startswith("Row 3: Invalid budget_line: line_item:")
        assert store.get_departments(project.id) == []

    def test_template_imports_cleanly(self, csv_service, project):
        result = csv_service.import_budget_csv(project.id, csv_service.budget_import_template())
        assert result.imported == 3
        assert result.errors == []

    def test_unknown_project(self, csv_service):
        with pytest.raises(NotFoundError):
            csv_service.import_budget_csv("missing", "Department,LineItem,BudgetAmountINR\n")


class TestExpenseImport:
    """Tests for expense import."""

    def test_import_expenses(self, store, csv_service, project, department, shoot_day):
        vendor = store.add_vendor(name="Camera House Mumbai")
        text = EXPENSE_HEADER + (
            "2024-01-15,Production,,Camera House Mumbai,Camera rental,\"₹15,000\",18,"
            "Transfer,Producer,N,2024-01-15,receipt_001.jpg\n"
            "2024-01-15,production,,,Lunch,3500,,Cash,,Y,,\n"
        )
        result = csv_service.import_expense_csv(project.id, text, created_by="line_producer")

        assert result.success is True
        assert result.imported == 2
        first, second = store.get_expenses(project.id)
        assert first.amount == Decimal("15000")
        assert first.vendor_id == vendor.id
        assert first.shoot_day_id == shoot_day.id
        assert first.payment_method == PaymentMethod.TRANSFER
        assert first.notes == "Paid by Producer"
        assert first.attachment_uri == "receipt_001.jpg"
        assert first.status == ExpenseStatus.SUBMITTED
        assert first.created_by == "line_producer"
        assert second.reimbursable is True
        assert second.tax_rate == Decimal("0")

    def test_row_errors(self, csv_service, project, department):
        text = EXPENSE_HEADER + (
            "2024-01-15,Production,,,Good row,100,,Cash,,N,,\n"
            "2024-13-01,Production,,,Bad date,100,,Cash,,N,,\n"
            "2024-01-15,Production,,,Bad method,100,,Cheque,,N,,\n"
            "2024-01-15,Camera,,,Unknown dept,100,,Cash,,N,,\n"
            "2024-01-15,Production,,,,100,,Cash,,N,,\n"
        )
        result = csv_service.import_expense_csv(project.id, text)

        assert result.imported == 1
        assert result.errors == [
            'Row 3: Invalid date "2024-13-01". Use YYYY-MM-DD',
            "Row 4: Invalid payment method. Must be Cash, UPI, Card, or Transfer",
            'Row 5: Department "Camera" not found',
            "Row 6: Missing required fields (Date, Department, Description, AmountINR)",
        ]

    def test_store_rejection_becomes_row_error(self, store, csv_service, project, department, shoot_day):
        store.lock_shoot_day(shoot_day.id)
        text = EXPENSE_HEADER + "2024-01-15,Production,,,Late receipt,100,,Cash,,N,2024-01-15,\n"
        result = csv_service.import_expense_csv(project.id, text)
        assert result.imported == 0
        assert result.errors[0].startswith("Row 2: Shoot day 2024-01-15 is locked")
        assert result.message == "No expenses imported"

    def test_empty_text(self, csv_service, project):
        result = csv_service.import_expense_csv(project.id, "")
        assert result.success is False
        assert result.message == "CSV parsing error: No header row"

    def test_import_is_audited(self, csv_service, audit_storage, project, department):
        text = EXPENSE_HEADER + "2024-13-01,Production,,,Bad date,100,,Cash,,N,,\n"
        csv_service.import_expense_csv(project.id, text)
        event = audit_storage.get_events_by_entity("project", project.id)[-1]
        assert event.event_type == AuditEventType.CSV_IMPORT_COMPLETED
        assert event.severity == AuditSeverity.WARNING
        assert event.details["error_count"] == 1


class TestExport:
    """Tests for CSV export."""

    def test_export_expenses(self, store, csv_service, project, make_expense):
        make_expense("1500", description="Lens hire, day 1")
        cancelled = make_expense("200")
        store.cancel_expense(cancelled.id)

        text = csv_service.export_expenses_csv(project.id)
        rows = _rows(text)
        assert text.splitlines()[0] == ",".join(EXPENSE_EXPORT_COLUMNS)
        assert rows[0]["Description"] == "Lens hire, day 1"
        assert rows[0]["AmountINR"] == "1500.00"
        assert rows[0]["Department"] == "Production"
        assert rows[1]["Status"] == "cancelled"

    def test_export_budget_vs_actual(self, reports, csv_service, project, make_expense):
        make_expense("1500")
        text = csv_service.export_budget_vs_actual_csv(reports.project_summary(project.id).department_summaries)
        rows = _rows(text)
        assert list(rows[0]) == BUDGET_VS_ACTUAL_COLUMNS
        assert rows[0]["ActualAmountINR"] == "1500.00"
        assert rows[0]["ExpenseCount"] == "1"

    def test_expense_template_has_header(self, csv_service):
        rows = _rows(csv_service.expense_import_template())
        assert len(rows) == 2
        assert rows[0]["PaymentMethod"] == "Transfer"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
